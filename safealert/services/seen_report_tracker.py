"""
Seen Report Tracker - dedup authority for the polling engine.

Holds the IDs of reports already surfaced on this device, in insertion
order. When the set grows past MAX_ENTRIES it is trimmed to the TRIM_TO most
recently inserted IDs. Persistence is best-effort and runs in a worker
thread: write failures are logged and the in-memory set stays authoritative
for the process lifetime.
"""

from collections import OrderedDict
from typing import Iterable, List
import asyncio
import logging

from safealert.utils.local_state import StateStore

logger = logging.getLogger(__name__)


class SeenReportTracker:
    """Bounded, insertion-ordered set of seen report IDs."""

    STORAGE_KEY = "seenReportIds"
    MAX_ENTRIES = 1000
    TRIM_TO = 500

    def __init__(self, state_store: StateStore):
        self._state_store = state_store
        self._ids: "OrderedDict[str, None]" = OrderedDict()
        self._write_lock = asyncio.Lock()
        self._load()

    def contains(self, report_id: str) -> bool:
        return report_id in self._ids

    __contains__ = contains

    def count(self) -> int:
        return len(self._ids)

    __len__ = count

    def snapshot(self) -> List[str]:
        """IDs oldest-first."""
        return list(self._ids)

    async def mark_seen(self, report_ids: Iterable[str]) -> None:
        """
        Insert IDs in iteration order and persist.

        Re-inserting a known ID refreshes its position, so reports that keep
        showing up nearby are the last to be evicted. Nothing is written when
        the set and its order are unchanged.
        """
        before = list(self._ids)
        for report_id in report_ids:
            if report_id in self._ids:
                self._ids.move_to_end(report_id)
            else:
                self._ids[report_id] = None

        if len(self._ids) > self.MAX_ENTRIES:
            dropped = len(self._ids) - self.TRIM_TO
            for _ in range(dropped):
                self._ids.popitem(last=False)
            logger.info(f"Trimmed seen reports: dropped {dropped} oldest, kept {len(self._ids)}")

        if list(self._ids) == before:
            return
        await self._save()

    async def clear(self) -> None:
        self._ids.clear()
        async with self._write_lock:
            try:
                await asyncio.to_thread(self._state_store.remove, self.STORAGE_KEY)
            except Exception as e:
                logger.error(f"Failed to remove persisted seen reports: {e}")
        logger.info("Cleared seen reports")

    async def _save(self) -> None:
        # Snapshot under the lock so the last write always carries the newest set
        async with self._write_lock:
            snapshot = list(self._ids)
            try:
                await asyncio.to_thread(self._state_store.set, self.STORAGE_KEY, snapshot)
            except Exception as e:
                logger.error(f"Failed to persist {len(snapshot)} seen reports: {e}")

    def _load(self) -> None:
        try:
            stored = self._state_store.get(self.STORAGE_KEY)
        except Exception as e:
            logger.error(f"Failed to load seen reports: {e}")
            return

        if stored is None:
            return
        if not isinstance(stored, list):
            logger.warning(f"Ignoring malformed persisted seen reports ({type(stored).__name__})")
            return

        for report_id in stored:
            if isinstance(report_id, str):
                self._ids[report_id] = None
        logger.info(f"Loaded {len(self._ids)} seen reports")
