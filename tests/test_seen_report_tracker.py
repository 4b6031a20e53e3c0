"""Tests for the bounded seen-report set."""

import asyncio
import threading
from unittest.mock import MagicMock

from safealert.services.seen_report_tracker import SeenReportTracker
from safealert.utils.local_state import MemoryStateStore


class ThreadRecordingStateStore(MemoryStateStore):
    """Remembers which thread each write ran on."""

    def __init__(self):
        super().__init__()
        self.write_threads = []

    def set(self, key, value):
        self.write_threads.append(threading.get_ident())
        super().set(key, value)


class TestSeenReportTracker:

    def test_mark_and_contains(self, tracker):
        asyncio.run(tracker.mark_seen(["a", "b"]))
        assert "a" in tracker
        assert tracker.contains("b")
        assert not tracker.contains("c")
        assert len(tracker) == 2

    def test_trims_to_most_recent_half_when_over_capacity(self, tracker):
        """1001 distinct IDs leave exactly the 500 newest."""
        ids = [f"report-{i}" for i in range(1001)]
        asyncio.run(tracker.mark_seen(ids))

        assert tracker.count() == 500
        assert tracker.snapshot() == ids[501:]
        assert not tracker.contains("report-500")
        assert tracker.contains("report-1000")

    def test_at_capacity_no_trim(self, tracker):
        asyncio.run(tracker.mark_seen(f"report-{i}" for i in range(1000)))
        assert tracker.count() == 1000

    def test_reinsert_refreshes_position(self, tracker):
        asyncio.run(tracker.mark_seen(["old", "middle"]))
        asyncio.run(tracker.mark_seen(["old"]))
        assert tracker.snapshot() == ["middle", "old"]

        asyncio.run(tracker.mark_seen(f"filler-{i}" for i in range(999)))
        # "middle" is now the oldest entry and is evicted first
        assert not tracker.contains("middle")
        assert tracker.count() == 500

    def test_persists_and_reloads(self, state_store):
        asyncio.run(SeenReportTracker(state_store).mark_seen(["x", "y"]))

        reloaded = SeenReportTracker(state_store)
        assert reloaded.snapshot() == ["x", "y"]

    def test_writes_run_off_the_event_loop_thread(self):
        state = ThreadRecordingStateStore()
        tracker = SeenReportTracker(state)

        asyncio.run(tracker.mark_seen(["a"]))

        assert len(state.write_threads) == 1
        assert state.write_threads[0] != threading.get_ident()

    def test_unchanged_set_is_not_rewritten(self):
        state = MagicMock()
        state.get.return_value = None
        tracker = SeenReportTracker(state)

        asyncio.run(tracker.mark_seen(["a", "b"]))
        asyncio.run(tracker.mark_seen(["b"]))
        asyncio.run(tracker.mark_seen([]))

        assert state.set.call_count == 1

    def test_persistence_failure_keeps_memory_set(self):
        """A failing write is logged; the in-memory set stays authoritative."""
        state = MagicMock()
        state.get.return_value = None
        state.set.side_effect = OSError("disk full")

        tracker = SeenReportTracker(state)
        asyncio.run(tracker.mark_seen(["a"]))

        assert tracker.contains("a")
        state.set.assert_called_once()

    def test_malformed_persisted_value_loads_empty(self):
        tracker = SeenReportTracker(MemoryStateStore({"seenReportIds": "not-a-list"}))
        assert tracker.count() == 0

    def test_clear_removes_persisted_ids(self, tracker, state_store):
        asyncio.run(tracker.mark_seen(["a"]))
        asyncio.run(tracker.clear())

        assert tracker.count() == 0
        assert state_store.get("seenReportIds") is None
