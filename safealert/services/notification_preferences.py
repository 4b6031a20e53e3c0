"""
Notification Preferences - user-chosen filter criteria for nearby alerts.

Every setter updates the in-memory value read by the polling engine on its
next cycle, then persists it from a worker thread. Malformed persisted values
fall back to defaults on load.
"""

from typing import Callable, FrozenSet, Iterable, Optional, Union
import asyncio
import logging

from safealert.models.notification import PreferencesSnapshot
from safealert.models.report import Report, ReportCategory, ReportSeverity
from safealert.utils.local_state import StateStore

logger = logging.getLogger(__name__)


class NotificationPreferences:
    """
    Radius, enabled categories and minimum severity for local notifications.

    A report qualifies when its category is enabled, its severity priority is
    at least the threshold priority, and it was not written by the local user.
    """

    DEFAULT_RADIUS_M = 2000.0
    MIN_RADIUS_M = 500.0
    MAX_RADIUS_M = 5000.0
    DEFAULT_SEVERITY_THRESHOLD = ReportSeverity.MEDIUM

    RADIUS_KEY = "notificationRadius"
    CATEGORIES_KEY = "enabledCategories"
    SEVERITY_KEY = "severityThreshold"

    def __init__(
        self,
        state_store: StateStore,
        on_change: Optional[Callable[[PreferencesSnapshot], None]] = None
    ):
        self._state_store = state_store
        self.on_change = on_change
        self._radius_m = self.DEFAULT_RADIUS_M
        self._enabled_categories: FrozenSet[ReportCategory] = frozenset(ReportCategory)
        self._severity_threshold = self.DEFAULT_SEVERITY_THRESHOLD
        self._write_lock = asyncio.Lock()
        self._load()

    @property
    def radius_m(self) -> float:
        return self._radius_m

    @property
    def enabled_categories(self) -> FrozenSet[ReportCategory]:
        return self._enabled_categories

    @property
    def severity_threshold(self) -> ReportSeverity:
        return self._severity_threshold

    async def set_radius(self, radius_m: float) -> float:
        """
        Set the notification radius, clamped to [MIN_RADIUS_M, MAX_RADIUS_M].

        Returns:
            The radius actually stored
        """
        clamped = self._clamp_radius(float(radius_m))
        if clamped != radius_m:
            logger.warning(f"Notification radius {radius_m}m out of range, clamped to {clamped}m")
        self._radius_m = clamped
        await self._persist(self.RADIUS_KEY)
        self._changed()
        return clamped

    async def set_enabled_categories(self, categories: Iterable[Union[ReportCategory, str]]) -> None:
        self._enabled_categories = frozenset(ReportCategory(c) for c in categories)
        await self._persist(self.CATEGORIES_KEY)
        self._changed()

    async def set_severity_threshold(self, severity: Union[ReportSeverity, str]) -> None:
        self._severity_threshold = ReportSeverity(severity)
        await self._persist(self.SEVERITY_KEY)
        self._changed()

    def allows(self, report: Report, local_user_id: Optional[str]) -> bool:
        """Apply the category, severity and self-authorship filters to one report."""
        if report.category not in self._enabled_categories:
            return False
        if report.severity.priority < self._severity_threshold.priority:
            return False
        if local_user_id is not None and report.user_id == local_user_id:
            return False
        return True

    def snapshot(self) -> PreferencesSnapshot:
        return PreferencesSnapshot(
            radius_m=self._radius_m,
            enabled_categories=sorted(self._enabled_categories, key=lambda c: c.value),
            severity_threshold=self._severity_threshold,
        )

    def _clamp_radius(self, radius_m: float) -> float:
        return max(self.MIN_RADIUS_M, min(self.MAX_RADIUS_M, radius_m))

    def _stored_value(self, key: str):
        if key == self.RADIUS_KEY:
            return self._radius_m
        if key == self.CATEGORIES_KEY:
            return sorted(c.value for c in self._enabled_categories)
        return self._severity_threshold.value

    async def _persist(self, key: str) -> None:
        # Read the value under the lock so the newest setting is written last
        async with self._write_lock:
            value = self._stored_value(key)
            try:
                await asyncio.to_thread(self._state_store.set, key, value)
            except Exception as e:
                logger.error(f"Failed to persist preference {key}: {e}")

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())

    def _load(self) -> None:
        try:
            radius = self._state_store.get(self.RADIUS_KEY)
            categories = self._state_store.get(self.CATEGORIES_KEY)
            severity = self._state_store.get(self.SEVERITY_KEY)
        except Exception as e:
            logger.error(f"Failed to load notification preferences, using defaults: {e}")
            return

        if isinstance(radius, (int, float)) and not isinstance(radius, bool) and radius > 0:
            self._radius_m = self._clamp_radius(float(radius))
        elif radius is not None:
            logger.warning(f"Ignoring malformed persisted radius: {radius!r}")

        if isinstance(categories, list):
            loaded = set()
            for raw in categories:
                try:
                    loaded.add(ReportCategory(raw))
                except ValueError:
                    logger.warning(f"Ignoring unknown persisted category: {raw!r}")
            self._enabled_categories = frozenset(loaded)
        elif categories is not None:
            logger.warning(f"Ignoring malformed persisted categories: {categories!r}")

        if severity is not None:
            try:
                self._severity_threshold = ReportSeverity(severity)
            except ValueError:
                logger.warning(f"Ignoring unknown persisted severity threshold: {severity!r}")
