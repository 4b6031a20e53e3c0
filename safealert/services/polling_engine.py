"""
Polling Engine - periodic "what's new near me" check for one device.

WHEN A CYCLE RUNS:
- Immediately on start_polling()
- Every POLLING_INTERVAL_SECONDS while running (foreground timer)
- On app foreground transition
- On a background wake-up (which reschedules the next one first)

ONE CYCLE, STRICTLY IN ORDER:
1. Skip if stopped or the device location is unknown
2. Fetch all approved reports (full fetch, no delta query)
3. Keep reports within the preferred radius
4. Drop reports already in the seen set
5. Apply category / severity / self-authorship preferences
6. Emit one local notification per surviving report
7. Mark ALL nearby reports as seen, notified or not
8. Record the poll time

Cycles are serialized by a lock so two entry points never interleave writes
to the seen set. A fetch failure aborts the cycle; the next tick is the retry.
"""

from datetime import datetime
from typing import Callable, List, Optional, Set
import asyncio
import logging

from safealert.core.errors import NotificationError, StoreError
from safealert.models.notification import PollingCycleResult, PollingStatus
from safealert.models.report import Report, ReportStatus
from safealert.services import geo_filter
from safealert.services.background_scheduler import BackgroundScheduler
from safealert.services.device_context import DeviceContext
from safealert.services.notification_preferences import NotificationPreferences
from safealert.services.notification_sink import NotificationSink, REPORT_NOTIFICATION_CATEGORY
from safealert.services.report_store import ReportStore
from safealert.services.seen_report_tracker import SeenReportTracker
from safealert.utils.clock import SystemClock
from safealert.utils.local_state import StateStore

logger = logging.getLogger(__name__)


def format_distance(meters: float) -> str:
    """Whole meters below 1 km, one-decimal kilometers above."""
    if meters < 1000:
        return f"{int(meters)}m"
    return f"{meters / 1000:.1f}km"


def build_notification_body(report: Report, distance_m: float, preview_length: int = 50) -> str:
    return (
        f"{report.category.display_name} reported {format_distance(distance_m)} away: "
        f"{report.description[:preview_length]}..."
    )


def notification_identifier(report_id: str) -> str:
    return f"report_{report_id}"


class PollingEngine:
    """
    Stopped/Running state machine driving polling cycles for this device.
    """

    POLLING_INTERVAL_SECONDS = 30.0
    NOTIFICATION_TITLE = "New Safety Report Nearby"
    DESCRIPTION_PREVIEW_LENGTH = 50
    LAST_POLL_KEY = "lastPollingTime"

    def __init__(
        self,
        store: ReportStore,
        notification_sink: NotificationSink,
        preferences: NotificationPreferences,
        tracker: SeenReportTracker,
        device: DeviceContext,
        clock=None,
        background_scheduler: Optional[BackgroundScheduler] = None,
        state_store: Optional[StateStore] = None,
        on_state_change: Optional[Callable[[PollingStatus], None]] = None
    ):
        self.store = store
        self.notification_sink = notification_sink
        self.preferences = preferences
        self.tracker = tracker
        self.device = device
        self.clock = clock or SystemClock()
        self.background_scheduler = background_scheduler
        self.state_store = state_store
        self.on_state_change = on_state_change

        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._cycle_lock = asyncio.Lock()
        self._cycle_in_flight = False
        self.last_polling_time: Optional[datetime] = self._load_last_polling_time()

        if self.background_scheduler is not None:
            self.background_scheduler.register(self.handle_background_wake)

    @property
    def is_running(self) -> bool:
        return self._running

    async def request_permission(self) -> bool:
        """Ask for notification permission. Polling runs either way."""
        try:
            granted = await self.notification_sink.request_permission()
        except NotificationError as e:
            logger.error(f"Notification permission request failed: {e}")
            return False
        if not granted:
            logger.warning("Notification permission denied; nearby alerts will not be shown")
        return granted

    def start_polling(self) -> Optional[asyncio.Task]:
        """
        Start the recurring timer and background wake-ups, and kick off an
        immediate cycle. Must be called from a running event loop.

        Returns:
            The task running the initial cycle, or None if already running
        """
        if self._running:
            return None

        self._running = True
        self._timer_task = asyncio.get_running_loop().create_task(self._timer_loop())
        self._schedule_background()
        logger.info(f"Started notification polling with {self.POLLING_INTERVAL_SECONDS:.0f}s interval")
        self._state_changed()
        return self._spawn_cycle()

    def stop_polling(self) -> None:
        """
        Cancel the timer and any pending background wake-up. A cycle already
        in flight finishes, but emits nothing and marks nothing once it sees
        the engine stopped.
        """
        if not self._running and self._timer_task is None:
            return

        self._running = False
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        if self.background_scheduler is not None:
            self.background_scheduler.cancel()

        logger.info("Stopped notification polling")
        self._state_changed()

    async def handle_app_foreground(self) -> Optional[PollingCycleResult]:
        if not self._running:
            return None
        logger.info("App entered foreground, polling now")
        return await self.execute_polling()

    async def handle_background_wake(self) -> Optional[PollingCycleResult]:
        if not self._running:
            return None
        # Wake-ups are one-shot: book the next one before doing any work
        self._schedule_background()
        return await self.execute_polling()

    async def execute_polling(self) -> PollingCycleResult:
        """Run one polling cycle, waiting for any cycle already in flight."""
        async with self._cycle_lock:
            self._cycle_in_flight = True
            try:
                return await self._run_cycle()
            finally:
                self._cycle_in_flight = False

    def status(self) -> PollingStatus:
        return PollingStatus(
            running=self._running,
            interval_seconds=self.POLLING_INTERVAL_SECONDS,
            last_polling_time=self.last_polling_time,
            seen_count=self.tracker.count(),
            cycle_in_flight=self._cycle_in_flight,
        )

    async def _run_cycle(self) -> PollingCycleResult:
        if not self._running:
            return PollingCycleResult(skipped_reason="stopped")

        user_location = self.device.location
        if user_location is None:
            logger.info("No user location available for polling")
            return PollingCycleResult(skipped_reason="no_location")

        try:
            all_reports = await self.store.query_reports_by_status(ReportStatus.APPROVED)
        except StoreError as e:
            logger.error(f"Polling error: {e}")
            return PollingCycleResult(skipped_reason="fetch_failed")

        nearby = geo_filter.within_radius(
            self.preferences.radius_m, user_location, all_reports, lambda r: r.coordinate
        )
        new_reports = [(r, d) for r, d in nearby if not self.tracker.contains(r.id)]
        local_user_id = self.device.user_id
        relevant = [(r, d) for r, d in new_reports if self.preferences.allows(r, local_user_id)]

        # stop_polling() may have landed while the fetch was suspended
        if not self._running:
            logger.info("Polling stopped mid-cycle; discarding results")
            return PollingCycleResult(skipped_reason="stopped")

        notified_ids: List[str] = []
        for report, distance_m in relevant:
            if await self._send_notification(report, distance_m):
                notified_ids.append(report.id)

        if not self._running:
            logger.info("Polling stopped mid-cycle; seen reports left unchanged")
            return PollingCycleResult(skipped_reason="stopped", notified_ids=notified_ids)

        await self.tracker.mark_seen(r.id for r, _ in nearby)
        self.last_polling_time = self.clock.now()
        await self._save_last_polling_time()
        self._state_changed()

        logger.info(
            f"Polling completed: {len(new_reports)} new reports, "
            f"{len(notified_ids)} notifications sent"
        )
        return PollingCycleResult(
            fetched_count=len(all_reports),
            nearby_count=len(nearby),
            new_count=len(new_reports),
            notified_ids=notified_ids,
            completed_at=self.last_polling_time,
        )

    async def _send_notification(self, report: Report, distance_m: float) -> bool:
        try:
            await self.notification_sink.schedule_local_notification(
                identifier=notification_identifier(report.id),
                title=self.NOTIFICATION_TITLE,
                body=build_notification_body(report, distance_m, self.DESCRIPTION_PREVIEW_LENGTH),
                metadata={
                    "reportId": report.id,
                    "reportLatitude": report.latitude,
                    "reportLongitude": report.longitude,
                    "reportCategory": report.category.value,
                },
                category_identifier=REPORT_NOTIFICATION_CATEGORY,
            )
        except NotificationError as e:
            logger.error(f"Failed to send notification for report {report.id}: {e}")
            return False
        logger.info(f"Sent notification for report: {report.id}")
        return True

    def seconds_until_next_tick(self, tick_started: float, now: float) -> float:
        """Time left in the interval that began at `tick_started`; 0 once it has elapsed."""
        return max(0.0, self.POLLING_INTERVAL_SECONDS - (now - tick_started))

    async def _timer_loop(self) -> None:
        loop = asyncio.get_running_loop()
        tick_started = loop.time()
        while self._running:
            await asyncio.sleep(self.seconds_until_next_tick(tick_started, loop.time()))
            if not self._running:
                break
            # Ticks are measured start to start; the cycle time is not added to the interval
            tick_started = loop.time()
            # wait() leaves the cycle running if the timer is cancelled,
            # and cycle errors are logged by _cycle_done
            await asyncio.wait({self._spawn_cycle()})

    def _spawn_cycle(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.execute_polling())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task) -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Polling cycle crashed: {error!r}")

    def _schedule_background(self) -> None:
        if self.background_scheduler is not None:
            self.background_scheduler.schedule_next(self.POLLING_INTERVAL_SECONDS)

    def _state_changed(self) -> None:
        if self.on_state_change is not None:
            self.on_state_change(self.status())

    def _load_last_polling_time(self) -> Optional[datetime]:
        if self.state_store is None:
            return None
        raw = self.state_store.get(self.LAST_POLL_KEY)
        if not isinstance(raw, str):
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed persisted poll time: {raw!r}")
            return None

    async def _save_last_polling_time(self) -> None:
        if self.state_store is None or self.last_polling_time is None:
            return
        try:
            await asyncio.to_thread(self.state_store.set, self.LAST_POLL_KEY, self.last_polling_time.isoformat())
        except Exception as e:
            logger.error(f"Failed to persist last poll time: {e}")
