"""
Service container - wires SafeAlert services together.

Every service gets its collaborators through its constructor; this module is
the one place that decides which implementations are used.
"""

from typing import Optional
import logging

from safealert.core.settings import Settings, settings
from safealert.services.background_scheduler import AsyncioBackgroundScheduler, BackgroundScheduler
from safealert.services.device_context import DeviceContext
from safealert.services.moderation_workflow import ModerationWorkflow
from safealert.services.notification_preferences import NotificationPreferences
from safealert.services.notification_sink import InMemoryNotificationSink, NotificationSink
from safealert.services.polling_engine import PollingEngine
from safealert.services.proximity_fan_out import ProximityFanOut
from safealert.services.push_dispatch import FcmPushDispatcher, LoggingPushDispatcher, PushDispatcher
from safealert.services.report_service import ReportService
from safealert.services.report_store import InMemoryReportStore, ReportStore
from safealert.services.seen_report_tracker import SeenReportTracker
from safealert.utils.clock import SystemClock
from safealert.utils.local_state import JsonFileStateStore, MemoryStateStore, StateStore

logger = logging.getLogger(__name__)


class ServiceContainer:
    """All services for one device process."""

    def __init__(
        self,
        store: ReportStore,
        state_store: StateStore,
        notification_sink: NotificationSink,
        push_dispatcher: PushDispatcher,
        clock=None,
        background_scheduler: Optional[BackgroundScheduler] = None
    ):
        self.store = store
        self.state_store = state_store
        self.notification_sink = notification_sink
        self.push_dispatcher = push_dispatcher
        self.clock = clock or SystemClock()

        self.device = DeviceContext()
        self.preferences = NotificationPreferences(state_store)
        self.tracker = SeenReportTracker(state_store)

        self.fan_out = ProximityFanOut(store, push_dispatcher, self.clock, notification_sink)
        self.moderation = ModerationWorkflow(store, self.fan_out)
        self.reports = ReportService(store, self.device, self.clock)
        self.polling = PollingEngine(
            store=store,
            notification_sink=notification_sink,
            preferences=self.preferences,
            tracker=self.tracker,
            device=self.device,
            clock=self.clock,
            background_scheduler=background_scheduler,
            state_store=state_store,
        )

    @classmethod
    def in_memory(cls, clock=None) -> "ServiceContainer":
        """Fully in-process container: no Firebase, no files."""
        return cls(
            store=InMemoryReportStore(),
            state_store=MemoryStateStore(),
            notification_sink=InMemoryNotificationSink(),
            push_dispatcher=LoggingPushDispatcher(),
            clock=clock,
        )

    @classmethod
    def from_settings(cls, config: Settings) -> "ServiceContainer":
        if config.USE_MEMORY_STORE:
            logger.info("Using in-memory report store")
            store: ReportStore = InMemoryReportStore()
        else:
            from safealert.services.firestore_report_store import FirestoreReportStore
            store = FirestoreReportStore()

        dispatcher: PushDispatcher = FcmPushDispatcher() if config.PUSH_ENABLED else LoggingPushDispatcher()

        return cls(
            store=store,
            state_store=JsonFileStateStore(config.LOCAL_STATE_PATH),
            notification_sink=InMemoryNotificationSink(),
            push_dispatcher=dispatcher,
            background_scheduler=AsyncioBackgroundScheduler(),
        )


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get or create the process-wide container from settings.
    FastAPI routes depend on this; tests override it.
    """
    global _container
    if _container is None:
        _container = ServiceContainer.from_settings(settings)
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    global _container
    _container = container
