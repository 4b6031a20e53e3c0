"""
Shared fixtures: an in-memory store, device-local state, a controllable
clock and report factories.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from safealert.models.location import Coordinate
from safealert.models.report import Report, ReportCategory, ReportStatus
from safealert.models.user import User
from safealert.services.device_context import DeviceContext
from safealert.services.geo_filter import EARTH_RADIUS_M
from safealert.services.notification_preferences import NotificationPreferences
from safealert.services.notification_sink import InMemoryNotificationSink
from safealert.services.polling_engine import PollingEngine
from safealert.services.proximity_fan_out import ProximityFanOut
from safealert.services.push_dispatch import LoggingPushDispatcher
from safealert.services.report_store import InMemoryReportStore
from safealert.services.seen_report_tracker import SeenReportTracker
from safealert.utils.local_state import MemoryStateStore

ORIGIN = Coordinate(32.0, 34.0)


class FakeClock:
    def __init__(self, now: datetime = None):
        self.current = now or datetime(2025, 6, 25, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


def north_of(origin: Coordinate, meters: float) -> Coordinate:
    """Point `meters` due north of `origin` along the meridian."""
    return Coordinate(origin.latitude + math.degrees(meters / EARTH_RADIUS_M), origin.longitude)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryReportStore()


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture
def sink():
    return InMemoryNotificationSink()


@pytest.fixture
def dispatcher():
    return LoggingPushDispatcher()


@pytest.fixture
def preferences(state_store):
    return NotificationPreferences(state_store)


@pytest.fixture
def tracker(state_store):
    return SeenReportTracker(state_store)


@pytest.fixture
def device():
    return DeviceContext(user_id="local-user", location=ORIGIN)


@pytest.fixture
def engine(store, sink, preferences, tracker, device, clock, state_store):
    return PollingEngine(
        store=store,
        notification_sink=sink,
        preferences=preferences,
        tracker=tracker,
        device=device,
        clock=clock,
        state_store=state_store,
    )


@pytest.fixture
def fan_out(store, dispatcher, clock, sink):
    return ProximityFanOut(store, dispatcher, clock, sink)


@pytest.fixture
def make_report(clock):
    """Build a report; defaults to an approved theft report at ORIGIN by another user."""
    def _make(
        report_id: str = "r1",
        category: ReportCategory = ReportCategory.THEFT,
        location: Coordinate = ORIGIN,
        user_id: str = "author-1",
        status: ReportStatus = ReportStatus.APPROVED,
        description: str = "Bike stolen from the rack outside the library",
    ) -> Report:
        return Report(
            id=report_id,
            user_id=user_id,
            category=category,
            description=description,
            latitude=location.latitude,
            longitude=location.longitude,
            timestamp=clock.now(),
            status=status,
            moderator_id="mod-0" if status != ReportStatus.PENDING else None,
        )
    return _make


@pytest.fixture
def add_report(store, make_report):
    """Build a report and put it straight into the store."""
    def _add(**kwargs) -> Report:
        report = make_report(**kwargs)
        store.reports[report.id] = report.to_record()
        return report
    return _add


@pytest.fixture
def add_user(store, clock):
    """Put a user into the store, optionally located `located_ago` before now."""
    def _add(
        uid: str,
        location: Coordinate = None,
        token: str = None,
        located_ago: timedelta = timedelta(minutes=5),
        is_moderator: bool = False,
    ) -> User:
        user = User(
            uid=uid,
            is_moderator=is_moderator,
            created_at=clock.now(),
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            location_timestamp=clock.now() - located_ago if location else None,
            push_token=token,
        )
        store.users[uid] = user.to_record()
        return user
    return _add


@pytest.fixture
def north():
    return north_of
