"""
Report Service - submission and read-side queries for the UI shell.

Submission preconditions (each a distinct user-facing error):
- a signed-in user
- a known device location
- a selected category
"""

from typing import List, Optional
import logging

from safealert.core.errors import (
    CategoryNotSelectedError,
    LocationNotAvailableError,
    UserNotAuthenticatedError,
)
from safealert.models.report import Report, ReportCategory, ReportStatus, UserReports
from safealert.models.user import User
from safealert.services.device_context import DeviceContext
from safealert.services.report_store import ReportStore
from safealert.utils.clock import SystemClock

logger = logging.getLogger(__name__)


def _newest_first(reports: List[Report]) -> List[Report]:
    return sorted(reports, key=lambda r: r.timestamp, reverse=True)


class ReportService:

    def __init__(self, store: ReportStore, device: DeviceContext, clock=None):
        self.store = store
        self.device = device
        self.clock = clock or SystemClock()

    async def submit_report(
        self,
        category: Optional[ReportCategory],
        description: str,
        image_url: Optional[str] = None
    ) -> Report:
        """
        Create a pending report at the device's current location.

        Raises:
            UserNotAuthenticatedError / LocationNotAvailableError /
            CategoryNotSelectedError: Precondition not met
            StoreError: The write failed
        """
        if not self.device.user_id:
            raise UserNotAuthenticatedError()

        location = self.device.location
        if location is None:
            raise LocationNotAvailableError()

        if category is None:
            raise CategoryNotSelectedError()

        report = Report(
            user_id=self.device.user_id,
            category=category,
            description=description,
            latitude=location.latitude,
            longitude=location.longitude,
            timestamp=self.clock.now(),
            status=ReportStatus.PENDING,
            moderator_id=None,
            image_url=image_url,
        )
        await self.store.create_report(report)
        logger.info(f"User {report.user_id} submitted report {report.id} ({category.value})")
        return report

    async def get_approved_reports(self) -> List[Report]:
        return _newest_first(await self.store.query_reports_by_status(ReportStatus.APPROVED))

    async def get_approved_reports_by_category(self, category: ReportCategory) -> List[Report]:
        reports = await self.store.query_reports_by_category(category)
        return _newest_first([r for r in reports if r.status == ReportStatus.APPROVED])

    async def get_user_reports(self, user_id: str) -> UserReports:
        reports = await self.store.query_reports_by_author(user_id)
        grouped = UserReports(
            approved=_newest_first([r for r in reports if r.status == ReportStatus.APPROVED]),
            pending=_newest_first([r for r in reports if r.status == ReportStatus.PENDING]),
            rejected=_newest_first([r for r in reports if r.status == ReportStatus.REJECTED]),
        )
        counts = grouped.counts()
        logger.info(
            f"User {user_id} reports - Approved: {counts['approved']}, "
            f"Pending: {counts['pending']}, Rejected: {counts['rejected']}"
        )
        return grouped

    async def sign_in(self, user_id: str) -> User:
        """Attach a user to this device, creating an anonymous account on first sight."""
        user = await self.store.get_user(user_id)
        if user is None:
            user = User(uid=user_id, is_anonymous=True, created_at=self.clock.now())
            await self.store.save_user(user)
            logger.info(f"Created anonymous user {user_id}")
        self.device.sign_in(user_id)
        return user

    async def update_location_and_token(self, latitude: float, longitude: float, token: Optional[str]) -> None:
        """
        Record the device location locally and, when a user and push token
        are known, on the user's record for approval fan-out.
        """
        self.device.update_location(latitude, longitude)
        if token:
            self.device.push_token = token

        if not self.device.user_id or not self.device.push_token:
            return

        await self.store.update_user_location_and_token(
            self.device.user_id, latitude, longitude, self.device.push_token, self.clock.now()
        )
