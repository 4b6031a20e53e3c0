"""
Moderation Workflow - report lifecycle state machine.

DESIGN PRINCIPLES:
- pending → approved | rejected, nothing else
- Terminal states never move again (no "un-review")
- The moderator ID is stamped as part of the transition
- One in-flight transition per report ID; a second attempt while the first
  is running is a logged no-op
- Approval (only) triggers the proximity fan-out
"""

from typing import Dict, List, Optional
import logging

from safealert.core.errors import (
    InvalidTransitionError,
    NotModeratorError,
    ReportNotFoundError,
    StoreError,
    UserNotAuthenticatedError,
)
from safealert.models.notification import FanOutResult
from safealert.models.report import Report, ReportStatus
from safealert.services.proximity_fan_out import ProximityFanOut
from safealert.services.report_store import ReportStore

logger = logging.getLogger(__name__)


class ModerationWorkflow:
    """
    Moderator approve/reject with a per-report single-flight guard.
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.PENDING: [ReportStatus.APPROVED, ReportStatus.REJECTED],
        ReportStatus.APPROVED: [],
        ReportStatus.REJECTED: [],
    }

    def __init__(self, store: ReportStore, fan_out: ProximityFanOut):
        self.store = store
        self.fan_out = fan_out
        self._processing: Dict[str, bool] = {}
        self.last_fan_out: Optional[FanOutResult] = None

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid.

        Only pending reports move, and only to approved or rejected. A
        transition to the current status is invalid.
        """
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = ReportStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    def is_processing(self, report_id: str) -> bool:
        return self._processing.get(report_id, False)

    async def list_pending(self, moderator_id: Optional[str]) -> List[Report]:
        """Pending queue, oldest first. Moderators only."""
        await self._require_moderator(moderator_id)
        reports = await self.store.query_reports_by_status(ReportStatus.PENDING)
        return sorted(reports, key=lambda r: r.timestamp)

    async def approve(self, report_id: str, moderator_id: Optional[str]) -> Optional[Report]:
        logger.info(f"Approving report {report_id}")
        return await self._transition(report_id, ReportStatus.APPROVED, moderator_id)

    async def reject(self, report_id: str, moderator_id: Optional[str]) -> Optional[Report]:
        logger.info(f"Rejecting report {report_id}")
        return await self._transition(report_id, ReportStatus.REJECTED, moderator_id)

    async def _transition(
        self,
        report_id: str,
        new_status: ReportStatus,
        moderator_id: Optional[str]
    ) -> Optional[Report]:
        """
        Move a pending report to a terminal status.

        Returns:
            The updated report, or None if a transition for this report was
            already in flight

        Raises:
            UserNotAuthenticatedError / NotModeratorError: Caller cannot moderate
            ReportNotFoundError: Unknown report ID
            InvalidTransitionError: Report is not pending
            StoreError: The update failed; the report stays pending
        """
        if not moderator_id:
            raise UserNotAuthenticatedError("Error: Moderator not authenticated")

        # Check-and-set with no await in between: atomic on the event loop
        if self._processing.get(report_id):
            logger.info(f"Report {report_id} is already being processed")
            return None
        self._processing[report_id] = True

        try:
            await self._require_moderator(moderator_id)

            report = await self.store.get_report(report_id)
            if report is None:
                raise ReportNotFoundError(report_id)

            if not self.is_valid_transition(report.status.value, new_status.value):
                allowed = self.get_allowed_transitions(report.status.value)
                raise InvalidTransitionError(
                    f"Invalid status transition: {report.status.value} → {new_status.value}. "
                    f"Allowed transitions from {report.status.value}: {allowed}"
                )

            await self.store.update_report_status(report_id, new_status, moderator_id)
            updated = report.model_copy(update={"status": new_status, "moderator_id": moderator_id})
            logger.info(f"✅ Moderator {moderator_id} updated report {report_id}: {report.status.value} → {new_status.value}")

            if new_status == ReportStatus.APPROVED:
                await self._fan_out(report_id)
            else:
                logger.info(f"Report {report_id} was {new_status.value}, no notification sent")

            return updated

        except StoreError as e:
            logger.error(f"Error updating report {report_id}: {e}")
            raise
        finally:
            self._processing.pop(report_id, None)

    async def _fan_out(self, report_id: str) -> None:
        # The transition already happened; a failed fan-out must not undo or fail it
        try:
            self.last_fan_out = await self.fan_out.notify_nearby_users(report_id)
        except StoreError as e:
            logger.error(f"Error sending nearby notifications for report {report_id}: {e}")

    async def _require_moderator(self, moderator_id: Optional[str]) -> None:
        if not moderator_id:
            raise UserNotAuthenticatedError("Error: Moderator not authenticated")
        user = await self.store.get_user(moderator_id)
        if user is None or not user.is_moderator:
            raise NotModeratorError()
