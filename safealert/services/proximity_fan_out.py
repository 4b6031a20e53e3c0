"""
Proximity Fan-Out - one-shot alert to nearby users when a report is approved.

Selection mirrors a polling cycle, but runs over every user instead of one
device's state:
1. Fetch the approved report
2. Fetch users with a fresh (< 2h) location and a push token
3. Keep users within FAN_OUT_RADIUS_M of the report
4. Exclude the report's author
5. Dispatch one push per remaining user

There is no seen-set here: every approval fans out exactly once.
"""

from datetime import timedelta
from typing import List, Optional
import asyncio
import logging

from safealert.core.errors import NotificationError
from safealert.models.notification import FanOutResult
from safealert.models.report import Report
from safealert.models.user import LocatedUser
from safealert.services import geo_filter
from safealert.services.notification_sink import NotificationSink
from safealert.services.push_dispatch import PushDispatcher
from safealert.services.report_store import ReportStore
from safealert.utils.clock import SystemClock

logger = logging.getLogger(__name__)


class ProximityFanOut:

    FAN_OUT_RADIUS_M = 5000.0
    FRESHNESS_WINDOW = timedelta(hours=2)
    ALERT_TITLE = "⚠️ Safety Alert"
    ALERT_BODY = "A new safety report has been confirmed in your area. Stay alert!"
    SUMMARY_TITLE = "📤 Notification Sent"

    def __init__(
        self,
        store: ReportStore,
        dispatcher: PushDispatcher,
        clock=None,
        notification_sink: Optional[NotificationSink] = None
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.notification_sink = notification_sink

    def select_recipients(self, report: Report, users: List[LocatedUser]) -> List[LocatedUser]:
        """Users within FAN_OUT_RADIUS_M of the report, excluding its author."""
        nearby = geo_filter.within_radius(
            self.FAN_OUT_RADIUS_M, report.coordinate, users, lambda u: u.coordinate
        )
        recipients = []
        for user, distance_m in nearby:
            if user.user_id == report.user_id:
                logger.info(f"Skipping notification for reporter: {user.user_id}")
                continue
            logger.info(f"User {user.user_id} is {int(distance_m)}m away")
            recipients.append(user)
        return recipients

    async def notify_nearby_users(self, report_id: str) -> Optional[FanOutResult]:
        """
        Fan out alerts for an approved report.

        Returns:
            FanOutResult, or None if the report could not be loaded

        Raises:
            StoreError: If the report or user lookup failed
        """
        report = await self.store.get_report(report_id)
        if report is None:
            logger.warning(f"Could not fetch report {report_id} for fan-out")
            return None

        fresh_since = self.clock.now() - self.FRESHNESS_WINDOW
        users = await self.store.get_users_with_fresh_location_and_token(fresh_since)
        logger.info(f"Found {len(users)} users with fresh locations and tokens")

        recipients = self.select_recipients(report, users)
        logger.info(f"Found {len(recipients)} users within {self.FAN_OUT_RADIUS_M:.0f}m of report {report_id}")

        outcomes = await asyncio.gather(
            *(self._dispatch(user, report_id) for user in recipients)
        )

        result = FanOutResult(
            report_id=report_id,
            candidate_count=len(users),
            recipient_ids=[u.user_id for u, ok in zip(recipients, outcomes) if ok],
            failed_ids=[u.user_id for u, ok in zip(recipients, outcomes) if not ok],
        )
        logger.info(
            f"Finished fan-out for report {report_id}: "
            f"{len(result.recipient_ids)} sent, {len(result.failed_ids)} failed"
        )

        await self._send_summary(report_id, len(recipients))
        return result

    async def _dispatch(self, user: LocatedUser, report_id: str) -> bool:
        try:
            await self.dispatcher.send(
                user.token,
                self.ALERT_TITLE,
                self.ALERT_BODY,
                data={"reportId": report_id},
            )
        except NotificationError as e:
            logger.error(f"Push to user {user.user_id} failed: {e}")
            return False
        return True

    async def _send_summary(self, report_id: str, nearby_user_count: int) -> None:
        if self.notification_sink is None:
            return
        try:
            await self.notification_sink.schedule_local_notification(
                identifier=f"notification-sent-{report_id}",
                title=self.SUMMARY_TITLE,
                body=f"Safety alert sent to {nearby_user_count} nearby users for report {report_id[:8]}",
                metadata={"reportId": report_id, "type": "notification_sent"},
            )
        except NotificationError as e:
            logger.error(f"Error scheduling fan-out summary notification: {e}")
