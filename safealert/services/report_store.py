"""
Report Store - persistence boundary for reports and users.

Defines the contract every backend must implement, plus an in-process
implementation used for local development and tests. Implementations wrap
backend failures in StoreError.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional
import asyncio
import logging

from safealert.core.errors import ReportNotFoundError, StoreError
from safealert.models.report import Report, ReportCategory, ReportStatus
from safealert.models.user import LocatedUser, User

logger = logging.getLogger(__name__)


class ReportStore(ABC):
    """Abstract report/user store."""

    @abstractmethod
    async def create_report(self, report: Report) -> str:
        """
        Persist a new report.

        Returns:
            The report ID
        """
        pass

    @abstractmethod
    async def get_report(self, report_id: str) -> Optional[Report]:
        pass

    @abstractmethod
    async def query_reports_by_status(self, status: ReportStatus) -> List[Report]:
        pass

    @abstractmethod
    async def query_reports_by_category(self, category: ReportCategory) -> List[Report]:
        pass

    @abstractmethod
    async def query_reports_by_author(self, user_id: str) -> List[Report]:
        pass

    @abstractmethod
    async def update_report_status(self, report_id: str, status: ReportStatus, moderator_id: str) -> None:
        """
        Raises:
            ReportNotFoundError: If the report does not exist
            StoreError: If the write failed
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def save_user(self, user: User) -> None:
        pass

    @abstractmethod
    async def get_users_with_fresh_location_and_token(self, fresh_since: datetime) -> List[LocatedUser]:
        """Users whose location was recorded after `fresh_since` and who have a push token."""
        pass

    @abstractmethod
    async def update_user_location_and_token(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        token: str,
        located_at: datetime
    ) -> None:
        pass


class InMemoryReportStore(ReportStore):
    """
    Store backed by process memory, holding the same record layout as the
    remote backend so parsing rules are shared.

    `fail_next` makes the next N operations raise StoreError.
    """

    def __init__(self):
        self.reports: Dict[str, Dict] = {}
        self.users: Dict[str, Dict] = {}
        self.fail_next = 0
        self._lock = asyncio.Lock()

    def _check_failure(self, operation: str) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise StoreError(f"Simulated store failure during {operation}")

    def _parse_all(self, predicate) -> List[Report]:
        reports = []
        for report_id, data in self.reports.items():
            if not predicate(data):
                continue
            report = Report.from_record(data, report_id)
            if report is not None:
                reports.append(report)
        return reports

    async def create_report(self, report: Report) -> str:
        self._check_failure("create_report")
        async with self._lock:
            self.reports[report.id] = report.to_record()
        logger.info(f"Stored report {report.id} ({report.category.value}, {report.status.value})")
        return report.id

    async def get_report(self, report_id: str) -> Optional[Report]:
        self._check_failure("get_report")
        data = self.reports.get(report_id)
        if data is None:
            return None
        return Report.from_record(data, report_id)

    async def query_reports_by_status(self, status: ReportStatus) -> List[Report]:
        self._check_failure("query_reports_by_status")
        return self._parse_all(lambda d: d.get("status") == status.value)

    async def query_reports_by_category(self, category: ReportCategory) -> List[Report]:
        self._check_failure("query_reports_by_category")
        return self._parse_all(lambda d: d.get("category") == category.value)

    async def query_reports_by_author(self, user_id: str) -> List[Report]:
        self._check_failure("query_reports_by_author")
        return self._parse_all(lambda d: d.get("userId") == user_id)

    async def update_report_status(self, report_id: str, status: ReportStatus, moderator_id: str) -> None:
        self._check_failure("update_report_status")
        async with self._lock:
            data = self.reports.get(report_id)
            if data is None:
                raise ReportNotFoundError(report_id)
            data["status"] = status.value
            data["moderatorId"] = moderator_id

    async def get_user(self, user_id: str) -> Optional[User]:
        self._check_failure("get_user")
        data = self.users.get(user_id)
        if data is None:
            return None
        return User.from_record(data, user_id)

    async def save_user(self, user: User) -> None:
        self._check_failure("save_user")
        async with self._lock:
            self.users[user.uid] = user.to_record()

    async def get_users_with_fresh_location_and_token(self, fresh_since: datetime) -> List[LocatedUser]:
        self._check_failure("get_users_with_fresh_location_and_token")
        cutoff = fresh_since.timestamp()
        located = []
        for user_id, data in self.users.items():
            token = data.get("fcmToken")
            latitude = data.get("latitude")
            longitude = data.get("longitude")
            located_ts = data.get("locationTimestamp")
            if not token or latitude is None or longitude is None or located_ts is None:
                continue
            if located_ts <= cutoff:
                continue
            located.append(LocatedUser(
                user_id=user_id,
                token=token,
                latitude=latitude,
                longitude=longitude,
                located_at=datetime.fromtimestamp(located_ts, tz=fresh_since.tzinfo),
            ))
        return located

    async def update_user_location_and_token(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        token: str,
        located_at: datetime
    ) -> None:
        self._check_failure("update_user_location_and_token")
        async with self._lock:
            data = self.users.setdefault(user_id, {"uid": user_id})
            data.update({
                "latitude": latitude,
                "longitude": longitude,
                "locationTimestamp": located_at.timestamp(),
                "fcmToken": token,
            })
