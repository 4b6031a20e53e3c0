"""
Firestore-backed ReportStore.

Reports live in the `reports` collection keyed by report ID; users in the
`users` collection keyed by auth UID. The Admin SDK is blocking, so every
call runs in a worker thread. Any SDK failure surfaces as StoreError.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar
import asyncio
import logging

from safealert.config.firebase import get_db
from safealert.core.errors import ReportNotFoundError, StoreError
from safealert.models.report import Report, ReportCategory, ReportStatus
from safealert.models.user import LocatedUser, User
from safealert.services.report_store import ReportStore
from safealert.utils.firestore_helpers import stream_documents, where_filter

logger = logging.getLogger(__name__)

T = TypeVar("T")

REPORTS_COLLECTION = "reports"
USERS_COLLECTION = "users"


class FirestoreReportStore(ReportStore):

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    async def _run(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(fn)
        except (ReportNotFoundError, StoreError):
            raise
        except Exception as e:
            logger.error(f"Firestore {operation} failed: {e}")
            raise StoreError(f"{operation} failed: {e}") from e

    def _query_reports(self, field: str, value) -> List[Report]:
        query = where_filter(self.db.collection(REPORTS_COLLECTION), field, "==", value)
        reports = []
        for doc_id, data in stream_documents(query):
            report = Report.from_record(data, doc_id)
            if report is not None:
                reports.append(report)
        return reports

    async def create_report(self, report: Report) -> str:
        def write():
            self.db.collection(REPORTS_COLLECTION).document(report.id).set(report.to_record())
            return report.id

        report_id = await self._run("create_report", write)
        logger.info(f"Created report {report_id} ({report.category.value})")
        return report_id

    async def get_report(self, report_id: str) -> Optional[Report]:
        def read():
            doc = self.db.collection(REPORTS_COLLECTION).document(report_id).get()
            if not doc.exists:
                return None
            return Report.from_record(doc.to_dict(), doc.id)

        return await self._run("get_report", read)

    async def query_reports_by_status(self, status: ReportStatus) -> List[Report]:
        return await self._run("query_reports_by_status", lambda: self._query_reports("status", status.value))

    async def query_reports_by_category(self, category: ReportCategory) -> List[Report]:
        return await self._run("query_reports_by_category", lambda: self._query_reports("category", category.value))

    async def query_reports_by_author(self, user_id: str) -> List[Report]:
        return await self._run("query_reports_by_author", lambda: self._query_reports("userId", user_id))

    async def update_report_status(self, report_id: str, status: ReportStatus, moderator_id: str) -> None:
        def write():
            doc_ref = self.db.collection(REPORTS_COLLECTION).document(report_id)
            if not doc_ref.get().exists:
                raise ReportNotFoundError(report_id)
            doc_ref.update({"status": status.value, "moderatorId": moderator_id})

        await self._run("update_report_status", write)

    async def get_user(self, user_id: str) -> Optional[User]:
        def read():
            doc = self.db.collection(USERS_COLLECTION).document(user_id).get()
            if not doc.exists:
                return None
            return User.from_record(doc.to_dict() or {}, doc.id)

        return await self._run("get_user", read)

    async def save_user(self, user: User) -> None:
        def write():
            self.db.collection(USERS_COLLECTION).document(user.uid).set(user.to_record(), merge=True)

        await self._run("save_user", write)

    async def get_users_with_fresh_location_and_token(self, fresh_since: datetime) -> List[LocatedUser]:
        def read():
            # Range filter on the timestamp only; token/coordinate checks happen here
            query = where_filter(
                self.db.collection(USERS_COLLECTION), "locationTimestamp", ">", fresh_since.timestamp()
            )
            located = []
            for doc_id, data in stream_documents(query):
                token = data.get("fcmToken")
                latitude = data.get("latitude")
                longitude = data.get("longitude")
                if not token or latitude is None or longitude is None:
                    continue
                located.append(LocatedUser(
                    user_id=doc_id,
                    token=token,
                    latitude=float(latitude),
                    longitude=float(longitude),
                    located_at=datetime.fromtimestamp(float(data["locationTimestamp"]), tz=timezone.utc),
                ))
            return located

        return await self._run("get_users_with_fresh_location_and_token", read)

    async def update_user_location_and_token(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        token: str,
        located_at: datetime
    ) -> None:
        def write():
            self.db.collection(USERS_COLLECTION).document(user_id).set({
                "latitude": latitude,
                "longitude": longitude,
                "locationTimestamp": located_at.timestamp(),
                "fcmToken": token,
            }, merge=True)

        await self._run("update_user_location_and_token", write)
        logger.info(f"Updated location and push token for user {user_id}")
