"""Tests for the Firestore store against a mocked client."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from safealert.core.errors import ReportNotFoundError, StoreError
from safealert.models.report import ReportStatus
from safealert.services.firestore_report_store import FirestoreReportStore


def _doc(doc_id, data, exists=True):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = data
    return doc


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def firestore_store(db):
    return FirestoreReportStore(db=db)


class TestReports:

    def test_query_by_status_skips_malformed(self, firestore_store, db, make_report):
        good = make_report(report_id="good")
        query = db.collection.return_value.where.return_value
        query.stream.return_value = [
            _doc("good", good.to_record()),
            _doc("bad", {"status": "approved"}),
        ]

        reports = asyncio.run(firestore_store.query_reports_by_status(ReportStatus.APPROVED))

        assert [r.id for r in reports] == ["good"]
        db.collection.assert_called_with("reports")
        db.collection.return_value.where.assert_called_with("status", "==", "approved")

    def test_sdk_error_becomes_store_error(self, firestore_store, db):
        db.collection.return_value.where.return_value.stream.side_effect = RuntimeError("unavailable")

        with pytest.raises(StoreError):
            asyncio.run(firestore_store.query_reports_by_status(ReportStatus.APPROVED))

    def test_update_missing_report(self, firestore_store, db):
        db.collection.return_value.document.return_value.get.return_value = _doc("r1", None, exists=False)

        with pytest.raises(ReportNotFoundError):
            asyncio.run(firestore_store.update_report_status("r1", ReportStatus.APPROVED, "mod-1"))

    def test_update_writes_status_and_moderator(self, firestore_store, db):
        doc_ref = db.collection.return_value.document.return_value
        doc_ref.get.return_value = _doc("r1", {})

        asyncio.run(firestore_store.update_report_status("r1", ReportStatus.REJECTED, "mod-1"))

        doc_ref.update.assert_called_once_with({"status": "rejected", "moderatorId": "mod-1"})


class TestUsers:

    def test_fresh_users_require_token_and_coordinates(self, firestore_store, db):
        now = datetime(2025, 6, 25, 12, 0, tzinfo=timezone.utc)
        located = now.timestamp()
        db.collection.return_value.where.return_value.stream.return_value = [
            _doc("ok", {"fcmToken": "t", "latitude": 32.0, "longitude": 34.0, "locationTimestamp": located}),
            _doc("no-token", {"latitude": 32.0, "longitude": 34.0, "locationTimestamp": located}),
        ]

        users = asyncio.run(firestore_store.get_users_with_fresh_location_and_token(now - timedelta(hours=2)))

        assert [u.user_id for u in users] == ["ok"]
        db.collection.return_value.where.assert_called_with(
            "locationTimestamp", ">", (now - timedelta(hours=2)).timestamp()
        )
