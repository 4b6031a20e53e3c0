"""Tests for report records and category metadata."""

from datetime import datetime, timezone

from safealert.models.report import (
    Report,
    ReportCategory,
    ReportSeverity,
    ReportStatus,
    UserReports,
)


def _record(**overrides):
    record = {
        "userId": "u1",
        "category": "theft",
        "description": "Phone snatched",
        "latitude": 32.0,
        "longitude": 34.0,
        "timestamp": 1750852800.0,
        "status": "approved",
        "moderatorId": "mod-1",
    }
    record.update(overrides)
    return record


class TestReportRecord:

    def test_from_record(self):
        report = Report.from_record(_record(), "r1")

        assert report.id == "r1"
        assert report.category == ReportCategory.THEFT
        assert report.status == ReportStatus.APPROVED
        assert report.timestamp == datetime(2025, 6, 25, 12, 0, tzinfo=timezone.utc)
        assert report.moderator_id == "mod-1"
        assert report.image_url is None

    def test_unknown_or_missing_category_is_other(self):
        assert Report.from_record(_record(category="meteor"), "r1").category == ReportCategory.OTHER
        record = _record()
        del record["category"]
        assert Report.from_record(record, "r2").category == ReportCategory.OTHER

    def test_missing_required_field_is_skipped(self):
        record = _record()
        del record["latitude"]
        assert Report.from_record(record, "r1") is None

    def test_out_of_range_coordinates_are_skipped(self):
        assert Report.from_record(_record(latitude=91.0), "r1") is None
        assert Report.from_record(_record(longitude=-180.5), "r2") is None
        assert Report.from_record(_record(latitude=float("nan")), "r3") is None

    def test_non_numeric_coordinate_is_skipped(self):
        assert Report.from_record(_record(latitude="north"), "r1") is None

    def test_bad_status_is_skipped(self):
        assert Report.from_record(_record(status="archived"), "r1") is None

    def test_to_record_uses_stored_layout(self):
        report = Report.from_record(_record(), "r1")
        record = report.to_record()

        assert record["userId"] == "u1"
        assert record["timestamp"] == 1750852800.0
        assert record["moderatorId"] == "mod-1"
        assert Report.from_record(record, "r1") == report


class TestCategories:

    def test_every_category_has_metadata(self):
        for category in ReportCategory:
            assert category.display_name
            assert category.description
            assert isinstance(category.severity, ReportSeverity)

    def test_fixed_severities(self):
        assert ReportCategory.EMERGENCY.severity == ReportSeverity.CRITICAL
        assert ReportCategory.ASSAULT.severity == ReportSeverity.CRITICAL
        assert ReportCategory.THEFT.severity == ReportSeverity.HIGH
        assert ReportCategory.VANDALISM.severity == ReportSeverity.MEDIUM
        assert ReportCategory.NOISE.severity == ReportSeverity.LOW

    def test_severity_priority_is_ordinal(self):
        priorities = [s.priority for s in (ReportSeverity.LOW, ReportSeverity.MEDIUM, ReportSeverity.HIGH, ReportSeverity.CRITICAL)]
        assert priorities == [1, 2, 3, 4]


class TestUserReports:

    def test_empty(self):
        grouped = UserReports()
        assert grouped.all == []
        assert grouped.counts()["total"] == 0
