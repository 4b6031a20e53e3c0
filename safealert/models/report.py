"""
Pydantic models for safety reports.

Reports are created `pending` by a reporting user and moved exactly once by
a moderator into `approved` or `rejected`.
"""

from pydantic import BaseModel, Field, ValidationError
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum
import logging
import uuid

from safealert.models.location import Coordinate

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    """Report lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def display_name(self) -> str:
        return _STATUS_DISPLAY_NAMES[self]


_STATUS_DISPLAY_NAMES = {
    ReportStatus.PENDING: "Pending Review",
    ReportStatus.APPROVED: "Approved",
    ReportStatus.REJECTED: "Rejected",
}


class ReportSeverity(str, Enum):
    """
    Ordinal severity. Threshold comparisons use `priority`, never the
    enum identity.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def priority(self) -> int:
        return _SEVERITY_PRIORITIES[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_SEVERITY_PRIORITIES = {
    ReportSeverity.LOW: 1,
    ReportSeverity.MEDIUM: 2,
    ReportSeverity.HIGH: 3,
    ReportSeverity.CRITICAL: 4,
}


class ReportCategory(str, Enum):
    """Fixed report categories, each with a fixed severity."""
    THEFT = "theft"
    VANDALISM = "vandalism"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    HARASSMENT = "harassment"
    POORLY_LIT = "poorly_lit"
    EMERGENCY = "emergency"
    ASSAULT = "assault"
    DRUGS_ALCOHOL = "drugs_alcohol"
    NOISE = "noise"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _CATEGORY_INFO[self][0]

    @property
    def description(self) -> str:
        return _CATEGORY_INFO[self][1]

    @property
    def severity(self) -> ReportSeverity:
        return _CATEGORY_INFO[self][2]

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "ReportCategory":
        """Decode a stored category string; missing or unknown values become OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


_CATEGORY_INFO = {
    ReportCategory.THEFT: ("Theft", "Report stolen items, pickpocketing, or break-ins", ReportSeverity.HIGH),
    ReportCategory.VANDALISM: ("Vandalism", "Property damage, graffiti, or destruction", ReportSeverity.MEDIUM),
    ReportCategory.SUSPICIOUS_ACTIVITY: ("Suspicious Activity", "Unusual behavior or concerning activities", ReportSeverity.MEDIUM),
    ReportCategory.HARASSMENT: ("Harassment", "Verbal or physical intimidation", ReportSeverity.HIGH),
    ReportCategory.POORLY_LIT: ("Poor Lighting", "Areas with inadequate lighting for safety", ReportSeverity.LOW),
    ReportCategory.EMERGENCY: ("Emergency", "Immediate danger requiring urgent attention", ReportSeverity.CRITICAL),
    ReportCategory.ASSAULT: ("Assault", "Physical violence or threats of violence", ReportSeverity.CRITICAL),
    ReportCategory.DRUGS_ALCOHOL: ("Drugs/Alcohol", "Public intoxication or drug-related activity", ReportSeverity.MEDIUM),
    ReportCategory.NOISE: ("Noise Complaint", "Excessive noise disturbing the peace", ReportSeverity.LOW),
    ReportCategory.OTHER: ("Other", "Safety concerns not covered by other categories", ReportSeverity.LOW),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Report(BaseModel):
    """
    A geo-tagged safety report.

    `moderator_id` stays None while the report is pending and is stamped on
    the single terminal transition.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Client-generated report ID")
    user_id: str = Field(..., description="Author identifier")
    category: ReportCategory
    description: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: datetime = Field(default_factory=_utcnow, description="Creation instant (UTC)")
    status: ReportStatus = ReportStatus.PENDING
    moderator_id: Optional[str] = None
    image_url: Optional[str] = Field(None, description="Local image reference")

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def severity(self) -> ReportSeverity:
        return self.category.severity

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the stored record layout."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "category": self.category.value,
            "description": self.description,
            "imageUrl": self.image_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp.timestamp(),
            "status": self.status.value,
            "moderatorId": self.moderator_id,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any], report_id: str) -> Optional["Report"]:
        """
        Parse a stored record.

        Records missing a required field are skipped (returns None). A missing
        or unknown category decodes to OTHER.
        """
        if not isinstance(data, dict):
            return None

        if not isinstance(data.get("userId"), str) or not isinstance(data.get("description"), str):
            logger.warning(f"Skipping malformed report record {report_id}: bad userId/description")
            return None

        try:
            return cls(
                id=report_id,
                user_id=data["userId"],
                category=ReportCategory.from_raw(data.get("category")),
                description=data["description"],
                latitude=float(data["latitude"]),
                longitude=float(data["longitude"]),
                timestamp=datetime.fromtimestamp(float(data["timestamp"]), tz=timezone.utc),
                status=ReportStatus(data["status"]),
                moderator_id=data.get("moderatorId"),
                image_url=data.get("imageUrl"),
            )
        except (KeyError, TypeError, ValueError, OverflowError, ValidationError) as e:
            # Out-of-range or NaN coordinates fail model validation
            logger.warning(f"Skipping malformed report record {report_id}: {e}")
            return None


class ReportCreate(BaseModel):
    """
    Report submission request.
    Author and location come from the device session, not the request body.
    """
    category: Optional[ReportCategory] = Field(None, description="Selected category")
    description: str = Field("", max_length=1000, description="What the user observed")
    image_url: Optional[str] = Field(None, description="Local image reference")

    class Config:
        json_schema_extra = {
            "example": {
                "category": "theft",
                "description": "Bike stolen from the rack outside the library.",
            }
        }
        extra = "ignore"


class UserReports(BaseModel):
    """A user's own reports grouped by status, newest first."""
    approved: List[Report] = Field(default_factory=list)
    pending: List[Report] = Field(default_factory=list)
    rejected: List[Report] = Field(default_factory=list)

    @property
    def all(self) -> List[Report]:
        combined = self.approved + self.pending + self.rejected
        return sorted(combined, key=lambda r: r.timestamp, reverse=True)

    def counts(self) -> Dict[str, int]:
        return {
            "total": len(self.approved) + len(self.pending) + len(self.rejected),
            "approved": len(self.approved),
            "pending": len(self.pending),
            "rejected": len(self.rejected),
        }
