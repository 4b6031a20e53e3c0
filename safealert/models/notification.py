"""
Notification models for local notifications, preferences and fan-out results.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any

from safealert.models.report import ReportCategory, ReportSeverity


class LocalNotification(BaseModel):
    """A notification shown on this device."""
    identifier: str = Field(..., description="Stable ID; re-scheduling the same ID replaces it")
    title: str
    body: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    category_identifier: Optional[str] = None


class PreferencesSnapshot(BaseModel):
    """Current notification filter criteria."""
    radius_m: float
    enabled_categories: List[ReportCategory]
    severity_threshold: ReportSeverity


class PreferencesUpdate(BaseModel):
    """Partial preferences update; omitted fields are left unchanged."""
    radius_m: Optional[float] = Field(None, gt=0, description="Notification radius in meters (500-5000)")
    enabled_categories: Optional[List[ReportCategory]] = None
    severity_threshold: Optional[ReportSeverity] = None

    class Config:
        extra = "ignore"


class FanOutResult(BaseModel):
    """Outcome of one approval fan-out."""
    report_id: str
    candidate_count: int = 0
    recipient_ids: List[str] = Field(default_factory=list)
    failed_ids: List[str] = Field(default_factory=list)


class PollingCycleResult(BaseModel):
    """Outcome of one polling cycle."""
    skipped_reason: Optional[str] = Field(None, description="Why the cycle stopped early, if it did")
    fetched_count: int = 0
    nearby_count: int = 0
    new_count: int = 0
    notified_ids: List[str] = Field(default_factory=list)
    completed_at: Optional[datetime] = None


class PollingStatus(BaseModel):
    """Snapshot of the polling engine for UI shells."""
    running: bool
    interval_seconds: float
    last_polling_time: Optional[datetime] = None
    seen_count: int = 0
    cycle_in_flight: bool = False
