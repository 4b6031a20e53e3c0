"""
User models: accounts and their last-known location / push token.
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from safealert.models.location import Coordinate


class User(BaseModel):
    """A user account tied to an auth session."""
    uid: str = Field(..., description="Auth user ID")
    email: Optional[str] = None
    is_anonymous: bool = False
    is_moderator: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_timestamp: Optional[datetime] = None
    push_token: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record = {
            "uid": self.uid,
            "email": self.email,
            "isAnonymous": self.is_anonymous,
            "isModerator": self.is_moderator,
            "createdAt": self.created_at.timestamp(),
        }
        if self.latitude is not None and self.longitude is not None:
            record["latitude"] = self.latitude
            record["longitude"] = self.longitude
        if self.location_timestamp is not None:
            record["locationTimestamp"] = self.location_timestamp.timestamp()
        if self.push_token:
            record["fcmToken"] = self.push_token
        return record

    @classmethod
    def from_record(cls, data: Dict[str, Any], uid: str) -> "User":
        location_ts = data.get("locationTimestamp")
        created_ts = data.get("createdAt")
        return cls(
            uid=uid,
            email=data.get("email"),
            is_anonymous=bool(data.get("isAnonymous", False)),
            is_moderator=bool(data.get("isModerator", False)),
            created_at=datetime.fromtimestamp(float(created_ts), tz=timezone.utc) if created_ts else datetime.now(timezone.utc),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            location_timestamp=datetime.fromtimestamp(float(location_ts), tz=timezone.utc) if location_ts else None,
            push_token=data.get("fcmToken"),
        )


class LocatedUser(BaseModel):
    """A user with a fresh location and a push token; a fan-out candidate."""
    user_id: str
    token: str
    latitude: float
    longitude: float
    located_at: datetime

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class DeviceUpdate(BaseModel):
    """
    Device session update from the UI shell.
    Any field left out keeps its current value.
    """
    user_id: Optional[str] = Field(None, description="Signed-in user ID")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    push_token: Optional[str] = Field(None, description="Push delivery token")

    class Config:
        extra = "ignore"
