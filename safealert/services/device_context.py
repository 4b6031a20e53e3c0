"""
Device session state: who is signed in and where the device is.
Written by the UI shell, read by the polling engine and report submission.
"""

from typing import Optional

from safealert.models.location import Coordinate


class DeviceContext:
    def __init__(self, user_id: Optional[str] = None, location: Optional[Coordinate] = None):
        self.user_id = user_id
        self.location = location
        self.push_token: Optional[str] = None

    def update_location(self, latitude: float, longitude: float) -> None:
        self.location = Coordinate(latitude, longitude)

    def sign_in(self, user_id: str) -> None:
        self.user_id = user_id

    def sign_out(self) -> None:
        self.user_id = None
