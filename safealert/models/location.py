"""
Coordinate value type shared by reports, users and the device context.
"""

from typing import NamedTuple


class Coordinate(NamedTuple):
    """WGS84 coordinate in decimal degrees."""
    latitude: float
    longitude: float
