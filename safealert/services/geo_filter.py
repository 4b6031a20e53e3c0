"""
Great-circle distance and radius containment over WGS84 coordinates.

Pure functions, no validation: NaN or missing coordinates are a caller
contract violation.
"""

import math
from typing import Callable, Iterable, List, Tuple, TypeVar

from safealert.models.location import Coordinate

EARTH_RADIUS_M = 6371000.0

T = TypeVar("T")


def distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two coordinates, in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)
    h = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def is_within(radius_m: float, center: Coordinate, point: Coordinate) -> bool:
    """True if `point` lies within `radius_m` of `center` (boundary inclusive)."""
    return distance(center, point) <= radius_m


def within_radius(
    radius_m: float,
    center: Coordinate,
    items: Iterable[T],
    coordinate_of: Callable[[T], Coordinate],
) -> List[Tuple[T, float]]:
    """
    Keep the items within `radius_m` of `center`, paired with their distance.
    Input order is preserved.
    """
    nearby = []
    for item in items:
        d = distance(center, coordinate_of(item))
        if d <= radius_m:
            nearby.append((item, d))
    return nearby
