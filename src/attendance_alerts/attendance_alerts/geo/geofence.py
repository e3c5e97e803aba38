from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..core.constants import EARTH_RADIUS_METERS, GEOFENCE_RADIUS_METERS


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points (haversine, mean Earth radius)."""

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(
    expected: Optional[GeoPoint],
    actual: Optional[GeoPoint],
    max_meters: float = GEOFENCE_RADIUS_METERS,
) -> bool:
    if expected is None or actual is None:
        return False
    return distance_meters(expected, actual) <= max_meters
