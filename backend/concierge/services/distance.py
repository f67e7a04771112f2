"""Great-circle distance helpers for the service-area check."""
from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_MILES = 3958.7613


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass(frozen=True, slots=True)
class DistanceCheck:
    distance_miles: float
    allowed: bool


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def within_radius(lat: float, lon: float, center: GeoPoint, radius_miles: float) -> DistanceCheck:
    """Return the distance to ``center`` and whether it is inside the radius (inclusive)."""

    distance = haversine_miles(lat, lon, center.lat, center.lon)
    return DistanceCheck(distance_miles=distance, allowed=distance <= radius_miles)
