"""Geo — haversine distance, distance labels and the event proximity bonus."""

from __future__ import annotations

import math

from src.tastematch.models import GeoPoint, GeoResult

EARTH_RADIUS_KM = 6371.0
NEUTRAL_BONUS = 50

# (upper bound km, label)
DISTANCE_BUCKETS: list[tuple[float, str]] = [
    (1, "< 1 km"),
    (5, "< 5 km"),
    (10, "< 10 km"),
    (25, "< 25 km"),
    (50, "< 50 km"),
    (100, "< 100 km"),
]
FAR_BUCKET = "> 100 km"

# (upper bound km, bonus)
GEO_BONUSES: list[tuple[float, int]] = [
    (5, 100),
    (15, 85),
    (30, 70),
    (50, 55),
    (100, 40),
]
FAR_BONUS = 20


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    h = min(h, 1.0)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_bucket(distance_km: float) -> str:
    for limit, name in DISTANCE_BUCKETS:
        if distance_km < limit:
            return name
    return FAR_BUCKET


def distance_bonus(distance_km: float) -> int:
    for limit, bonus in GEO_BONUSES:
        if distance_km < limit:
            return bonus
    return FAR_BONUS


def geo_score(origin: GeoPoint | None, destination: GeoPoint | None) -> GeoResult:
    """Neutral 50 with no distance when either side lacks coordinates."""
    if origin is None or destination is None:
        return GeoResult(bonus=NEUTRAL_BONUS)
    km = haversine_km(origin, destination)
    return GeoResult(distance_km=km, bucket=distance_bucket(km), bonus=distance_bonus(km))
