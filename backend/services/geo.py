from __future__ import annotations

import math
from collections.abc import Sequence

from backend.core.config import settings

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.32

Coordinates = Sequence[float]


def is_valid_location(coords: Coordinates | None) -> bool:
    """True for a [longitude, latitude] pair other than the unset [0, 0]."""
    if coords is None or len(coords) != 2:
        return False
    try:
        lon, lat = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return False
    if math.isnan(lon) or math.isnan(lat):
        return False
    return lon != 0 or lat != 0


def distance_km(origin: Coordinates | None, target: Coordinates | None) -> float:
    """Haversine distance between two [longitude, latitude] pairs.

    Missing or unset coordinates yield the configured sentinel so that a
    profile is never dropped only because its location is unknown.
    """
    if not is_valid_location(origin) or not is_valid_location(target):
        return settings.distance_sentinel_km
    assert origin is not None and target is not None

    lon1, lat1 = float(origin[0]), float(origin[1])
    lon2, lat2 = float(target[0]), float(target[1])

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(
    origin: Coordinates, radius_km: float
) -> tuple[float, float, float, float] | None:
    """(min_lon, max_lon, min_lat, max_lat) covering radius_km around origin.

    Returns None when the box would wrap a pole or the antimeridian, in which
    case callers should not prefilter on longitude.
    """
    lon, lat = float(origin[0]), float(origin[1])
    d_lat = radius_km / KM_PER_DEGREE_LAT
    min_lat, max_lat = lat - d_lat, lat + d_lat
    if min_lat <= -90 or max_lat >= 90:
        return None
    d_lon = radius_km / (KM_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    min_lon, max_lon = lon - d_lon, lon + d_lon
    if min_lon < -180 or max_lon > 180:
        return None
    return (min_lon, max_lon, min_lat, max_lat)
