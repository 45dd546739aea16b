from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    s1 = math.sin(d_lat / 2)
    s2 = math.sin(d_lng / 2)
    a = s1 * s1 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * s2 * s2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_coordinate(lat, lng) -> bool:  # noqa: ANN001
    try:
        lat_value, lng_value = float(lat), float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_value) and math.isfinite(lng_value)):
        return False
    return -90 <= lat_value <= 90 and -180 <= lng_value <= 180
