from __future__ import annotations

from typing import Any

from market.services.providers.base import to_number
from market.services.providers.geoapify import GeoapifyClient
from market.services.providers.nominatim import NominatimClient

NEARBY_RADIUS_BOUNDS_KM = (1.0, 25.0)
MAX_NEARBY_ITEMS = 20


def _first_category(properties: dict[str, Any]) -> str | None:
    categories = properties.get("categories")
    return str(categories[0]) if isinstance(categories, list) and categories else None


def _website(properties: dict[str, Any]) -> str | None:
    raw = (properties.get("datasource") or {}).get("raw") or {}
    return raw.get("website") or properties.get("website") or None


def search_accommodation(q: str, *, client: GeoapifyClient | None = None) -> list[dict[str, Any]]:
    client = client or GeoapifyClient()
    items = []
    for properties in client.geocode_accommodation(q, limit=5):
        lat, lng = to_number(properties.get("lat")), to_number(properties.get("lon"))
        if lat is None or lng is None:
            continue
        raw = (properties.get("datasource") or {}).get("raw") or {}
        items.append(
            {
                "id": properties.get("place_id") or properties.get("osm_id") or raw.get("osm_id"),
                "name": properties.get("name") or properties.get("address_line1") or properties.get("formatted") or "",
                "lat": lat,
                "lng": lng,
                "address": properties.get("formatted") or "",
                "category": _first_category(properties),
                "website": _website(properties),
            },
        )
    return items


def clamp_nearby_radius(value: Any) -> float:
    radius = to_number(value)
    low, high = NEARBY_RADIUS_BOUNDS_KM
    return max(low, min(high, radius if radius is not None else 5.0))


def nearby_accommodation(
    lat: float,
    lng: float,
    radius_km: float,
    *,
    client: GeoapifyClient | None = None,
) -> list[dict[str, Any]]:
    client = client or GeoapifyClient()
    seen: set[str] = set()
    items = []
    for properties in client.nearby_accommodation(lat=lat, lng=lng, radius_km=clamp_nearby_radius(radius_km)):
        title = properties.get("name") or properties.get("address_line1") or properties.get("formatted") or ""
        place_lat, place_lng = to_number(properties.get("lat")), to_number(properties.get("lon"))
        if not title or place_lat is None or place_lng is None:
            continue
        key = title.lower().strip()
        if key in seen:
            continue
        seen.add(key)
        items.append(
            {
                "title": title,
                "address": properties.get("formatted") or "",
                "lat": place_lat,
                "lng": place_lng,
                "website": _website(properties),
                "category": _first_category(properties),
            },
        )
    return items[:MAX_NEARBY_ITEMS]


def geocode(q: str, *, client: NominatimClient | None = None) -> list[dict[str, Any]]:
    client = client or NominatimClient()
    results = []
    for place in client.search(q, limit=5):
        lat, lng = to_number(place.get("lat")), to_number(place.get("lon"))
        if lat is not None and lng is not None:
            results.append({"lat": lat, "lng": lng, "name": place.get("display_name")})
    return results


def reverse_geocode(lat: float, lng: float, *, client: NominatimClient | None = None) -> str:
    client = client or NominatimClient()
    payload = client.reverse(lat=lat, lng=lng)
    return payload.get("display_name") or f"{lat},{lng}"
