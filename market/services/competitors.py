from __future__ import annotations

import logging
import random
import re
from dataclasses import asdict, dataclass, field
from typing import Any

from django.utils import timezone

from market.services.geo import haversine_km, is_coordinate
from market.services.providers.base import guarded, to_number
from market.services.providers.serpapi import SerpApiClient

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "agriturismo"
DEFAULT_RADIUS_KM = 30.0
DEFAULT_LIMIT = 12
RADIUS_BOUNDS_KM = (1.0, 60.0)
LIMIT_BOUNDS = (3, 20)
DEMO_ITEM_COUNT = 6
# Roughly Torre dei Corsari, on the Oristano coast.
DEMO_CENTER = (39.6908, 8.4869)
DEMO_PRICE_NOTE = "Prezzi stimati [demo] basati su rating e area."


@dataclass
class Competitor:
    name: str
    lat: float
    lng: float
    distance_km: float
    address: str | None = None
    link: str | None = None
    rating: float | None = None
    reviews: int | None = None
    prices_demo: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class CompetitorResult:
    mode: str
    center: tuple[float, float]
    radius_km: float
    category: str
    items: list[Competitor] = field(default_factory=list)
    reason: str = ""

    def as_payload(self) -> dict[str, Any]:
        meta: dict[str, Any] = {
            "mode": self.mode,
            "ts": timezone.now().isoformat(),
            "category": self.category,
        }
        if self.reason:
            meta["reason"] = self.reason
        return {
            "ok": True,
            "meta": meta,
            "center": {"lat": self.center[0], "lng": self.center[1]},
            "radius_km": self.radius_km,
            "category": self.category,
            "items": [item.as_dict() for item in self.items],
        }


def _bounded(value: Any, default: float, low: float, high: float) -> float:
    number = to_number(value)
    if number is None:
        number = default
    return max(low, min(high, number))


def clamp_radius_km(value: Any) -> float:
    return _bounded(value, DEFAULT_RADIUS_KM, *RADIUS_BOUNDS_KM)


def clamp_limit(value: Any) -> int:
    return int(_bounded(value, DEFAULT_LIMIT, *LIMIT_BOUNDS))


def estimate_prices_demo(rating: float | None) -> dict[str, Any]:
    if rating is not None and rating >= 4.6:
        anchor = 150
    elif rating is not None and rating >= 4.3:
        anchor = 130
    else:
        anchor = 110
    return {
        "low": max(70, anchor - 25),
        "mid": anchor,
        "high": anchor + 40,
        "note": DEMO_PRICE_NOTE,
    }


def _parse_reviews(value: Any) -> int | None:
    digits = re.sub(r"[^\d]", "", str(value or ""))
    return int(digits) or None if digits else None


def _competitor_from_result(result: dict[str, Any], center: tuple[float, float]) -> Competitor | None:
    gps = result.get("gps_coordinates")
    if not isinstance(gps, dict):
        return None
    lat = to_number(gps.get("latitude"))
    lng = to_number(gps.get("longitude"))
    if lat is None or lng is None:
        return None
    distance = haversine_km(center[0], center[1], lat, lng)
    return Competitor(
        name=str(result.get("title") or result.get("name") or "Senza nome"),
        lat=lat,
        lng=lng,
        address=result.get("address") or result.get("full_address") or None,
        link=result.get("link") or None,
        rating=to_number(result.get("rating")) or None,
        reviews=_parse_reviews(result.get("reviews")),
        distance_km=round(distance, 1),
    )


def nearest_competitors(
    results: list[dict[str, Any]],
    center: tuple[float, float],
    *,
    radius_km: float,
    limit: int,
) -> list[Competitor]:
    candidates = [_competitor_from_result(result, center) for result in results if isinstance(result, dict)]
    within = [item for item in candidates if item is not None and item.distance_km <= radius_km]
    within.sort(key=lambda item: item.distance_km)
    return within[:limit]


def demo_competitors(
    center: tuple[float, float],
    *,
    category: str,
    radius_km: float,
    limit: int,
    min_distance_km: float = 0.0,
) -> list[Competitor]:
    # Seeded per query so a dashboard refresh shows the same placeholders.
    rng = random.Random(f"{category}:{center[0]:.4f}:{center[1]:.4f}:{radius_km}")
    label = (category or DEFAULT_CATEGORY).strip().capitalize()
    low = min(min_distance_km, radius_km)
    items: list[Competitor] = []
    for index in range(1, DEMO_ITEM_COUNT + 1):
        distance = min(radius_km, round(rng.uniform(low, radius_km), 1))
        items.append(
            Competitor(
                name=f"{label} Demo {index}",
                lat=center[0] + (rng.random() - 0.5) * 0.12,
                lng=center[1] + (rng.random() - 0.5) * 0.12,
                distance_km=distance,
                rating=round(4.1 + rng.random() * 0.7, 2),
                reviews=25 + rng.randrange(150),
            ),
        )
    items.sort(key=lambda item: item.distance_km)
    return items[:limit]


def geocode_place(client: SerpApiClient, place: str) -> tuple[float, float] | None:
    results = client.google_maps(place)
    if not results:
        return None
    gps = results[0].get("gps_coordinates")
    if isinstance(gps, dict) and is_coordinate(gps.get("latitude"), gps.get("longitude")):
        return float(gps["latitude"]), float(gps["longitude"])
    return None


def find_competitors(
    *,
    center: tuple[float, float] | None = None,
    place: str = "",
    category: str = DEFAULT_CATEGORY,
    radius_km: Any = DEFAULT_RADIUS_KM,
    limit: Any = DEFAULT_LIMIT,
    client: SerpApiClient | None = None,
) -> CompetitorResult:
    client = client or SerpApiClient()
    category = (category or DEFAULT_CATEGORY).strip()
    place = (place or "").strip()
    radius = clamp_radius_km(radius_km)
    max_items = clamp_limit(limit)

    if not client.enabled:
        origin = center or DEMO_CENTER
        items = demo_competitors(origin, category=category, radius_km=radius, limit=max_items)
        return _with_prices(
            CompetitorResult(
                mode="demo",
                reason="SERPAPI_KEY missing",
                center=origin,
                radius_km=radius,
                category=category,
                items=items,
            ),
        )

    resolved = center
    if resolved is None and place:
        resolved = guarded(lambda: geocode_place(client, place), context="competitor geocoding").data
    if resolved is None:
        resolved = DEMO_CENTER

    query = f"{category} {place}".strip()
    search = guarded(lambda: client.google_maps(query), context="competitor search", default=[])
    items = nearest_competitors(search.data or [], resolved, radius_km=radius, limit=max_items)

    mode = "live"
    reason = ""
    if not items:
        mode = "demo"
        reason = search.reason or "no comparable properties within radius"
        logger.info("Competitor search for %r returned nothing usable, serving demo set", query)
        items = demo_competitors(
            resolved,
            category=category,
            radius_km=radius,
            limit=max_items,
            min_distance_km=3.0,
        )

    return _with_prices(
        CompetitorResult(
            mode=mode,
            reason=reason,
            center=resolved,
            radius_km=radius,
            category=category,
            items=items,
        ),
    )


def _with_prices(result: CompetitorResult) -> CompetitorResult:
    for item in result.items:
        item.prices_demo = estimate_prices_demo(item.rating)
    return result
