from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from market.services.baseline import js_round
from market.services.providers.base import guarded, to_number
from market.services.providers.serpapi import SerpApiClient

logger = logging.getLogger(__name__)

GOOGLE_WEIGHT = 0.6
HOTELS_WEIGHT = 0.4
DEMO_SOURCE = {"rating": 4.3, "reviews": 75}


@dataclass
class ReputationResult:
    q: str
    loc: str
    sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    reputation_index: int | None = None
    reviews_total: int | None = None
    mode: str = "live"
    reason: str = ""


def search_name(q: str, loc: str = "") -> str:
    name = re.sub(r"\s+", " ", q or "").strip()
    if not loc or loc.lower() in name.lower():
        return name
    return f"{name} {loc}"


def _clean(block: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in block.items() if value not in (None, "")}


def maps_source(results: list[dict[str, Any]]) -> dict[str, Any] | None:
    if not results:
        return None
    best = results[0]
    digits = re.sub(r"[^\d]", "", str(best.get("reviews") or ""))
    return _clean(
        {
            "rating": to_number(best.get("rating")),
            "reviews": int(digits) if digits else None,
            "place_id": best.get("place_id") or best.get("data_id"),
            "link": best.get("link"),
        },
    )


def hotels_source(payload: dict[str, Any]) -> dict[str, Any] | None:
    properties = payload.get("properties")
    if not isinstance(properties, list):
        properties = payload.get("results")
    if not isinstance(properties, list) or not properties or not isinstance(properties[0], dict):
        return None
    best = properties[0]
    reviews = to_number(best.get("reviews") or best.get("review_count"))
    return _clean(
        {
            "rating": to_number(best.get("overall_rating") or best.get("rating")),
            "reviews": int(reviews) if reviews is not None else None,
            "link": best.get("link") or best.get("hotel_link"),
        },
    )


def compile_reputation(
    google: dict[str, Any] | None,
    hotels: dict[str, Any] | None,
) -> tuple[int | None, int | None]:
    """Blend source ratings (0..5) into a 0..100 index and total the review counts."""
    parts = []
    if google and google.get("rating"):
        parts.append((GOOGLE_WEIGHT, google["rating"]))
    if hotels and hotels.get("rating"):
        parts.append((HOTELS_WEIGHT, hotels["rating"]))

    index = None
    if parts:
        weighted = sum(weight * rating for weight, rating in parts)
        index = js_round(weighted / sum(weight for weight, _ in parts) * 20)

    total = int((google or {}).get("reviews") or 0) + int((hotels or {}).get("reviews") or 0)
    return index, total or None


def lookup_reputation(q: str, loc: str = "", *, client: SerpApiClient | None = None) -> ReputationResult:
    client = client or SerpApiClient()
    result = ReputationResult(q=q, loc=loc)
    query = search_name(q, loc)

    google = hotels = None
    reason = ""
    if client.enabled:
        maps = guarded(lambda: maps_source(client.google_maps(query)), context="reputation maps lookup")
        listing = guarded(lambda: hotels_source(client.google_hotels(query)), context="reputation hotels lookup")
        google, hotels = maps.data, listing.data
        reason = maps.reason or listing.reason
    else:
        reason = "SERPAPI_KEY missing"

    if google:
        result.sources["google"] = google
    if hotels:
        result.sources["hotels"] = hotels
    result.reputation_index, result.reviews_total = compile_reputation(google, hotels)

    if result.reputation_index is None and not result.sources:
        logger.info("No reputation source for %r, using demo figures", query)
        demo = dict(DEMO_SOURCE)
        result.sources = {"google": demo, "demo": demo}
        result.reputation_index, result.reviews_total = compile_reputation(demo, None)
        result.mode = "demo"
        result.reason = reason or "no reputation source matched"
    return result
