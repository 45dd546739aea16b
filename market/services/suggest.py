from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any

from market.services.providers.base import guarded, to_number
from market.services.providers.nominatim import NominatimClient
from market.services.providers.serpapi import SerpApiClient

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 12


def slug(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return re.sub(r"[^a-z0-9]+", " ", stripped).strip()


def _coords(lat: Any, lng: Any) -> dict[str, float] | None:
    lat_value, lng_value = to_number(lat), to_number(lng)
    if not lat_value or not lng_value:
        return None
    return {"lat": lat_value, "lng": lng_value}


def _from_maps(result: dict[str, Any]) -> dict[str, Any]:
    gps = result.get("gps_coordinates") if isinstance(result.get("gps_coordinates"), dict) else {}
    item = {
        "title": result.get("title") or "",
        "address": result.get("address"),
        "rating": to_number(result.get("rating")) or None,
        "reviews": to_number(result.get("reviews")) or to_number(result.get("user_ratings_total")) or None,
        "coords": _coords(gps.get("latitude"), gps.get("longitude")),
        "phone": result.get("phone"),
        "url": result.get("link") or result.get("website"),
    }
    if item["reviews"] is not None:
        item["reviews"] = int(item["reviews"])
    return {key: value for key, value in item.items() if value is not None}


def _from_nominatim(result: dict[str, Any]) -> dict[str, Any]:
    display = str(result.get("display_name") or "")
    item = {
        "title": display.split(",")[0] or result.get("name") or "",
        "address": display or None,
        "coords": _coords(result.get("lat"), result.get("lon")),
    }
    return {key: value for key, value in item.items() if value is not None}


def dedupe(items: list[dict[str, Any]], *, exclude: str = "") -> list[dict[str, Any]]:
    reference = slug(exclude)
    seen: set[str] = set()
    cleaned: list[dict[str, Any]] = []
    for item in items:
        key = slug(item.get("title", ""))
        if not key or key in seen:
            continue
        seen.add(key)
        if reference and reference in key:
            continue
        cleaned.append(item)
    return cleaned[:MAX_SUGGESTIONS]


def viewbox_from_bbox(bbox: Any) -> str | None:
    # Nominatim answers [south, north, west, east]; viewbox wants west,north,east,south.
    if not isinstance(bbox, list) or len(bbox) != 4:
        return None
    south, north, west, east = bbox
    return f"{west},{north},{east},{south}"


def suggest_competitors(
    *,
    name: str = "",
    loc: str = "",
    serpapi: SerpApiClient | None = None,
    nominatim: NominatimClient | None = None,
) -> list[dict[str, Any]]:
    serpapi = serpapi or SerpApiClient()
    nominatim = nominatim or NominatimClient()

    if serpapi.enabled and (name or loc):
        query = " ".join(part for part in (name, loc) if part)
        found = guarded(lambda: serpapi.google_maps(query), context="suggest maps search", default=[]).data or []
        if not found and loc:
            found = guarded(lambda: serpapi.google_maps(f"hotel {loc}"), context="suggest maps search", default=[]).data or []
        return dedupe([_from_maps(result) for result in found], exclude=name)

    if not loc:
        return []

    area = guarded(lambda: nominatim.search(loc, limit=1, output_format="jsonv2"), context="suggest area lookup", default=[])
    viewbox = viewbox_from_bbox(area.data[0].get("boundingbox")) if area.data else None
    hotels = guarded(
        lambda: nominatim.search(f"hotel {loc}", limit=20, viewbox=viewbox, output_format="jsonv2"),
        context="suggest hotel lookup",
        default=[],
    )
    return dedupe([_from_nominatim(result) for result in hotels.data or []], exclude=name)
