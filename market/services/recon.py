from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from market.services.adr import estimate_adr
from market.services.providers.amadeus import AmadeusClient
from market.services.providers.base import ProviderException, guarded, to_number
from market.services.providers.geoapify import GeoapifyClient
from market.services.providers.serpapi import SerpApiClient
from market.services.site_inspector import LODGING_TYPES, extract_address, inspect_site

logger = logging.getLogger(__name__)

AMENITY_KEYWORDS = (
    "spa",
    "piscina",
    "parcheggio",
    "pet",
    "colazione",
    "ristorante",
    "palestra",
    "navetta",
    "vista",
    "centro",
)
DIRECT_CHANNEL = "Diretto"
ADDRESS_PARTS = ("streetAddress", "postalCode", "addressLocality", "addressRegion", "addressCountry")


@dataclass
class PropertyProfile:
    name: str | None = None
    address: str | None = None
    category: str | None = None
    rating: float | None = None
    reviews: int | None = None
    coords: dict[str, float] | None = None
    amenities: list[str] | None = None
    channels: list[str] | None = None

    def as_dict(self) -> dict[str, Any]:
        return {key: value for key, value in self.__dict__.items() if value is not None}


@dataclass
class ReconResult:
    profile: PropertyProfile
    adr_monthly: list[int]
    notes: list[str] = field(default_factory=list)


def detect_amenities(text: str) -> list[str]:
    lowered = (text or "").lower()
    return [keyword for keyword in AMENITY_KEYWORDS if keyword in lowered]


def apply_maps_match(profile: PropertyProfile, best: dict[str, Any]) -> None:
    profile.name = best.get("title") or profile.name
    profile.address = best.get("address") or profile.address
    profile.category = best.get("type") or best.get("place_type") or profile.category
    profile.rating = to_number(best.get("rating")) or profile.rating
    reviews = to_number(best.get("reviews") or best.get("user_ratings_total"))
    profile.reviews = int(reviews) if reviews else profile.reviews
    gps = best.get("gps_coordinates")
    if isinstance(gps, dict):
        lat, lng = to_number(gps.get("latitude")), to_number(gps.get("longitude"))
        if lat and lng:
            profile.coords = {"lat": lat, "lng": lng}
    snippets = " · ".join(str(part) for part in (best.get("description"), best.get("snippet")) if part)
    profile.amenities = detect_amenities(snippets)


def address_from_jsonld(blocks: list[str]) -> str | None:
    for block in blocks:
        try:
            parsed = json.loads(block)
        except ValueError:
            continue
        for entity in parsed if isinstance(parsed, list) else [parsed]:
            if not isinstance(entity, dict) or entity.get("@type") not in LODGING_TYPES:
                continue
            address = entity.get("address")
            if isinstance(address, dict) and (address.get("streetAddress") or address.get("addressLocality")):
                joined = ", ".join(str(address[part]) for part in ADDRESS_PARTS if address.get(part))
                if joined:
                    return joined
    return None


def build_recon(
    *,
    name: str = "",
    loc: str = "",
    site: str = "",
    year: int | None = None,
    serpapi: SerpApiClient | None = None,
    geoapify: GeoapifyClient | None = None,
    amadeus: AmadeusClient | None = None,
) -> ReconResult:
    serpapi = serpapi or SerpApiClient()
    geoapify = geoapify or GeoapifyClient()
    amadeus = amadeus or AmadeusClient()
    notes: list[str] = []
    profile = PropertyProfile(name=name or None)
    query = " ".join(part for part in (name, loc) if part).strip()

    if serpapi.enabled and query:
        lookup = guarded(lambda: serpapi.google_maps(query), context="recon maps lookup", default=[])
        if not lookup.ok:
            notes.append("Maps: errore richiesta.")
        elif lookup.data:
            apply_maps_match(profile, lookup.data[0])
        else:
            notes.append("Maps: nessun risultato preciso.")
    else:
        notes.append("SerpAPI non disponibile: profilo ridotto.")

    if not profile.coords and query and geoapify.enabled:
        geocoded = guarded(lambda: geoapify.geocode_accommodation(query, limit=1), context="recon geocoding", default=[])
        first = geocoded.data[0] if geocoded.data else {}
        lat, lng = to_number(first.get("lat")), to_number(first.get("lon"))
        if not geocoded.ok:
            notes.append("Geoapify errore.")
        elif lat is not None and lng is not None:
            profile.coords = {"lat": lat, "lng": lng}
            profile.address = profile.address or first.get("formatted") or first.get("address_line1")
            notes.append("Coordinate ottenute da Geoapify (fallback).")
    elif not geoapify.enabled:
        notes.append("Geoapify non configurato (GEOAPIFY_KEY mancante).")

    if site:
        try:
            signals = inspect_site(site)
        except ProviderException as exc:
            logger.warning("Site inspection for %s failed: %s", site, exc)
            notes.append(f"Inspect sito: {exc}.")
        else:
            if signals.engine_vendor:
                profile.channels = list(dict.fromkeys([*(profile.channels or []), DIRECT_CHANNEL]))
                notes.append(f"Booking engine rilevato ({signals.engine_vendor}).")
            if not profile.address:
                profile.address = address_from_jsonld(signals.jsonld)
            if not profile.address and signals.footer_text.strip():
                profile.address = extract_address(signals.footer_text)

    adr_monthly = estimate_adr(loc or profile.address or "", profile.rating)
    if profile.coords and amadeus.enabled:
        rates = guarded(
            lambda: amadeus.monthly_rates(
                year=year or date.today().year,
                lat=profile.coords["lat"],
                lng=profile.coords["lng"],
            ),
            context="recon monthly rates",
        )
        if rates.ok and len(rates.data or []) == 12 and any(rates.data):
            adr_monthly = rates.data
            notes.append("ADR reale da Amadeus (mediana, 2 campioni/mese).")
        else:
            notes.append("ADR Amadeus non disponibile → usata stima.")
    elif profile.coords:
        notes.append("ADR Amadeus non configurato → usata stima.")
    else:
        notes.append("ADR: mancano coordinate → usata stima.")

    return ReconResult(profile=profile, adr_monthly=adr_monthly, notes=notes)
