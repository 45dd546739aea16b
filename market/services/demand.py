"""Month-level demand synthesis for a place.

Independent signals are gathered concurrently (search interest, nearby
competitors, Amadeus offers, Google Hotels prices, web price snippets) and
handed to the chat model, which returns a per-day ADR and pressure curve. When
the model is unavailable or answers without days, a smooth demo curve anchored
on the competitor price estimates is served instead.
"""

from __future__ import annotations

import calendar
import json
import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
from statistics import median
from typing import Any

from django.utils import timezone

from market.services.baseline import js_round
from market.services.competitors import CompetitorResult, find_competitors
from market.services.config import upstream_workers
from market.services.providers.amadeus import SAMPLE_DAYS, AmadeusClient, offer_price
from market.services.providers.base import guarded, to_number
from market.services.providers.openai_chat import OpenAIChatClient, parse_json_reply
from market.services.providers.serpapi import SerpApiClient
from market.services.trends import search_interest

logger = logging.getLogger(__name__)

HOTELS_SAMPLE_DAYS = (2, 5, 8, 11, 14, 17, 20, 23, 26)
DEFAULT_SOURCE_WEIGHTS = {"google": 0.3, "amadeus": 0.4, "ai_web": 0.3}
DEFAULT_BASE_ADR = 120
MAX_SNIPPETS = 10
MAX_TREND_POINTS = 60
SNIPPET_SITES = "site:booking.com OR site:expedia.it OR site:airbnb.it"
_SNIPPET_PRICE = re.compile(r"€\s?(\d{2,3})")
_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")

SYNTHESIS_PROMPT = (
    "Sei Revy, sintetizza in SOLO JSON. Campi richiesti: days[{date, adr, pressure, confidence}], "
    "top_competitors[{name, rating, reviews, distance_km, price_snippet}], source_weights{google,amadeus,ai_web}. "
    "Usa i dati forniti; stima adr/pressure per il mese. confidence 0–1. Niente testo fuori dal JSON."
)
SYNTHESIS_NOTES = (
    "Usa hotels_sample (P50) come baseline ADR; armonizza con Amadeus e snippets; restituisci only JSON."
)


@dataclass
class DemandQuery:
    place: str = ""
    lat: float | None = None
    lng: float | None = None
    radius_km: float = 30
    month: str = ""

    @property
    def center(self) -> tuple[float, float] | None:
        if self.lat is None or self.lng is None:
            return None
        return self.lat, self.lng

    @property
    def label(self) -> str:
        return self.place or f"{self.lat},{self.lng}"


def resolve_month(value: str, today: date | None = None) -> tuple[int, int]:
    match = _MONTH_KEY.match(value or "")
    if match and 1 <= int(match.group(2)) <= 12:
        return int(match.group(1)), int(match.group(2))
    today = today or timezone.localdate()
    return today.year, today.month


def sample_dates(year: int, month: int) -> list[date]:
    days_in_month = calendar.monthrange(year, month)[1]
    return [date(year, month, day) for day in HOTELS_SAMPLE_DAYS if day <= days_in_month]


def hotels_p50(properties: list[Any]) -> float | None:
    prices: list[float] = []
    for prop in properties:
        if not isinstance(prop, dict):
            continue
        total_rate = prop.get("total_rate") if isinstance(prop.get("total_rate"), dict) else {}
        per_night = total_rate.get("rate_per_night") if isinstance(total_rate.get("rate_per_night"), dict) else {}
        lowest = to_number(total_rate.get("lowest")) or to_number(per_night.get("lowest"))
        if lowest is not None:
            prices.append(lowest)
        for offer in prop.get("prices") or []:
            if not isinstance(offer, dict):
                continue
            rate = offer.get("rate_per_night") if isinstance(offer.get("rate_per_night"), dict) else {}
            lowest = to_number(rate.get("lowest")) or to_number(offer.get("lowest"))
            if lowest is not None:
                prices.append(lowest)
    return median(prices) if prices else None


def snippet_price(text: str) -> int | None:
    match = _SNIPPET_PRICE.search(text or "")
    return int(match.group(1)) if match else None


def google_signal(query: DemandQuery, client: SerpApiClient) -> dict[str, Any]:
    if not client.enabled or not query.place:
        return {"ok": False, "values": [], "raw_points": []}
    fetched = guarded(lambda: search_interest(query.place, client=client), context="demand trend")
    if not fetched.ok:
        return {"ok": False, "values": [], "raw_points": []}
    scores = [point["score"] for point in fetched.data.points]
    peak = max([1, *scores])
    return {
        "ok": True,
        "values": [score / peak for score in scores],
        "raw_points": fetched.data.points[:MAX_TREND_POINTS],
    }


def hotels_sample(label: str, year: int, month: int, client: SerpApiClient) -> dict[str, Any]:
    if not client.enabled:
        return {"ok": False, "mode": "demo", "samples": [], "reason": "SERPAPI_KEY missing"}
    samples = []
    for check_in in sample_dates(year, month):
        fetched = guarded(
            lambda check_in=check_in: client.google_hotels(
                label,
                check_in=check_in.isoformat(),
                check_out=(check_in + timedelta(days=1)).isoformat(),
            ),
            context="demand hotels sample",
            default={},
        )
        properties = (fetched.data or {}).get("properties")
        samples.append({"date": check_in.isoformat(), "p50": hotels_p50(properties if isinstance(properties, list) else [])})
    return {"ok": True, "mode": "live", "samples": samples}


def web_snippets(place: str, client: SerpApiClient) -> dict[str, Any]:
    if not client.enabled:
        return {"ok": False, "items": [], "mode": "demo", "reason": "SERPAPI_KEY missing"}
    q = f"{SNIPPET_SITES} {place} prezzo camera notte"
    fetched = guarded(lambda: client.google_search(q), context="demand web snippets", default=[])
    if not fetched.ok:
        return {"ok": False, "items": [], "mode": "demo", "reason": fetched.reason}
    items = []
    for result in fetched.data[:MAX_SNIPPETS]:
        about = result.get("about_this_result") if isinstance(result.get("about_this_result"), dict) else {}
        source = about.get("source") if isinstance(about.get("source"), dict) else {}
        text = " ".join(str(part) for part in (result.get("snippet"), source.get("description")) if part)
        items.append({"title": result.get("title"), "link": result.get("link"), "price_from_snippet": snippet_price(text)})
    return {"ok": True, "items": items, "mode": "live"}


def amadeus_summary(center: tuple[float, float] | None, year: int, month: int, client: AmadeusClient) -> dict[str, Any]:
    if not client.enabled or center is None:
        return {"ok": True, "days": [], "mode": "demo"}
    days = []
    for day in SAMPLE_DAYS:
        check_in = date(year, month, min(day, calendar.monthrange(year, month)[1]))
        fetched = guarded(
            lambda check_in=check_in: client.hotel_offers(check_in=check_in, lat=center[0], lng=center[1]),
            context="demand amadeus offers",
            default=[],
        )
        hotels = fetched.data or []
        priced = [
            min(prices)
            for prices in (
                [price for price in (offer_price(offer) for offer in hotel.get("offers") or []) if price is not None]
                for hotel in hotels
            )
            if prices
        ]
        if priced:
            days.append(
                {
                    "date": check_in.isoformat(),
                    "adr_median": js_round(median(priced)),
                    "availability_ratio": round(len(priced) / len(hotels), 2),
                },
            )
    return {"ok": True, "days": days, "mode": "live" if days else "demo"}


def synthesize(payload: dict[str, Any], client: OpenAIChatClient) -> dict[str, Any]:
    if not client.enabled:
        return {"ok": True, "mode": "demo", "days": [], "top_competitors": [], "source_weights": dict(DEFAULT_SOURCE_WEIGHTS)}
    fetched = guarded(
        lambda: client.complete(
            [
                {"role": "system", "content": SYNTHESIS_PROMPT},
                {"role": "user", "content": json.dumps(payload, default=str)},
            ],
        ),
        context="demand synthesis",
        default="",
    )
    parsed = parse_json_reply(fetched.data or "")
    if parsed is None:
        logger.warning("Demand synthesis reply could not be parsed as JSON")
        return {"ok": False, "mode": "live", "error": "AI parse failed", "raw": fetched.data or ""}
    return {"ok": True, "mode": "live", **parsed}


def demo_days(year: int, month: int, competitors: CompetitorResult, *, snippets_live: bool) -> list[dict[str, Any]]:
    mids = [item.prices_demo["mid"] for item in competitors.items if item.prices_demo and item.prices_demo.get("mid")]
    base_adr = median(mids) if mids else DEFAULT_BASE_ADR
    end = calendar.monthrange(year, month)[1]
    confidence = 0.65 if snippets_live else 0.5
    days = []
    for index in range(end):
        bump = math.sin(index / end * math.pi)
        days.append(
            {
                "date": date(year, month, index + 1).isoformat(),
                "adr": js_round(base_adr * (0.85 + 0.4 * bump)),
                "pressure": js_round(100 * max(0.0, min(1.0, 0.4 + 0.5 * bump))),
                "confidence": confidence,
                "interpolated": True,
            },
        )
    return days


def synthesize_demand(
    query: DemandQuery,
    *,
    serpapi: SerpApiClient | None = None,
    amadeus: AmadeusClient | None = None,
    chat: OpenAIChatClient | None = None,
) -> dict[str, Any]:
    serpapi = serpapi or SerpApiClient()
    amadeus = amadeus or AmadeusClient()
    chat = chat or OpenAIChatClient()
    year, month = resolve_month(query.month)

    with ThreadPoolExecutor(max_workers=upstream_workers()) as executor:
        google_future = executor.submit(google_signal, query, serpapi)
        competitors_future = executor.submit(
            find_competitors,
            center=query.center,
            place=query.place,
            radius_km=query.radius_km,
            client=serpapi,
        )
        hotels_future = executor.submit(hotels_sample, query.label, year, month, serpapi)
        snippets_future = executor.submit(web_snippets, query.place, serpapi)
        competitors = competitors_future.result()
        center = query.center
        if center is None and competitors.mode == "live":
            center = competitors.center
        amadeus_data = amadeus_summary(center, year, month, amadeus)
        google = google_future.result()
        hotels = hotels_future.result()
        snippets = snippets_future.result()

    payload = {
        "month": query.month,
        "place": query.place,
        "radius_km": query.radius_km,
        "google": {"values": google["values"], "raw_points": google["raw_points"]},
        "hotels_sample": hotels,
        "competitors": {"items": [item.as_dict() for item in competitors.items]},
        "amadeus": amadeus_data,
        "web_snippets": snippets,
        "notes": SYNTHESIS_NOTES,
    }
    ai = synthesize(payload, chat)

    days = ai.get("days") if isinstance(ai.get("days"), list) else []
    if ai.get("ok") and days:
        mode = "live"
    else:
        days = demo_days(year, month, competitors, snippets_live=snippets["ok"])
        upstream_live = google["ok"] or hotels["ok"] or snippets["ok"] or competitors.mode == "live"
        mode = "partial" if upstream_live else "demo"

    top_competitors = ai.get("top_competitors") if isinstance(ai.get("top_competitors"), list) else []
    source_weights = ai.get("source_weights") if isinstance(ai.get("source_weights"), dict) else None
    return {
        "ok": True,
        "mode": mode,
        "days": days,
        "top_competitors": top_competitors,
        "source_weights": source_weights or dict(DEFAULT_SOURCE_WEIGHTS),
        "meta": {
            "ts": timezone.now().isoformat(),
            "amadeus": {"coverage_ratio": 1 if amadeus_data["days"] else 0},
        },
    }
