from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from statistics import median
from typing import Any

from market.services.config import amadeus_environment
from market.services.providers.amadeus import AmadeusClient

# Bellagio, on Lake Como: a reliably populated sandbox area.
PING_DEFAULT_CENTER = (45.985, 9.257)
PING_RADIUS_BOUNDS_KM = (2, 30)
PING_NIGHTS_BOUNDS = (1, 7)
PING_SAMPLE_SIZE = 10


@dataclass
class PingQuery:
    lat: float = PING_DEFAULT_CENTER[0]
    lng: float = PING_DEFAULT_CENTER[1]
    radius_km: float = 12
    check_in: date | None = None
    nights: int = 1


def amadeus_ping(query: PingQuery, *, client: AmadeusClient | None = None) -> dict[str, Any]:
    client = client or AmadeusClient()
    radius = max(PING_RADIUS_BOUNDS_KM[0], min(PING_RADIUS_BOUNDS_KM[1], query.radius_km))
    nights = max(PING_NIGHTS_BOUNDS[0], min(PING_NIGHTS_BOUNDS[1], query.nights))
    check_in = query.check_in or date.today()
    minimums = client.min_price_per_hotel(
        lat=query.lat,
        lng=query.lng,
        radius_km=radius,
        check_in=check_in,
        nights=nights,
    )
    return {
        "ok": True,
        "env": amadeus_environment(),
        "query": {
            "lat": query.lat,
            "lng": query.lng,
            "radiusKm": radius,
            "checkIn": check_in.isoformat(),
            "nights": nights,
        },
        "stats": {
            "hotels_with_offers": len(minimums),
            "median_min_price": median(minimums) if minimums else 0,
        },
        "sample": minimums[:PING_SAMPLE_SIZE],
    }


def monthly_rates(
    *,
    year: int,
    hotel_id: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    radius_km: float = 10,
    client: AmadeusClient | None = None,
) -> list[int]:
    client = client or AmadeusClient()
    return client.monthly_rates(year=year, hotel_id=hotel_id, lat=lat, lng=lng, radius_km=radius_km)
