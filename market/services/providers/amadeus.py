from __future__ import annotations

import time
from datetime import date, timedelta
from statistics import median
from typing import Any

from django.core.cache import cache

from market.services.baseline import js_round
from market.services.config import amadeus_base_url, amadeus_credentials, default_currency
from market.services.providers.base import ProviderException, ProviderMixin, to_number

TOKEN_REFRESH_MARGIN_SECONDS = 15
SAMPLE_DAYS = (12, 26)
MAX_SAMPLE_RADIUS_KM = 30

_PRICE_PATHS = (
    ("total",),
    ("base",),
    ("variations", "average", "base"),
    ("variations", "average", "total"),
    ("variations", "changes", 0, "base"),
    ("variations", "changes", 0, "total"),
)


def _dig(node: Any, path: tuple) -> Any:
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[step] if isinstance(step, int) else node.get(step)
    return node


def offer_price(offer: dict[str, Any]) -> float | None:
    price = offer.get("price") if isinstance(offer, dict) else None
    for path in _PRICE_PATHS:
        value = to_number(_dig(price, path))
        if value is not None:
            return value
    return None


def median_price(values: list[float]) -> int:
    if not values:
        return 0
    return js_round(median(values))


class AmadeusClient(ProviderMixin):
    name = "amadeus"
    timeout_seconds = 12

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
    ) -> None:
        env_id, env_secret = amadeus_credentials()
        self.client_id = client_id if client_id is not None else env_id
        self.client_secret = client_secret if client_secret is not None else env_secret
        self.base_url = (base_url or amadeus_base_url()).rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _token_cache_key(self) -> str:
        return f"amadeus:token:{self.base_url}:{self.client_id}"

    def access_token(self) -> str:
        if not self.enabled:
            raise ProviderException(
                "AMADEUS_API_KEY/AMADEUS_API_SECRET missing",
                error_type="config",
                http_status=401,
            )
        now = time.time()
        cache_key = self._token_cache_key()
        entry = cache.get(cache_key)
        if entry and entry.get("expires_at", 0) > now + TOKEN_REFRESH_MARGIN_SECONDS:
            return entry["token"]

        data = self._request_json(
            "POST",
            f"{self.base_url}/v1/security/oauth2/token",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        token = str((data or {}).get("access_token") or "")
        if not token:
            raise ProviderException("Amadeus returned an empty access token", error_type="auth")
        lifetime = max(30, int(to_number((data or {}).get("expires_in")) or 0) - 60)
        cache.set(cache_key, {"token": token, "expires_at": now + lifetime}, timeout=lifetime)
        return token

    def hotel_offers(
        self,
        *,
        check_in: date,
        nights: int = 1,
        adults: int = 2,
        hotel_id: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        radius_km: float = 10,
        currency: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "adults": adults,
            "roomQuantity": 1,
            "checkInDate": check_in.isoformat(),
            "checkOutDate": (check_in + timedelta(days=max(1, nights))).isoformat(),
            "paymentPolicy": "NONE",
            "includeClosed": "false",
            "bestRateOnly": "true",
            "currency": currency or default_currency(),
        }
        if hotel_id:
            params["hotelIds"] = hotel_id
        elif lat is not None and lng is not None:
            params.update(
                {
                    "latitude": lat,
                    "longitude": lng,
                    "radius": int(radius_km),
                    "radiusUnit": "KM",
                },
            )
        else:
            return []

        token = self.access_token()
        payload = self._request_json(
            "GET",
            f"{self.base_url}/v3/shopping/hotel-offers",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []

    def nightly_prices(self, *, check_in: date, nights: int = 1, **criteria: Any) -> list[int]:
        prices: list[int] = []
        for hotel in self.hotel_offers(check_in=check_in, nights=nights, **criteria):
            for offer in hotel.get("offers") or []:
                total = offer_price(offer)
                if total is not None:
                    prices.append(js_round(total / max(1, nights)))
        return prices

    def sample_day_prices(
        self,
        check_in: date,
        *,
        hotel_id: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        radius_km: float = 10,
    ) -> list[int]:
        # The sandbox answers sparsely: widen the radius, then shift the stay by a day.
        variations: list[tuple[date, float]] = [(check_in, radius_km)]
        if hotel_id is None:
            variations.append((check_in, min(MAX_SAMPLE_RADIUS_KM, radius_km * 2)))
        variations.append((check_in + timedelta(days=1), radius_km))
        for day, radius in variations:
            prices = self.nightly_prices(
                check_in=day,
                hotel_id=hotel_id,
                lat=None if hotel_id else lat,
                lng=None if hotel_id else lng,
                radius_km=radius,
            )
            if prices:
                return prices
        return []

    def monthly_rates(
        self,
        *,
        year: int,
        hotel_id: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        radius_km: float = 10,
    ) -> list[int]:
        monthly: list[int] = []
        for month in range(1, 13):
            prices: list[int] = []
            for day in SAMPLE_DAYS:
                prices.extend(
                    self.sample_day_prices(
                        date(year, month, day),
                        hotel_id=hotel_id,
                        lat=lat,
                        lng=lng,
                        radius_km=radius_km,
                    ),
                )
            monthly.append(median_price(prices))
        return monthly

    def min_price_per_hotel(
        self,
        *,
        lat: float,
        lng: float,
        radius_km: float,
        check_in: date,
        nights: int,
    ) -> list[float]:
        minimums: list[float] = []
        for hotel in self.hotel_offers(check_in=check_in, nights=nights, lat=lat, lng=lng, radius_km=radius_km):
            prices = [price for price in (offer_price(offer) for offer in hotel.get("offers") or []) if price is not None]
            if prices:
                minimums.append(min(prices))
        return minimums
