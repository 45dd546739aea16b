from __future__ import annotations

from typing import Any

from market.services.config import geoapify_key
from market.services.providers.base import ProviderException, ProviderMixin

GEOCODE_URL = "https://api.geoapify.com/v1/geocode/search"
PLACES_URL = "https://api.geoapify.com/v2/places"
GEOAPIFY_CACHE_TTL = 60 * 60 * 6
ACCOMMODATION_CATEGORIES = (
    "accommodation.hotel",
    "accommodation.motel",
    "accommodation.hostel",
    "accommodation.apartment",
    "accommodation.guest_house",
    "accommodation.bed_and_breakfast",
    "accommodation.camping",
)


class GeoapifyClient(ProviderMixin):
    name = "geoapify"
    timeout_seconds = 8

    def __init__(self, *, api_key: str | None = None) -> None:
        self.api_key = (api_key if api_key is not None else geoapify_key()).strip()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _features(self, url: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        if not self.enabled:
            raise ProviderException("GEOAPIFY_KEY missing", error_type="config", http_status=401)

        def _fetch() -> list[dict[str, Any]]:
            payload = self._request_json("GET", url, params={**params, "apiKey": self.api_key})
            features = payload.get("features") if isinstance(payload, dict) else None
            if not isinstance(features, list):
                return []
            return [feature.get("properties") or {} for feature in features if isinstance(feature, dict)]

        return self.cached_query(f"geoapify:{url}", params, _fetch, ttl=GEOAPIFY_CACHE_TTL)

    def geocode_accommodation(self, text: str, *, limit: int = 5) -> list[dict[str, Any]]:
        return self._features(
            GEOCODE_URL,
            {
                "text": text,
                "type": "amenity",
                "filter": "category.accommodation",
                "limit": limit,
            },
        )

    def nearby_accommodation(self, *, lat: float, lng: float, radius_km: float, limit: int = 30) -> list[dict[str, Any]]:
        return self._features(
            PLACES_URL,
            {
                "categories": ",".join(ACCOMMODATION_CATEGORIES),
                "filter": f"circle:{lng},{lat},{int(radius_km * 1000)}",
                "bias": f"proximity:{lng},{lat}",
                "limit": limit,
            },
        )
