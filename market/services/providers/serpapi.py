from __future__ import annotations

from typing import Any

from market.services.config import serpapi_key
from market.services.providers.base import ProviderException, ProviderMixin

SERPAPI_SEARCH_URL = "https://serpapi.com/search.json"
SERPAPI_ACCOUNT_URL = "https://serpapi.com/account"
MAPS_CACHE_TTL = 60 * 60 * 6


class SerpApiClient(ProviderMixin):
    name = "serpapi"
    timeout_seconds = 12

    def __init__(self, *, api_key: str | None = None, base_url: str = SERPAPI_SEARCH_URL) -> None:
        self.api_key = (api_key if api_key is not None else serpapi_key()).strip()
        self.base_url = base_url

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _ensure_enabled(self) -> None:
        if not self.enabled:
            raise ProviderException(
                "SERPAPI_KEY missing",
                error_type="config",
                http_status=401,
            )

    def search(self, params: dict[str, Any], *, ttl: int | None = None) -> dict[str, Any]:
        self._ensure_enabled()
        query = {"hl": "it", "gl": "it", **params}

        def _fetch() -> dict[str, Any]:
            payload = self._request_json("GET", self.base_url, params={**query, "api_key": self.api_key})
            return payload if isinstance(payload, dict) else {}

        if ttl:
            return self.cached_query(f"serpapi:{query.get('engine', 'search')}", query, _fetch, ttl=ttl)
        return _fetch()

    def google_maps(self, q: str, *, ttl: int | None = MAPS_CACHE_TTL) -> list[dict[str, Any]]:
        payload = self.search({"engine": "google_maps", "type": "search", "q": q}, ttl=ttl)
        results = payload.get("local_results")
        return [item for item in results if isinstance(item, dict)] if isinstance(results, list) else []

    def google_hotels(
        self,
        q: str,
        *,
        check_in: str | None = None,
        check_out: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"engine": "google_hotels", "q": q}
        if check_in:
            params["check_in_date"] = check_in
        if check_out:
            params["check_out_date"] = check_out
        return self.search(params)

    def google_trends(self, q: str, *, geo: str = "IT", date_range: str = "today 3-m") -> dict[str, Any]:
        return self.search(
            {
                "engine": "google_trends",
                "data_type": "TIMESERIES",
                "q": q,
                "geo": geo,
                "date": date_range,
            },
        )

    def google_search(self, q: str, *, num: int = 10) -> list[dict[str, Any]]:
        payload = self.search({"engine": "google", "q": q, "num": num})
        results = payload.get("organic_results")
        return [item for item in results if isinstance(item, dict)] if isinstance(results, list) else []

    def account(self) -> dict[str, Any]:
        self._ensure_enabled()
        # The account endpoint does not consume search credits.
        payload = self._request_json("GET", SERPAPI_ACCOUNT_URL, params={"api_key": self.api_key})
        return payload if isinstance(payload, dict) else {}
