from __future__ import annotations

from typing import Any

from market.services.providers.base import ProviderMixin

NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"


class NominatimClient(ProviderMixin):
    name = "nominatim"
    timeout_seconds = 8

    def __init__(self, *, base_url: str = NOMINATIM_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def search(
        self,
        q: str,
        *,
        limit: int = 5,
        viewbox: str | None = None,
        output_format: str = "json",
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "format": output_format,
            "q": q,
            "addressdetails": 1,
            "limit": limit,
        }
        if viewbox:
            params["viewbox"] = viewbox
            params["bounded"] = 1
        payload = self._request_json("GET", f"{self.base_url}/search", params=params)
        return [item for item in payload if isinstance(item, dict)] if isinstance(payload, list) else []

    def reverse(self, *, lat: float, lng: float, zoom: int = 12) -> dict[str, Any]:
        payload = self._request_json(
            "GET",
            f"{self.base_url}/reverse",
            params={
                "format": "json",
                "lat": lat,
                "lon": lng,
                "zoom": zoom,
                "addressdetails": 1,
            },
        )
        return payload if isinstance(payload, dict) else {}
