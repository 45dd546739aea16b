from unittest.mock import patch

import httpx

from market.services.providers.serpapi import SerpApiClient
from market.services.reputation import compile_reputation, hotels_source, lookup_reputation, search_name


class DummyResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code
        self.request = httpx.Request("GET", "https://serpapi.com/search.json")

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            response = httpx.Response(self.status_code, request=self.request)
            raise httpx.HTTPStatusError("Request failed", request=self.request, response=response)

    def json(self):
        return self._payload


def test_compile_reputation_weights_google_over_hotels():
    assert compile_reputation({"rating": 4.5, "reviews": 200}, {"rating": 4.0, "reviews": 50}) == (86, 250)
    assert compile_reputation({"rating": 4.0}, None) == (80, None)
    assert compile_reputation(None, {"rating": 3.5, "reviews": 12}) == (70, 12)
    assert compile_reputation(None, None) == (None, None)


def test_search_name_does_not_repeat_the_location():
    assert search_name("  Hotel   Sole ", "Rimini") == "Hotel Sole Rimini"
    assert search_name("Hotel Sole Rimini", "rimini") == "Hotel Sole Rimini"
    assert search_name("Hotel Sole") == "Hotel Sole"


def test_hotels_source_accepts_results_alias():
    source = hotels_source({"results": [{"rating": "4.1", "review_count": "310", "hotel_link": "https://h.example"}]})
    assert source == {"rating": 4.1, "reviews": 310, "link": "https://h.example"}
    assert hotels_source({"properties": []}) is None


def test_without_key_uses_demo_figures():
    result = lookup_reputation("Hotel Sole", "Rimini", client=SerpApiClient(api_key=""))

    assert result.mode == "demo"
    assert result.reason == "SERPAPI_KEY missing"
    assert result.reputation_index == 86
    assert result.reviews_total == 75
    assert set(result.sources) == {"google", "demo"}


def test_live_lookup_blends_both_sources():
    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        engine = kwargs["params"]["engine"]
        if engine == "google_maps":
            return DummyResponse({"local_results": [{"title": "Hotel Sole", "rating": 4.5, "reviews": "1.200", "place_id": "abc"}]})
        return DummyResponse({"properties": [{"overall_rating": 4.0, "reviews": 300}]})

    with patch("httpx.request", side_effect=_fake) as mocked:
        result = lookup_reputation("Hotel Sole", "Rimini", client=SerpApiClient(api_key="k"))

    assert mocked.call_count == 2
    assert result.mode == "live"
    assert result.sources["google"] == {"rating": 4.5, "reviews": 1200, "place_id": "abc"}
    assert result.sources["hotels"] == {"rating": 4.0, "reviews": 300}
    assert result.reputation_index == 86
    assert result.reviews_total == 1500


def test_one_failing_source_keeps_the_other():
    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        if kwargs["params"]["engine"] == "google_maps":
            return DummyResponse({}, status_code=429)
        return DummyResponse({"properties": [{"overall_rating": 4.5, "reviews": 40}]})

    with patch("httpx.request", side_effect=_fake):
        result = lookup_reputation("Hotel Luna", client=SerpApiClient(api_key="k"))

    assert result.mode == "live"
    assert "google" not in result.sources
    assert result.reputation_index == 90
    assert result.reviews_total == 40
