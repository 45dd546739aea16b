import time
from datetime import date
from unittest.mock import patch

import httpx
import pytest
from django.core.cache import cache

from market.services.providers.amadeus import AmadeusClient, median_price, offer_price
from market.services.providers.base import ProviderException


class DummyResponse:
    def __init__(self, payload: dict, status_code: int = 200, url: str = "https://test.api.amadeus.com/test"):
        self._payload = payload
        self.status_code = status_code
        self.request = httpx.Request("GET", url)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            response = httpx.Response(self.status_code, request=self.request)
            raise httpx.HTTPStatusError("Request failed", request=self.request, response=response)

    def json(self) -> dict:
        return self._payload


def _client() -> AmadeusClient:
    return AmadeusClient(client_id="id", client_secret="secret", base_url="https://test.api.amadeus.com")


def _offers(*totals):
    return {"data": [{"hotel": {"hotelId": f"H{i}"}, "offers": [{"price": {"total": str(total)}}]} for i, total in enumerate(totals)]}


def _is_token_call(kwargs) -> bool:
    return kwargs["url"].endswith("/v1/security/oauth2/token")


def test_offer_price_reads_fallback_paths():
    assert offer_price({"price": {"total": "120.50"}}) == 120.5
    assert offer_price({"price": {"base": 99}}) == 99
    assert offer_price({"price": {"variations": {"average": {"base": "80"}}}}) == 80
    assert offer_price({"price": {"variations": {"changes": [{"total": "75"}]}}}) == 75
    assert offer_price({"price": {"total": "n/a"}}) is None
    assert offer_price({}) is None


def test_median_price_rounds_half_up():
    assert median_price([]) == 0
    assert median_price([100, 121]) == 111
    assert median_price([90, 100, 130]) == 100


def test_access_token_is_cached_until_close_to_expiry():
    client = _client()
    token = DummyResponse({"access_token": "abc", "expires_in": 1799})

    with patch("httpx.request", return_value=token) as mocked:
        assert client.access_token() == "abc"
        assert client.access_token() == "abc"

    assert mocked.call_count == 1
    assert mocked.call_args.kwargs["data"]["grant_type"] == "client_credentials"


def test_access_token_refreshes_inside_the_margin():
    client = _client()
    cache.set(client._token_cache_key(), {"token": "stale", "expires_at": time.time() + 10}, timeout=60)

    with patch("httpx.request", return_value=DummyResponse({"access_token": "fresh", "expires_in": 60})) as mocked:
        assert client.access_token() == "fresh"

    assert mocked.call_count == 1
    entry = cache.get(client._token_cache_key())
    # Stored for at least 30 seconds even when the upstream lifetime is short.
    assert entry["expires_at"] - time.time() > 25


def test_access_token_requires_credentials():
    with pytest.raises(ProviderException) as excinfo:
        AmadeusClient(client_id="", client_secret="").access_token()
    assert excinfo.value.error_type == "config"


def test_empty_token_is_an_auth_error():
    with patch("httpx.request", return_value=DummyResponse({"access_token": ""})):
        with pytest.raises(ProviderException) as excinfo:
            _client().access_token()
    assert excinfo.value.error_type == "auth"


def test_monthly_rates_takes_two_samples_per_month():
    seen_days = []

    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        if _is_token_call(kwargs):
            return DummyResponse({"access_token": "abc", "expires_in": 1799})
        seen_days.append(kwargs["params"]["checkInDate"])
        month = int(kwargs["params"]["checkInDate"][5:7])
        return DummyResponse(_offers(100 + month, 120 + month))

    with patch("httpx.request", side_effect=_fake):
        monthly = _client().monthly_rates(year=2026, lat=41.9, lng=12.5)

    assert len(monthly) == 12
    assert monthly[0] == 111
    assert monthly[11] == 122
    assert len(seen_days) == 24
    assert seen_days[:2] == ["2026-01-12", "2026-01-26"]


def test_sample_day_widens_radius_then_shifts_the_day():
    calls = []

    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        if _is_token_call(kwargs):
            return DummyResponse({"access_token": "abc", "expires_in": 1799})
        calls.append((kwargs["params"]["checkInDate"], kwargs["params"]["radius"]))
        if len(calls) < 3:
            return DummyResponse({"data": []})
        return DummyResponse(_offers(140))

    with patch("httpx.request", side_effect=_fake):
        prices = _client().sample_day_prices(date(2026, 5, 12), lat=41.9, lng=12.5, radius_km=20)

    assert prices == [140]
    assert calls == [("2026-05-12", 20), ("2026-05-12", 30), ("2026-05-13", 20)]


def test_month_without_offers_is_zero():
    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        if _is_token_call(kwargs):
            return DummyResponse({"access_token": "abc", "expires_in": 1799})
        return DummyResponse({"data": []})

    with patch("httpx.request", side_effect=_fake):
        monthly = _client().monthly_rates(year=2026, hotel_id="HLROM123")

    assert monthly == [0] * 12


def test_hotel_offers_without_criteria_skips_the_call():
    with patch("httpx.request") as mocked:
        assert _client().hotel_offers(check_in=date(2026, 5, 12)) == []
    assert mocked.call_count == 0
