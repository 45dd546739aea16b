from unittest.mock import patch

import httpx
import pytest

from market.services.provider_registry import provider_status
from market.services.providers.base import (
    FetchResult,
    ProviderException,
    ProviderMixin,
    classify_http_status,
    guarded,
    to_number,
)


class DummyResponse:
    def __init__(self, payload=None, status_code: int = 200, url: str = "https://upstream.example/data"):
        self._payload = payload
        self.status_code = status_code
        self.request = httpx.Request("GET", url)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            response = httpx.Response(self.status_code, request=self.request)
            raise httpx.HTTPStatusError("Request failed", request=self.request, response=response)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class UpstreamClient(ProviderMixin):
    name = "upstream"


class RetryingClient(ProviderMixin):
    name = "retrying"
    max_retries = 3


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [(429, "rate_limit"), (401, "auth"), (403, "auth"), (402, "quota"), (500, "unknown"), (None, "unknown")],
)
def test_classify_http_status(status_code, expected):
    assert classify_http_status(status_code) == expected


def test_to_number_rejects_non_finite_values():
    assert to_number("4.5") == 4.5
    assert to_number(3) == 3.0
    assert to_number("inf") is None
    assert to_number("abc") is None
    assert to_number(None) is None


def test_status_errors_are_classified_and_keys_redacted():
    with patch("httpx.request", return_value=DummyResponse({}, status_code=429)):
        with pytest.raises(ProviderException) as excinfo:
            UpstreamClient()._request_json("GET", "https://upstream.example/data?api_key=secret")

    assert excinfo.value.error_type == "rate_limit"
    assert excinfo.value.http_status == 429
    assert "secret" not in str(excinfo.value)
    assert str(excinfo.value).startswith("upstream: GET https://upstream.example/data")


def test_malformed_json_is_a_parse_error():
    with patch("httpx.request", return_value=DummyResponse(ValueError("Expecting value"))):
        with pytest.raises(ProviderException) as excinfo:
            UpstreamClient()._request_json("GET", "https://upstream.example/data")

    assert excinfo.value.error_type == "parse"
    assert excinfo.value.http_status == 200


def test_network_errors_map_to_timeout():
    with patch("httpx.request", side_effect=httpx.ConnectError("refused")):
        with pytest.raises(ProviderException) as excinfo:
            UpstreamClient()._request_json("GET", "https://upstream.example/data")

    assert excinfo.value.error_type == "timeout"


def test_retrying_client_recovers_after_transient_failures():
    responses = [httpx.ReadTimeout("slow"), DummyResponse({}, status_code=503), DummyResponse({"ok": 1})]
    with patch("httpx.request", side_effect=responses) as mocked, patch("time.sleep") as slept:
        assert RetryingClient()._request_json("GET", "https://upstream.example/data") == {"ok": 1}

    assert mocked.call_count == 3
    assert slept.call_count == 2


def test_request_sends_user_agent_and_follows_redirects(monkeypatch):
    monkeypatch.setenv("REVPILOT_USER_AGENT", "RevPilotTest/1.0")
    with patch("httpx.request", return_value=DummyResponse({"ok": 1})) as mocked:
        UpstreamClient()._request_json("GET", "https://upstream.example/data", headers={"Accept": "application/json"})

    kwargs = mocked.call_args.kwargs
    assert kwargs["headers"] == {"User-Agent": "RevPilotTest/1.0", "Accept": "application/json"}
    assert kwargs["follow_redirects"] is True
    assert kwargs["timeout"] == UpstreamClient.timeout_seconds


def test_cached_query_calls_the_fetcher_once():
    calls = []

    def fetcher():
        calls.append(1)
        return {"value": len(calls)}

    client = UpstreamClient()
    assert client.cached_query("test", {"q": "Roma"}, fetcher) == {"value": 1}
    assert client.cached_query("test", {"q": "Roma"}, fetcher) == {"value": 1}
    assert client.cached_query("test", {"q": "Milano"}, fetcher) == {"value": 2}
    assert len(calls) == 2


def test_guarded_turns_provider_errors_into_degraded_results():
    def failing():
        raise ProviderException("upstream: GET / timeout", error_type="timeout", http_status=504)

    degraded = guarded(failing, context="test", default=[])
    assert degraded == FetchResult(ok=False, data=[], mode="demo", reason="upstream: GET / timeout", http_status=504)
    assert guarded(lambda: [1], context="test") == FetchResult.live([1])


def test_guarded_lets_programming_errors_through():
    with pytest.raises(ZeroDivisionError):
        guarded(lambda: 1 / 0, context="test")


def test_provider_status_reports_configuration_only(monkeypatch):
    monkeypatch.setenv("AMADEUS_API_KEY", "id")
    monkeypatch.setenv("AMADEUS_API_SECRET", "secret")
    monkeypatch.setenv("AMADEUS_ENV", "prod")

    status = provider_status()

    assert status["amadeus"] == {"configured": True, "env": "prod"}
    assert status["serpapi"] == {"configured": False}
    assert "secret" not in repr(status)
