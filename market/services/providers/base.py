from __future__ import annotations

import hashlib
import json
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
from django.core.cache import cache

from market.services.http_client import revpilot_user_agent

logger = logging.getLogger(__name__)


class ProviderException(Exception):
    """An upstream call failed or is not configured.

    ``error_type`` is one of timeout, rate_limit, auth, quota, parse, config or
    unknown; views map ``config`` to 503 and everything else to 502.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "unknown",
        http_status: int | None = None,
        latency_ms: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.latency_ms = latency_ms


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one upstream lookup: live data or a degraded placeholder."""

    ok: bool
    data: Any = None
    mode: str = "live"
    reason: str = ""
    http_status: int | None = None

    @classmethod
    def live(cls, data: Any) -> FetchResult:
        return cls(ok=True, data=data, mode="live")

    @classmethod
    def degraded(cls, reason: str, *, data: Any = None, http_status: int | None = None) -> FetchResult:
        return cls(ok=False, data=data, mode="demo", reason=reason, http_status=http_status)


def classify_http_status(status_code: int | None) -> str:
    if status_code == 429:
        return "rate_limit"
    if status_code in {401, 403}:
        return "auth"
    if status_code in {402}:
        return "quota"
    return "unknown"


def guarded(fetcher: Callable[[], Any], *, context: str, default: Any = None) -> FetchResult:
    try:
        return FetchResult.live(fetcher())
    except ProviderException as exc:
        logger.warning("%s unavailable (%s): %s", context, exc.error_type, exc)
        return FetchResult.degraded(str(exc), data=default, http_status=exc.http_status)


class ProviderMixin:
    name = "base"
    timeout_seconds: float = 10
    max_retries = 1
    retry_delay_seconds = 0.35

    def _failure(self, method: str, url: str, exc: httpx.HTTPError, latency_ms: int) -> ProviderException:
        target = f"{self.name}: {method} {_redact(url)}"
        if isinstance(exc, httpx.HTTPStatusError):
            status_code = exc.response.status_code
            return ProviderException(
                f"{target} status {status_code}",
                error_type=classify_http_status(status_code),
                http_status=status_code,
                latency_ms=latency_ms,
            )
        if isinstance(exc, httpx.TimeoutException):
            return ProviderException(f"{target} timeout", error_type="timeout", latency_ms=latency_ms)
        return ProviderException(f"{target} request error: {exc}", error_type="timeout", latency_ms=latency_ms)

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> tuple[httpx.Response, int]:
        for attempt in range(1, self.max_retries + 1):
            started = time.monotonic()
            try:
                response = httpx.request(
                    method=method,
                    url=url,
                    headers={"User-Agent": revpilot_user_agent(), **(headers or {})},
                    params=params,
                    json=json_body,
                    data=data,
                    timeout=timeout or self.timeout_seconds,
                    follow_redirects=True,
                )
                response.raise_for_status()
                return response, _elapsed_ms(started)
            except httpx.HTTPError as exc:
                failure = self._failure(method, url, exc, _elapsed_ms(started))
                if attempt == self.max_retries:
                    raise failure from exc
                logger.info("%s attempt %s failed (%s), retrying", self.name, attempt, failure.error_type)
            time.sleep(self.retry_delay_seconds * attempt)

        raise ProviderException(f"{self.name}: {method} {_redact(url)} exhausted retries.")

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response, latency_ms = self._send(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderException(
                f"{self.name}: {method} {_redact(url)} parse failure: {exc}",
                error_type="parse",
                http_status=response.status_code,
                latency_ms=latency_ms,
            ) from exc

    def _request_text(self, method: str, url: str, **kwargs: Any) -> str:
        response, _latency_ms = self._send(method, url, **kwargs)
        return response.text

    def _cache_key(self, prefix: str, payload: dict[str, Any]) -> str:
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode("utf-8")).hexdigest()
        return f"{prefix}:{digest}"

    def cached_query(self, prefix: str, payload: dict[str, Any], fetcher, ttl: int = 900):  # noqa: ANN001, ANN201
        cache_key = self._cache_key(prefix, payload)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached
        value = fetcher()
        cache.set(cache_key, value, ttl)
        return value


def _redact(url: str) -> str:
    # Query strings may carry API keys.
    return url.split("?", 1)[0]


def to_number(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
