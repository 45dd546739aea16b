from __future__ import annotations

from datetime import date
from typing import Any
from urllib.parse import quote

from market.services.providers.base import ProviderMixin

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
NAGER_URL = "https://date.nager.at/api/v3/PublicHolidays"
PAGEVIEWS_URL = "https://wikimedia.org/api/rest_v1/metrics/pageviews/per-article"

WEATHER_CACHE_TTL = 60 * 60 * 3
HOLIDAYS_CACHE_TTL = 60 * 60 * 24
PAGEVIEWS_CACHE_TTL = 60 * 60 * 6
CALENDAR_CACHE_TTL = 60 * 60


class OpenMeteoClient(ProviderMixin):
    name = "open-meteo"
    timeout_seconds = 8

    def daily(self, *, lat: float, lng: float, start: date, end: date) -> dict[str, Any]:
        params = {
            "latitude": lat,
            "longitude": lng,
            "daily": "temperature_2m_mean,precipitation_sum,weather_code",
            "timezone": "auto",
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        return self.cached_query(
            "open-meteo:daily",
            params,
            lambda: self._request_json("GET", OPEN_METEO_URL, params=params),
            ttl=WEATHER_CACHE_TTL,
        )


class NagerDateClient(ProviderMixin):
    name = "nager-date"
    timeout_seconds = 8

    def public_holidays(self, *, year: int, country: str) -> list[dict[str, Any]]:
        url = f"{NAGER_URL}/{int(year)}/{quote(country.upper())}"
        payload = self.cached_query(
            "nager:holidays",
            {"year": year, "country": country.upper()},
            lambda: self._request_json("GET", url),
            ttl=HOLIDAYS_CACHE_TTL,
        )
        return [item for item in payload if isinstance(item, dict)] if isinstance(payload, list) else []


class WikimediaPageviewsClient(ProviderMixin):
    name = "wikimedia"
    timeout_seconds = 8

    def monthly_views(self, *, project: str, article: str, start_ym: str, end_ym: str) -> list[dict[str, Any]]:
        start = start_ym.replace("-", "") + "01"
        end = end_ym.replace("-", "") + "01"
        url = (
            f"{PAGEVIEWS_URL}/{project}/all-access/user/"
            f"{quote(article, safe='')}/monthly/{start}/{end}"
        )
        payload = self.cached_query(
            "wikimedia:pageviews",
            {"project": project, "article": article, "start": start, "end": end},
            lambda: self._request_json("GET", url),
            ttl=PAGEVIEWS_CACHE_TTL,
        )
        items = payload.get("items") if isinstance(payload, dict) else None
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []


class CalendarFeedClient(ProviderMixin):
    name = "ics"
    timeout_seconds = 10

    def fetch(self, url: str) -> str:
        return self.cached_query(
            "ics:feed",
            {"url": url},
            lambda: self._request_text("GET", url, headers={"Accept": "text/calendar,*/*;q=0.8"}),
            ttl=CALENDAR_CACHE_TTL,
        )
