from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from market.services.baseline import js_round
from market.services.providers.base import to_number
from market.services.providers.serpapi import SerpApiClient

TREND_GEO = "IT"
TREND_DATE_RANGE = "today 3-m"
ITALIAN_MONTHS_SHORT = ("gen", "feb", "mar", "apr", "mag", "giu", "lug", "ago", "set", "ott", "nov", "dic")


@dataclass
class TrendSeries:
    topic: str
    geo: str = TREND_GEO
    date_range: str = TREND_DATE_RANGE
    points: list[dict[str, Any]] = field(default_factory=list)
    usage: dict[str, Any] | None = None

    def labelled(self) -> list[dict[str, Any]]:
        return [{"dateLabel": date_label(point["date"]), "value": point["score"]} for point in self.points]


def trend_topic(q: str) -> str:
    q = (q or "").strip()
    return q if re.search(r"hotel", q, re.I) else f"{q} hotel"


def date_label(iso_day: str) -> str:
    month = int(iso_day[5:7])
    return f"{iso_day[8:10]} {ITALIAN_MONTHS_SHORT[month - 1]}"


def parse_timeseries(payload: dict[str, Any]) -> list[dict[str, Any]]:
    timeline = (payload.get("interest_over_time") or {}).get("timeline_data") if isinstance(payload, dict) else None
    points: list[dict[str, Any]] = []
    for row in timeline if isinstance(timeline, list) else []:
        if not isinstance(row, dict):
            continue
        timestamp = to_number(row.get("timestamp") or row.get("time"))
        values = row.get("values")
        if isinstance(values, list) and values and isinstance(values[0], dict) and values[0].get("value") is not None:
            raw = values[0]["value"]
        else:
            raw = row.get("value", row.get("score", 0))
        score = to_number(raw)
        if timestamp is None or score is None:
            continue
        try:
            day = datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()
        except (OverflowError, OSError, ValueError):
            continue
        points.append({"date": day, "score": max(0, min(100, js_round(score)))})
    return points


def search_interest(q: str, *, client: SerpApiClient | None = None) -> TrendSeries:
    client = client or SerpApiClient()
    topic = trend_topic(q)
    payload = client.google_trends(topic, geo=TREND_GEO, date_range=TREND_DATE_RANGE)
    usage = payload.get("search_metadata") or payload.get("search_parameters") or None
    return TrendSeries(topic=topic, points=parse_timeseries(payload), usage=usage)


def account_quota(client: SerpApiClient | None = None) -> dict[str, Any]:
    client = client or SerpApiClient()
    account = client.account()
    return {key: value for key, value in account.items() if key != "api_key"}


def account_usage(client: SerpApiClient | None = None) -> dict[str, Any]:
    account = account_quota(client)
    used = to_number(account.get("quota_searches_used"))
    total = to_number(account.get("quota_searches_total"))
    left = account.get("plan_searches_left")
    if left is None and used is not None and total is not None:
        left = int(total - used)
    return {
        "searches_used": account.get("quota_searches_used"),
        "searches_total": account.get("quota_searches_total"),
        "searches_left": left,
    }


def account_selftest(client: SerpApiClient | None = None) -> dict[str, Any]:
    account = account_quota(client)
    return {
        "plan_searches_left": account.get("plan_searches_left"),
        "plan_name": account.get("plan_name"),
        "this_month_usage": account.get("this_month_usage"),
    }
