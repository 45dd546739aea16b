from __future__ import annotations

import calendar
from datetime import date
from typing import Any

from market.services.providers.open_data import NagerDateClient, OpenMeteoClient

MIN_HOLIDAY_YEAR = 1900
MAX_HOLIDAY_YEAR = 2100


def month_range(month: date) -> tuple[date, date]:
    last_day = calendar.monthrange(month.year, month.month)[1]
    return month.replace(day=1), month.replace(day=last_day)


def month_weather(lat: float, lng: float, month: date, *, client: OpenMeteoClient | None = None) -> dict[str, Any]:
    client = client or OpenMeteoClient()
    start, end = month_range(month)
    return client.daily(lat=lat, lng=lng, start=start, end=end)


def public_holidays(year: int, country: str = "IT", *, client: NagerDateClient | None = None) -> list[dict[str, Any]]:
    client = client or NagerDateClient()
    return [
        {
            "date": holiday.get("date"),
            "localName": holiday.get("localName") or holiday.get("name"),
            "name": holiday.get("name"),
        }
        for holiday in client.public_holidays(year=year, country=country or "IT")
    ]
