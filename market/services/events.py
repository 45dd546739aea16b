from __future__ import annotations

import re
from typing import Any

from market.services.providers.open_data import CalendarFeedClient

DEFAULT_EVENT_TITLE = "Evento"

_ICS_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})")
_ICS_GEO = re.compile(r"^GEO:([+-]?\d+(?:\.\d+)?);([+-]?\d+(?:\.\d+)?)")


def unfold_lines(text: str) -> list[str]:
    lines: list[str] = []
    for line in re.split(r"\r?\n", text or ""):
        if line.startswith(" ") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def parse_ics(text: str) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None
    for raw in unfold_lines(text):
        line = raw.strip()
        if line == "BEGIN:VEVENT":
            current = {}
            continue
        if line == "END:VEVENT":
            if current and current.get("date"):
                event = {"date": current["date"], "title": current.get("title") or DEFAULT_EVENT_TITLE}
                for key in ("location", "lat", "lng"):
                    if current.get(key) is not None and current.get(key) != "":
                        event[key] = current[key]
                events.append(event)
            current = None
            continue
        if current is None:
            continue

        if line.startswith("DTSTART"):
            _, _, value = line.partition(":")
            match = _ICS_DATE.match(value)
            if match:
                current["date"] = "-".join(match.groups())
        elif line.startswith("SUMMARY:"):
            current["title"] = line[len("SUMMARY:"):].strip()
        elif line.startswith("LOCATION:"):
            current["location"] = line[len("LOCATION:"):].strip()
        elif line.startswith("GEO:"):
            match = _ICS_GEO.match(line)
            if match:
                current["lat"], current["lng"] = float(match.group(1)), float(match.group(2))
    return events


def fetch_events(url: str, *, client: CalendarFeedClient | None = None) -> list[dict[str, Any]]:
    client = client or CalendarFeedClient()
    return parse_ics(client.fetch(url))
