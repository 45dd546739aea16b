from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date

# National arrivals/presences profile, January..December, peak month = 100.
SEASONALITY_ITALY_12 = (45, 48, 62, 72, 86, 96, 100, 98, 90, 70, 52, 48)

_LODGING_WORDS = re.compile(r"hotel|alberghi?|b&b|resort|alloggi|alloggio", re.IGNORECASE)


def js_round(value: float) -> int:
    """Round half up, the way the dashboard front end rounds its figures."""
    return int(math.floor(value + 0.5))


def _as_float(value) -> float:  # noqa: ANN001
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def seasonality_italy_12() -> list[int]:
    return list(SEASONALITY_ITALY_12)


def normalize_to_100(values: Sequence) -> list[int]:
    numbers = [_as_float(value) for value in values]
    peak = max([0.0, *numbers])
    if peak <= 0:
        return [0 for _ in numbers]
    return [js_round(value * 100 / peak) for value in numbers]


def blend3(
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
    weight_a: float,
    weight_b: float,
    weight_c: float,
) -> list[float]:
    size = max(len(a), len(b), len(c))
    blended: list[float] = []
    for index in range(size):
        va = a[index] if index < len(a) else 0
        vb = b[index] if index < len(b) else 0
        vc = c[index] if index < len(c) else 0
        blended.append(weight_a * va + weight_b * vb + weight_c * vc)
    return blended


def city_from_topic(topic: str) -> str:
    if not topic:
        return ""
    city = re.sub(r"\s+", " ", _LODGING_WORDS.sub(" ", topic)).strip()
    return city or topic.strip()


def last_12_month_keys(today: date | None = None, months: int = 12) -> list[str]:
    today = today or date.today()
    keys: list[str] = []
    for offset in range(months - 1, -1, -1):
        year, month = today.year, today.month - offset
        while month <= 0:
            month += 12
            year -= 1
        keys.append(f"{year:04d}-{month:02d}")
    return keys
