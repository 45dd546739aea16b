from __future__ import annotations

from market.services.baseline import js_round, normalize_to_100, seasonality_italy_12
from market.services.location_context import CONTEXT_MULTIPLIERS, classify_location

# Indicative mid-tier nightly rate in EUR.
ADR_ANCHOR_LEVEL = 110


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def rating_factor(rating: float | None = None) -> float:
    # 7.0 -> 0.90, 9.5 and above -> 1.25
    if rating is None:
        return 1.0
    return 0.9 + _clamp01((float(rating) - 7) / 2.5) * 0.35


def context_factor(location_text: str | None) -> float:
    return CONTEXT_MULTIPLIERS.get(classify_location(location_text), 1.0)


def estimate_adr(location_text: str | None, rating: float | None = None) -> list[int]:
    base = normalize_to_100(seasonality_italy_12())
    k = rating_factor(rating)
    k *= context_factor(location_text)
    return [js_round(ADR_ANCHOR_LEVEL * (value / 100) * k) for value in base]
