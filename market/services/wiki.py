from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from market.services.baseline import last_12_month_keys
from market.services.providers.base import guarded, to_number
from market.services.providers.open_data import WikimediaPageviewsClient

logger = logging.getLogger(__name__)

# Common Italian city names whose English article title differs.
IT_EN_ARTICLES = {
    "firenze": "Florence",
    "roma": "Rome",
    "milano": "Milan",
    "napoli": "Naples",
    "torino": "Turin",
    "venezia": "Venice",
    "bologna": "Bologna",
}
MONTH_BOUNDS = (6, 24)
WIKI_NOTE = "Wikipedia Pageviews IT+EN"


def clamp_months(value: Any) -> int:
    months = to_number(value)
    low, high = MONTH_BOUNDS
    return int(max(low, min(high, months if months is not None else 12)))


def articles_for(city: str) -> dict[str, str]:
    return {
        "it.wikipedia.org": city.replace(" ", "_"),
        "en.wikipedia.org": IT_EN_ARTICLES.get(city.lower(), city).replace(" ", "_"),
    }


def pageview_baseline(
    city: str,
    *,
    months: int = 12,
    client: WikimediaPageviewsClient | None = None,
) -> list[dict[str, Any]]:
    client = client or WikimediaPageviewsClient()
    keys = last_12_month_keys(months=clamp_months(months))
    by_month = dict.fromkeys(keys, 0)

    def _series(project: str, article: str) -> list[dict[str, Any]]:
        fetched = guarded(
            lambda: client.monthly_views(project=project, article=article, start_ym=keys[0], end_ym=keys[-1]),
            context=f"pageviews {project}",
            default=[],
        )
        return fetched.data or []

    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = [executor.submit(_series, project, article) for project, article in articles_for(city).items()]
        rows = [row for future in futures for row in future.result()]

    for row in rows:
        stamp = str(row.get("timestamp") or "")
        month = f"{stamp[:4]}-{stamp[4:6]}"
        if month in by_month:
            by_month[month] += int(to_number(row.get("views")) or 0)
    return [{"month": month, "views": views} for month, views in by_month.items()]
