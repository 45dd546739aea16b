from __future__ import annotations

from typing import Any

from market.services import config


def provider_status() -> dict[str, dict[str, Any]]:
    """Which upstream providers are configured. Never exposes the keys themselves."""
    key, secret = config.amadeus_credentials()
    return {
        "serpapi": {"configured": bool(config.serpapi_key())},
        "amadeus": {"configured": bool(key and secret), "env": config.amadeus_environment()},
        "geoapify": {"configured": bool(config.geoapify_key())},
        "openai": {"configured": bool(config.openai_api_key()), "model": config.openai_model()},
        "nominatim": {"configured": True},
        "open_meteo": {"configured": True},
        "nager_date": {"configured": True},
        "wikimedia": {"configured": True},
    }
