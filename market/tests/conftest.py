import pytest
from django.core.cache import cache

PROVIDER_ENV_VARS = (
    "SERPAPI_KEY",
    "SERP_API_KEY",
    "AMADEUS_API_KEY",
    "AMADEUS_API_SECRET",
    "AMADEUS_KEY",
    "AMADEUS_SECRET",
    "AMADEUS_ENV",
    "AMADEUS_BASE_URL",
    "GEOAPIFY_KEY",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
)


@pytest.fixture(autouse=True)
def isolated_providers(monkeypatch):
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    cache.clear()
    yield
    cache.clear()
