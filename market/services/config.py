import os


def serpapi_key() -> str:
    return (os.getenv("SERPAPI_KEY") or os.getenv("SERP_API_KEY") or "").strip()


def amadeus_credentials() -> tuple[str, str]:
    key = os.getenv("AMADEUS_API_KEY") or os.getenv("AMADEUS_KEY") or ""
    secret = os.getenv("AMADEUS_API_SECRET") or os.getenv("AMADEUS_SECRET") or ""
    return key.strip(), secret.strip()


def amadeus_environment() -> str:
    return (os.getenv("AMADEUS_ENV", "test").strip().lower() or "test")


def amadeus_base_url() -> str:
    override = os.getenv("AMADEUS_BASE_URL", "").strip()
    if override:
        return override.rstrip("/")
    if amadeus_environment() == "prod":
        return "https://api.amadeus.com"
    return "https://test.api.amadeus.com"


def geoapify_key() -> str:
    return os.getenv("GEOAPIFY_KEY", "").strip()


def openai_api_key() -> str:
    return os.getenv("OPENAI_API_KEY", "").strip()


def openai_model() -> str:
    return os.getenv("OPENAI_MODEL", "gpt-4.1-mini").strip() or "gpt-4.1-mini"


def default_currency() -> str:
    return os.getenv("REVPILOT_CURRENCY", "EUR").upper().strip() or "EUR"


def upstream_workers() -> int:
    try:
        return max(1, int(os.getenv("REVPILOT_UPSTREAM_WORKERS", "3")))
    except ValueError:
        return 3
