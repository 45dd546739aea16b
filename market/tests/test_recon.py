import json
from unittest.mock import patch

import httpx

from market.services.adr import estimate_adr
from market.services.providers.amadeus import AmadeusClient
from market.services.providers.geoapify import GeoapifyClient
from market.services.providers.serpapi import SerpApiClient
from market.services.recon import address_from_jsonld, build_recon, detect_amenities
from market.services.site_inspector import SiteSignals


class DummyResponse:
    def __init__(self, payload, status_code: int = 200, url: str = "https://upstream.example/"):
        self._payload = payload
        self.status_code = status_code
        self.request = httpx.Request("GET", url)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            response = httpx.Response(self.status_code, request=self.request)
            raise httpx.HTTPStatusError("Request failed", request=self.request, response=response)

    def json(self):
        return self._payload


MAPS_PAYLOAD = {
    "local_results": [
        {
            "title": "Hotel Sole",
            "address": "Viale Vespucci 10, 47921 Rimini RN",
            "type": "Hotel",
            "rating": 4.5,
            "reviews": 320,
            "gps_coordinates": {"latitude": 44.06, "longitude": 12.58},
            "description": "Hotel fronte mare con piscina e Spa",
            "snippet": "Colazione inclusa, parcheggio gratuito",
        },
        {"title": "Hotel Luna"},
    ],
}

GEOAPIFY_PAYLOAD = {
    "features": [
        {"properties": {"lat": 44.0, "lon": 12.65, "formatted": "Viale Ceccarini 5, 47838 Riccione RN, Italia"}},
    ],
}

TOKEN = {"access_token": "abc", "expires_in": 1799}


def _amadeus() -> AmadeusClient:
    return AmadeusClient(client_id="id", client_secret="secret", base_url="https://test.api.amadeus.com")


def _offers(*totals):
    return {"data": [{"offers": [{"price": {"total": str(total)}}]} for total in totals]}


def _upstream(*, maps=None, geoapify=None, offers=None):
    calls = []

    def _fake(*args, **kwargs):  # noqa: ANN002, ANN003
        url = kwargs["url"]
        calls.append(url)
        if "serpapi.com" in url:
            return DummyResponse(maps)
        if "geoapify.com" in url:
            return DummyResponse(geoapify)
        if url.endswith("/v1/security/oauth2/token"):
            return DummyResponse(TOKEN)
        return DummyResponse(offers(kwargs["params"]))

    return _fake, calls


def test_detect_amenities_keeps_keyword_order():
    assert detect_amenities("Colazione, PISCINA e spa") == ["spa", "piscina", "colazione"]
    assert detect_amenities("") == []


def test_address_from_jsonld_joins_lodging_address_parts():
    blocks = [
        "{broken",
        json.dumps({"@type": "WebSite", "address": {"streetAddress": "Via Nulla 1"}}),
        json.dumps(
            {
                "@type": "Hotel",
                "address": {"streetAddress": "Via Roma 1", "postalCode": "47921", "addressLocality": "Rimini"},
            },
        ),
    ]
    assert address_from_jsonld(blocks) == "Via Roma 1, 47921, Rimini"
    assert address_from_jsonld([json.dumps({"@type": "Hotel", "address": {"postalCode": "47921"}})]) is None


def test_maps_match_fills_profile_and_amadeus_overrides_adr():
    fake, calls = _upstream(
        maps=MAPS_PAYLOAD,
        offers=lambda params: _offers(100 + int(params["checkInDate"][5:7]), 120 + int(params["checkInDate"][5:7])),
    )
    with patch("httpx.request", side_effect=fake):
        result = build_recon(
            name="Hotel Sole",
            loc="Rimini",
            year=2026,
            serpapi=SerpApiClient(api_key="k"),
            geoapify=GeoapifyClient(api_key=""),
            amadeus=_amadeus(),
        )

    assert result.profile.as_dict() == {
        "name": "Hotel Sole",
        "address": "Viale Vespucci 10, 47921 Rimini RN",
        "category": "Hotel",
        "rating": 4.5,
        "reviews": 320,
        "coords": {"lat": 44.06, "lng": 12.58},
        "amenities": ["spa", "piscina", "parcheggio", "colazione"],
    }
    assert result.adr_monthly == list(range(111, 123))
    assert result.notes == [
        "Geoapify non configurato (GEOAPIFY_KEY mancante).",
        "ADR reale da Amadeus (mediana, 2 campioni/mese).",
    ]
    assert sum("serpapi.com" in url for url in calls) == 1


def test_geoapify_supplies_coordinates_and_zero_rates_fall_back_to_estimate():
    fake, calls = _upstream(geoapify=GEOAPIFY_PAYLOAD, offers=lambda params: {"data": []})
    with patch("httpx.request", side_effect=fake):
        result = build_recon(
            name="Hotel Mare",
            loc="Riccione",
            year=2026,
            serpapi=SerpApiClient(api_key=""),
            geoapify=GeoapifyClient(api_key="g"),
            amadeus=_amadeus(),
        )

    assert result.profile.coords == {"lat": 44.0, "lng": 12.65}
    assert result.profile.address == "Viale Ceccarini 5, 47838 Riccione RN, Italia"
    assert result.adr_monthly == estimate_adr("Riccione")
    assert result.notes == [
        "SerpAPI non disponibile: profilo ridotto.",
        "Coordinate ottenute da Geoapify (fallback).",
        "ADR Amadeus non disponibile → usata stima.",
    ]
    assert not any("serpapi.com" in url for url in calls)


def test_maps_failure_is_noted_and_geoapify_takes_over():
    def fake(*args, **kwargs):  # noqa: ANN002, ANN003
        if "serpapi.com" in kwargs["url"]:
            return DummyResponse({}, status_code=500)
        return DummyResponse(GEOAPIFY_PAYLOAD)

    with patch("httpx.request", side_effect=fake):
        result = build_recon(
            name="Hotel Mare",
            loc="Riccione",
            serpapi=SerpApiClient(api_key="k"),
            geoapify=GeoapifyClient(api_key="g"),
            amadeus=AmadeusClient(client_id="", client_secret=""),
        )

    assert result.notes == [
        "Maps: errore richiesta.",
        "Coordinate ottenute da Geoapify (fallback).",
        "ADR Amadeus non configurato → usata stima.",
    ]


def _offline_clients():
    return {
        "serpapi": SerpApiClient(api_key=""),
        "geoapify": GeoapifyClient(api_key=""),
        "amadeus": AmadeusClient(client_id="", client_secret=""),
    }


def test_site_jsonld_address_and_engine_enrich_the_profile():
    signals = SiteSignals(
        base_url="https://hotelsole.example",
        engine_vendor="synxis",
        jsonld=[
            json.dumps(
                {
                    "@type": "Hotel",
                    "address": {"streetAddress": "Via Roma 1", "postalCode": "47921", "addressLocality": "Rimini"},
                },
            ),
        ],
        footer_text="Hotel Sole srl · 47900 Rimini, RN",
    )
    with patch("market.services.recon.inspect_site", return_value=signals) as inspected:
        result = build_recon(name="Hotel Sole", site="hotelsole.example", **_offline_clients())

    inspected.assert_called_once_with("hotelsole.example")
    assert result.profile.address == "Via Roma 1, 47921, Rimini"
    assert result.profile.channels == ["Diretto"]
    assert "Booking engine rilevato (synxis)." in result.notes


def test_site_footer_address_is_the_last_resort():
    signals = SiteSignals(
        base_url="https://villaluna.example",
        jsonld=[json.dumps({"@type": "Hotel", "name": "Villa Luna"})],
        footer_text="Villa Luna · Via Dante 3, 47838 Riccione, RN",
    )
    with patch("market.services.recon.inspect_site", return_value=signals):
        result = build_recon(name="Villa Luna", site="villaluna.example", **_offline_clients())

    assert result.profile.address == "47838 Riccione, RN"
    assert result.profile.channels is None
    assert result.adr_monthly == estimate_adr("47838 Riccione, RN")
    assert result.notes[-1] == "ADR: mancano coordinate → usata stima."
