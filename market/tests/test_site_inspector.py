import json

import httpx
import pytest

from market.services.providers.base import ProviderException
from market.services.site_inspector import (
    candidate_urls,
    detect_engine,
    extract_address,
    inspect_site,
    parse_jsonld,
)

PADDING = "<p>" + "Benvenuti nel nostro albergo sul mare. " * 10 + "</p>"

HOMEPAGE_WITH_ENGINE = f"""
<html lang="it">
<head>
  <title>Hotel Sole - Rimini</title>
  <link rel="alternate" hreflang="en" href="https://hotel.example/en">
  <link rel="alternate" hreflang="DE" href="https://hotel.example/de">
  <script type="application/ld+json">{json.dumps({
      "@type": "Hotel",
      "name": "Hotel Sole",
      "amenityFeature": [{"name": "Piscina"}, {"amenityType": "Parcheggio"}, {"name": "Piscina"}],
  })}</script>
  <script src="https://be.synxis.com/widget.js"></script>
</head>
<body>
  {PADDING}
  <div itemscope itemtype="https://schema.org/Hotel">
    <span itemprop="name">Sole Microdata</span>
    <div itemprop="address">
      <span itemprop="streetAddress">Viale Vespucci 10</span>
      <span itemprop="postalCode">47921</span>
      <span itemprop="addressLocality">Rimini</span>
    </div>
  </div>
  <footer>Hotel Sole srl</footer>
</body>
</html>
"""

HOMEPAGE_WITHOUT_ENGINE = f"""
<html>
<head><meta property="og:site_name" content="Villa Luna"><title>Home</title></head>
<body>
  {PADDING}
  <a href="/prenota">Prenota ora</a>
</body>
</html>
"""


def test_detect_engine_prefers_earlier_vendors():
    assert detect_engine("https://be.synxis.com and simplebooking") == "synxis"
    assert detect_engine("https://book.simplebooking.it/?hid=1") == "simplebooking"
    assert detect_engine("/js/booking-engine.js") == "generic"
    assert detect_engine("nothing to see") is None
    assert detect_engine("") is None


def test_candidate_urls_cover_scheme_and_www_variants():
    assert candidate_urls("hotel.example") == [
        "https://hotel.example",
        "https://www.hotel.example",
        "http://hotel.example",
        "http://www.hotel.example",
    ]
    assert candidate_urls("http://www.hotel.example/it") == [
        "http://www.hotel.example/it",
        "https://www.hotel.example/it",
    ]


def test_extract_address_finds_postcode_then_province():
    assert extract_address("Dove siamo: Via Roma 1, 47921 Rimini, RN") == "47921 Rimini, RN"
    assert extract_address("Sede legale Riccione, RN") == "Sede legale Riccione, RN"
    assert extract_address("") is None


def test_parse_jsonld_skips_invalid_blocks_and_other_types():
    blocks = [
        "{not json",
        json.dumps({"@type": "WebSite", "name": "Sito"}),
        json.dumps([{"@type": "LodgingBusiness", "name": "B&B Aurora", "amenityFeature": [{"name": "Wi-Fi"}]}]),
    ]
    assert parse_jsonld(blocks) == ("B&B Aurora", ["Wi-Fi"])


def test_inspect_site_reads_engine_name_amenities_and_address():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text=HOMEPAGE_WITH_ENGINE)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        signals = inspect_site("hotel.example", client=client)

    payload = signals.as_payload()
    assert len(requested) == 1
    assert payload["signals"]["engine"] == {"engine": "booking-engine", "vendor": "synxis"}
    assert payload["signals"]["hotelName"] == "Hotel Sole"
    assert payload["signals"]["amenities"] == ["Piscina", "Parcheggio"]
    assert payload["signals"]["languages"] == ["it", "en", "de"]
    assert payload["microAddress"] == "Viale Vespucci 10, 47921, Rimini"
    assert "Hotel Sole srl" in payload["footerText"]
    assert len(payload["jsonld"]) == 1


def test_inspect_site_follows_booking_link_and_contact_page():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in ("", "/"):
            return httpx.Response(200, text=HOMEPAGE_WITHOUT_ENGINE)
        if request.url.path == "/prenota":
            return httpx.Response(200, text='<iframe src="https://book.simplebooking.it/ibe"></iframe>')
        if request.url.path == "/contatti":
            return httpx.Response(200, text="<p>Via Roma 1, 47921 Rimini, RN</p>")
        return httpx.Response(404, text="missing")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        signals = inspect_site("https://villaluna.example", client=client)

    assert signals.engine_vendor == "simplebooking"
    assert signals.hotel_name == "Villa Luna"
    assert signals.address == "47921 Rimini, RN"
    assert signals.amenities == []


def test_inspect_site_falls_back_across_variants_and_headers():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append((request.url.host, request.url.scheme, request.headers["user-agent"].split("/")[0]))
        if request.url.scheme == "https":
            raise httpx.ConnectError("refused", request=request)
        if request.headers["user-agent"].startswith("Mozilla"):
            return httpx.Response(403, text="blocked")
        return httpx.Response(200, text=HOMEPAGE_WITH_ENGINE)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        signals = inspect_site("hotel.example", client=client)

    assert signals.engine_vendor == "synxis"
    assert attempts[-1] == ("hotel.example", "http", "HotelTradeAudit")
    assert len(attempts) == 6


def test_inspect_site_rejects_malformed_urls_without_fetching():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url)
        return httpx.Response(200, text=HOMEPAGE_WITH_ENGINE)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderException) as excinfo:
            inspect_site("http://[bad", client=client)

    assert excinfo.value.error_type == "parse"
    assert str(excinfo.value).startswith("invalid site url")
    assert requested == []


class RejectingClient:
    def get(self, url, headers=None):  # noqa: ANN001, ANN201
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")


def test_inspect_site_maps_invalid_url_errors_from_the_client():
    with pytest.raises(ProviderException) as excinfo:
        inspect_site("hotel.example", client=RejectingClient())

    assert excinfo.value.error_type == "parse"


def test_inspect_site_ignores_malformed_booking_links():
    homepage = (
        f"<html><head><title>Villa Luna</title></head>"
        f"<body>{PADDING}<a href='http://[broken/prenota'>Prenota ora</a></body></html>"
    )

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in ("", "/"):
            return httpx.Response(200, text=homepage)
        return httpx.Response(404, text="missing")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        signals = inspect_site("https://villaluna.example", client=client)

    assert signals.engine_vendor is None
    assert signals.hotel_name == "Villa Luna"
    assert signals.address is None


def test_inspect_site_raises_when_every_variant_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="too short")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderException) as excinfo:
            inspect_site("hotel.example", client=client)

    assert excinfo.value.http_status == 502
    assert "site unreachable" in str(excinfo.value)
