"""Lightweight inspection of a hotel website.

Reads the homepage (and at most a handful of same-site pages) to recover the
booking engine vendor, the property name, declared amenities, languages and a
postal address. Nothing here is authoritative; callers treat every signal as a
hint.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from market.services.http_client import BROWSER_USER_AGENT, build_http_client
from market.services.providers.base import ProviderException

logger = logging.getLogger(__name__)

# Ordered: the first vendor whose pattern matches wins.
BOOKING_ENGINES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("synxis", re.compile(r"synxis|reservations\.travelclick|be\.synxis|book\.synxis", re.I)),
    ("d-edge", re.compile(r"d-edge|securesuite|secured-forms", re.I)),
    ("quovai", re.compile(r"(be\.)?quovai\.com", re.I)),
    ("simplebooking", re.compile(r"simplebooking|book\.simplebooking", re.I)),
    ("verticalbooking", re.compile(r"verticalbooking|book\.verticalbooking", re.I)),
    ("bookassist", re.compile(r"bookassist|bookings\.bookassist", re.I)),
    ("blastness", re.compile(r"blastness|bb.*blastness", re.I)),
    ("ericsoft", re.compile(r"ericsoft|bookingengine\.ericsoft", re.I)),
    ("passepartout", re.compile(r"passepartout|welcomeasy|book\.welcomeasy", re.I)),
    ("omnibees", re.compile(r"omnibees|book\.omnibees", re.I)),
    ("generic", re.compile(r"booking-?engine|bookingengine", re.I)),
)

BROWSER_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept-Language": "it-IT,it;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
AUDIT_HEADERS = {
    "User-Agent": "HotelTradeAudit/1.0 (+https://hoteltrade.it)",
    "Accept-Language": "it,en;q=0.8",
    "Accept": "text/html,*/*;q=0.8",
}
CONTACT_PATHS = ("/contatti", "/contact", "/dove-siamo", "/where-we-are", "/privacy")
LODGING_TYPES = {"Hotel", "LodgingBusiness", "Organization"}
MIN_HOMEPAGE_LENGTH = 200

_BOOK_TEXT = re.compile(r"\bprenot|book|reserv")
_BOOK_HREF = re.compile(r"booking|reserve|prenota")
_POSTCODE_ADDRESS = re.compile(r"\b\d{4,5}\b\s+[A-Za-zÀ-ÖØ-öø-ÿ'’\s]+(?:,\s*[A-Z]{2})?(?:,\s*Italia)?", re.I)
_PROVINCE_ADDRESS = re.compile(r"[A-Za-zÀ-ÖØ-öø-ÿ'’\s]+,\s*[A-Z]{2}(?:,\s*Italia)?", re.I)


@dataclass
class SiteSignals:
    base_url: str
    engine_vendor: str | None = None
    hotel_name: str | None = None
    amenities: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    jsonld: list[str] = field(default_factory=list)
    footer_text: str = ""
    address: str | None = None

    def as_payload(self) -> dict[str, Any]:
        engine = {"engine": "booking-engine", "vendor": self.engine_vendor} if self.engine_vendor else None
        return {
            "ok": True,
            "signals": {
                "engine": engine,
                "hotelName": self.hotel_name,
                "amenities": self.amenities,
                "languages": self.languages,
            },
            "jsonld": self.jsonld,
            "footerText": self.footer_text,
            "microAddress": self.address,
        }


def detect_engine(haystack: str) -> str | None:
    for vendor, pattern in BOOKING_ENGINES:
        if pattern.search(haystack or ""):
            return vendor
    return None


def candidate_urls(raw_url: str) -> list[str]:
    normalized = raw_url if re.match(r"^https?://", raw_url, re.I) else f"https://{raw_url}"
    parts = urlsplit(normalized)
    bare_host = re.sub(r"^www\.", "", parts.netloc)
    path = parts.path or ""
    swapped = (
        normalized.replace("https:", "http:", 1)
        if parts.scheme == "https"
        else normalized.replace("http:", "https:", 1)
    )
    candidates = [normalized, f"https://www.{bare_host}{path}", swapped, f"http://www.{bare_host}{path}"]
    return list(dict.fromkeys(candidates))


def fetch_homepage(client: httpx.Client, raw_url: str) -> tuple[str, str]:
    try:
        candidates = candidate_urls(raw_url)
    except ValueError as exc:
        raise ProviderException(f"invalid site url: {exc}", error_type="parse", http_status=400) from exc
    last_error = "fetch blocked"
    for candidate in candidates:
        for headers in (BROWSER_HEADERS, AUDIT_HEADERS):
            try:
                response = client.get(candidate, headers=headers)
            except httpx.InvalidURL as exc:
                raise ProviderException(f"invalid site url: {exc}", error_type="parse", http_status=400) from exc
            except httpx.HTTPError as exc:
                last_error = str(exc) or exc.__class__.__name__
                continue
            if 200 <= response.status_code < 400 and len(response.text or "") > MIN_HOMEPAGE_LENGTH:
                return response.text, str(response.url or candidate)
            last_error = f"HTTP {response.status_code}"
    raise ProviderException(f"site unreachable: {last_error}", error_type="timeout", http_status=502)


def _fetch_optional(client: httpx.Client, url: str) -> str | None:
    try:
        response = client.get(url, headers=BROWSER_HEADERS)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Secondary page %s failed: %s", url, exc)
        return None
    return response.text if response.status_code < 400 else None


def _attr_values(soup: BeautifulSoup, tag: str, attr: str) -> list[str]:
    return [str(node.get(attr) or "") for node in soup.find_all(tag, attrs={attr: True})]


def _meta_property(soup: BeautifulSoup, name: str) -> str | None:
    node = soup.find("meta", attrs={"property": name})
    return (node.get("content") or None) if node else None


def parse_microdata(soup: BeautifulSoup) -> tuple[str | None, str | None]:
    name = address = None
    for scope in soup.select('[itemscope][itemtype*="schema.org"]'):
        if not re.search(r"Hotel|LodgingBusiness|Organization", str(scope.get("itemtype") or ""), re.I):
            continue
        if not name:
            node = scope.select_one('[itemprop="name"]')
            name = node.get_text(strip=True) if node else None
        if not address:
            node = scope.select_one('[itemprop="address"]')
            if node is not None:
                parts = []
                for prop in ("streetAddress", "postalCode", "addressLocality", "addressRegion", "addressCountry"):
                    part = node.select_one(f'[itemprop="{prop}"]')
                    if part and part.get_text(strip=True):
                        parts.append(part.get_text(strip=True))
                address = ", ".join(parts) or None
    return name or None, address


def parse_jsonld(blocks: list[str]) -> tuple[str | None, list[str]]:
    name = None
    amenities: list[str] = []
    for block in blocks:
        try:
            parsed = json.loads(block)
        except ValueError:
            continue
        for entity in parsed if isinstance(parsed, list) else [parsed]:
            if not isinstance(entity, dict) or entity.get("@type") not in LODGING_TYPES:
                continue
            if not name and entity.get("name"):
                name = str(entity["name"])
            features = entity.get("amenityFeature")
            for feature in features if isinstance(features, list) else []:
                label = feature.get("name") or feature.get("amenityType") if isinstance(feature, dict) else None
                if label and str(label) not in amenities:
                    amenities.append(str(label))
    return name, amenities


def extract_address(text: str) -> str | None:
    flat = re.sub(r"\s+", " ", text or "").strip()
    match = _POSTCODE_ADDRESS.search(flat) or _PROVINCE_ADDRESS.search(flat)
    return match.group(0).strip() if match else None


def _booking_link(soup: BeautifulSoup) -> str | None:
    for anchor in soup.find_all("a", href=True):
        text = anchor.get_text().lower()
        href = str(anchor["href"]).lower()
        if _BOOK_TEXT.search(text) or _BOOK_HREF.search(href):
            return str(anchor["href"])
    return None


def _same_origin_link(base_url: str, href: str | None) -> str | None:
    if not href:
        return None
    try:
        target = urljoin(base_url, href)
        a, b = urlsplit(target), urlsplit(base_url)
    except ValueError:
        return None
    return target if (a.scheme, a.netloc) == (b.scheme, b.netloc) else None


def inspect_site(raw_url: str, *, client: httpx.Client | None = None) -> SiteSignals:
    owns_client = client is None
    client = client or build_http_client(accept="text/html", user_agent=BROWSER_USER_AGENT)
    try:
        html, base_url = fetch_homepage(client, raw_url)
        soup = BeautifulSoup(html, "lxml")
        signals = SiteSignals(base_url=base_url)

        languages = []
        root = soup.find("html")
        if root is not None and root.get("lang"):
            languages.append(str(root["lang"]))
        for link in soup.select("link[rel='alternate'][hreflang]"):
            languages.append(str(link.get("hreflang") or "").lower())
        signals.languages = [lang for lang in dict.fromkeys(languages) if lang]

        haystack = "\n".join(
            [
                html,
                *_attr_values(soup, "a", "href"),
                *_attr_values(soup, "script", "src"),
                *_attr_values(soup, "iframe", "src"),
                *_attr_values(soup, "form", "action"),
            ],
        )
        signals.engine_vendor = detect_engine(haystack)
        if not signals.engine_vendor:
            target = _same_origin_link(base_url, _booking_link(soup))
            if target:
                child = _fetch_optional(client, target)
                if child:
                    signals.engine_vendor = detect_engine(child)

        signals.jsonld = [node.get_text() for node in soup.find_all("script", attrs={"type": "application/ld+json"})]
        jsonld_name, signals.amenities = parse_jsonld(signals.jsonld)
        micro_name, micro_address = parse_microdata(soup)
        title = soup.title.get_text(strip=True) if soup.title else None
        signals.hotel_name = (
            jsonld_name
            or micro_name
            or _meta_property(soup, "og:site_name")
            or _meta_property(soup, "og:title")
            or title
            or None
        )

        footer = soup.find("footer")
        signals.footer_text = footer.get_text() if footer else ""

        signals.address = micro_address
        if not signals.address:
            for path in CONTACT_PATHS:
                page = _fetch_optional(client, urljoin(base_url, path))
                if not page:
                    continue
                signals.address = extract_address(BeautifulSoup(page, "lxml").get_text(" "))
                if signals.address:
                    break
        return signals
    finally:
        if owns_client:
            client.close()
