from __future__ import annotations

import os

import httpx

DEFAULT_USER_AGENT = "HotelTradeWidget/1.0 (+https://hoteltrade.it)"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0 Safari/537.36"
)


def revpilot_user_agent() -> str:
    value = (os.getenv("REVPILOT_USER_AGENT") or "").strip()
    return value or DEFAULT_USER_AGENT


def default_http_timeout() -> httpx.Timeout:
    connect = float(os.getenv("REVPILOT_HTTP_CONNECT_TIMEOUT", "5.0"))
    read = float(os.getenv("REVPILOT_HTTP_READ_TIMEOUT", "10.0"))
    write = float(os.getenv("REVPILOT_HTTP_WRITE_TIMEOUT", str(read)))
    pool = float(os.getenv("REVPILOT_HTTP_POOL_TIMEOUT", "5.0"))
    return httpx.Timeout(connect=connect, read=read, write=write, pool=pool)


def build_http_client(*, accept: str = "application/json", user_agent: str | None = None) -> httpx.Client:
    headers = {
        "User-Agent": user_agent or revpilot_user_agent(),
        "Accept": accept,
        "Accept-Language": "it-IT,it;q=0.9,en-US;q=0.8,en;q=0.7",
    }
    return httpx.Client(timeout=default_http_timeout(), headers=headers, follow_redirects=True)
