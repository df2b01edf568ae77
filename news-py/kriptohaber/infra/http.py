from __future__ import annotations

import random
from urllib.parse import urlparse

import httpx


USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.2; rv:121.0) Gecko/20100101 Firefox/121.0",
)

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
ACCEPT_FEED = "application/rss+xml, application/xml, text/xml, */*"
ACCEPT_LANGUAGE = "en-US,en;q=0.9,tr;q=0.8"


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


def browser_headers(url: str, accept: str = ACCEPT_HTML) -> dict:
    headers = {
        "User-Agent": random_user_agent(),
        "Accept": accept,
        "Accept-Language": ACCEPT_LANGUAGE,
        "Cache-Control": "no-cache",
    }
    origin = origin_of(url)
    if origin:
        headers["Referer"] = origin
    return headers


def get_json(url: str, params: dict | None = None, headers: dict | None = None, timeout: float = 10.0):
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        res = client.get(url, params=params, headers=headers)
        res.raise_for_status()
        return res.json()


def get_text(url: str, params: dict | None = None, headers: dict | None = None, timeout: float = 10.0) -> str:
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        res = client.get(url, params=params, headers=headers)
        res.raise_for_status()
        return res.text


def post_json(url: str, payload: dict, headers: dict | None = None, timeout: float = 10.0):
    with httpx.Client(timeout=timeout) as client:
        res = client.post(url, json=payload, headers=headers)
        res.raise_for_status()
        return res.json() if res.content else {}
