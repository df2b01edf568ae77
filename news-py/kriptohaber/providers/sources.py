from __future__ import annotations

import logging
import time

from kriptohaber.config import Settings
from kriptohaber.models import NewsItem
from kriptohaber.providers.base import DEFAULT_ITEM_SELECTORS, ProviderResult, SourceConfig
from kriptohaber.providers.html_scrape import fetch_html_source
from kriptohaber.providers.rss import fetch_rss_source
from kriptohaber.providers.search_api import (
    AGGR_NEWS_QUERY,
    TREE_OF_ALPHA_URL,
    fetch_exa_aggr_news,
    fetch_exchange_listings,
    fetch_tree_of_alpha,
)


logger = logging.getLogger("sources")

NITTER_HOST = "https://nitter.poast.org"
NITTER_ACCOUNTS = ("voltnewsdotxyz", "GercekKriptocuu", "ICODrops", "ICO_Analytics")


DEFAULT_SOURCES: list[SourceConfig] = [
    SourceConfig(
        name="Bloomberg Crypto",
        kind="bloomberg",
        feed_url="https://www.bloomberg.com/crypto/rss.xml",
        page_url="https://www.bloomberg.com/crypto",
        domain="bloomberg.com",
        base_score=0.9,
        max_items=20,
    ),
    *[
        SourceConfig(name=f"@{account}", kind="rss", feed_url=f"{NITTER_HOST}/{account}/rss")
        for account in NITTER_ACCOUNTS
    ],
    SourceConfig(
        name="Velo.xyz",
        kind="rss_then_html",
        feed_url="https://velo.xyz/feed",
        page_url="https://velo.xyz/news",
        domain="velo.xyz",
        base_score=0.85,
        max_items=15,
        item_selectors=DEFAULT_ITEM_SELECTORS + ('a[href*="/news/"]',),
    ),
    SourceConfig(
        name="Watcher Guru",
        kind="rss_then_html",
        feed_url="https://watcher.guru/feed",
        page_url="https://watcher.guru/",
        domain="watcher.guru",
        base_score=0.88,
        max_items=25,
        item_selectors=DEFAULT_ITEM_SELECTORS + ('a[href*="/news/"]', 'a[href*="/article/"]'),
    ),
    SourceConfig(
        name="CoinLaw.io",
        kind="rss_then_html",
        feed_url="https://coinlaw.io/feed",
        page_url="https://coinlaw.io/tag/news/",
        domain="coinlaw.io",
        base_score=0.87,
        max_items=20,
        item_selectors=DEFAULT_ITEM_SELECTORS + ('a[href*="/tag/news/"]', 'a[href*="/blog/"]'),
    ),
    SourceConfig(
        name="Cryptopolitan",
        kind="rss_then_html",
        feed_url="https://www.cryptopolitan.com/feed",
        page_url="https://www.cryptopolitan.com/news/",
        domain="cryptopolitan.com",
        base_score=0.86,
        max_items=20,
        item_selectors=DEFAULT_ITEM_SELECTORS + ('a[href*="/news/"]', ".item-details"),
    ),
    SourceConfig(name="Tree of Alpha", kind="tree_of_alpha", feed_url=TREE_OF_ALPHA_URL),
    SourceConfig(name="@AggrNews", kind="exa_aggr", query=AGGR_NEWS_QUERY, max_items=10),
    SourceConfig(name="Exchange Listings", kind="exa_listings"),
]


def load_sources(settings: Settings | None = None) -> list[SourceConfig]:
    """Default sources with YAML overrides applied.

    An override whose ``name`` matches a default replaces the given fields;
    any other entry is appended as a new source.
    """
    sources = {cfg.name: cfg for cfg in DEFAULT_SOURCES}
    order = [cfg.name for cfg in DEFAULT_SOURCES]
    for raw in (settings.sources if settings else []) or []:
        if not isinstance(raw, dict) or not raw.get("name"):
            logger.warning("source override ignored: %s", raw)
            continue
        name = raw["name"]
        if name in sources:
            merged = {**sources[name].__dict__, **raw}
            sources[name] = SourceConfig.from_dict(merged)
        else:
            sources[name] = SourceConfig.from_dict(raw)
            order.append(name)
    return [sources[name] for name in order if sources[name].enabled]


def _fetch_items(cfg: SourceConfig, settings: Settings | None) -> list[NewsItem]:
    timeout = settings.request_timeout if settings else 15.0
    exa_key = settings.exa_api_key if settings else None
    if cfg.kind == "rss":
        return fetch_rss_source(cfg, timeout=timeout)
    if cfg.kind == "html":
        return fetch_html_source(cfg, timeout=timeout)
    if cfg.kind in ("rss_then_html", "bloomberg"):
        items = fetch_rss_source(cfg, timeout=timeout)
        if items:
            return items
        logger.info("rss empty, scraping listing source=%s", cfg.name)
        return fetch_html_source(cfg, timeout=timeout)
    if cfg.kind == "tree_of_alpha":
        return fetch_tree_of_alpha(cfg, timeout=timeout)
    if cfg.kind == "exa_aggr":
        return fetch_exa_aggr_news(cfg, timeout=timeout, api_key=exa_key)
    if cfg.kind == "exa_listings":
        return fetch_exchange_listings(cfg, timeout=timeout, api_key=exa_key)
    raise ValueError(f"unknown source kind: {cfg.kind}")


def fetch_source(cfg: SourceConfig, settings: Settings | None = None) -> ProviderResult[list[NewsItem]]:
    started = time.time()
    try:
        items = _fetch_items(cfg, settings)
    except Exception as exc:
        latency_ms = int((time.time() - started) * 1000)
        logger.warning("source failed source=%s error=%s", cfg.name, exc)
        return ProviderResult(
            ok=False,
            source=cfg.name,
            data=[],
            latency_ms=latency_ms,
            error_code="fetch_failed",
            error_msg=str(exc),
            degraded_mode=True,
        )
    latency_ms = int((time.time() - started) * 1000)
    return ProviderResult(
        ok=True,
        source=cfg.name,
        data=items,
        latency_ms=latency_ms,
        degraded_mode=not items,
    )
