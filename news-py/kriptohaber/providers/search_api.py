from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
import logging
import os

from kriptohaber.engine.text import now_iso_ms, parse_published, to_iso
from kriptohaber.infra.http import get_json, post_json
from kriptohaber.models import NewsItem
from kriptohaber.providers.base import SourceConfig


logger = logging.getLogger("search_api")

TREE_OF_ALPHA_URL = "https://news.treeofalpha.com/api/news?limit=500"
EXA_SEARCH_URL = "https://api.exa.ai/search"
AGGR_NEWS_QUERY = "site:x.com/AggrNews OR site:twitter.com/AggrNews crypto news latest"

EXCHANGE_LISTING_QUERIES = (
    ("Binance", "site:binance.com/en/support/announcement new listing"),
    ("OKX", "site:okx.com new listing announcement"),
    ("Upbit", "site:upbit.com listing announcement"),
    ("Bithumb", "site:bithumb.com listing announcement"),
)
LISTING_TITLE_HINTS = ("listing", "list", "launch", "trading")
LISTING_RESULTS_PER_EXCHANGE = 5


def _epoch_to_iso(value) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    try:
        return to_iso(datetime.fromtimestamp(value, tz=timezone.utc))
    except (OverflowError, OSError, ValueError):
        return None


def parse_tree_of_alpha(payload) -> list[NewsItem]:
    rows = payload if isinstance(payload, list) else []
    fetched_at = now_iso_ms()
    items: list[NewsItem] = []
    for index, row in enumerate(rows):
        try:
            url = (row.get("url") or "").strip()
            title = (row.get("title") or "").strip()
            body = (row.get("body") or "").strip()
            if not url or not (title or body):
                continue
            source = row.get("source") if isinstance(row.get("source"), dict) else {}
            items.append(
                NewsItem(
                    id=str(row.get("_id") or url),
                    title=title or body[:100],
                    url=url,
                    text=body or title,
                    publishedDate=_epoch_to_iso(row.get("time")),
                    source=source.get("name") or "Tree of Alpha",
                    score=row.get("similarity") if isinstance(row.get("similarity"), (int, float)) else None,
                    image=row.get("image") or row.get("imageUrl") or None,
                    fetchedAt=fetched_at,
                )
            )
        except Exception as exc:
            logger.warning("tree_of_alpha item skipped index=%s error=%s", index, exc)
    return items


def fetch_tree_of_alpha(cfg: SourceConfig, timeout: float = 15.0) -> list[NewsItem]:
    url = cfg.feed_url or TREE_OF_ALPHA_URL
    try:
        payload = get_json(url, timeout=timeout)
    except Exception as exc:
        logger.warning("tree_of_alpha fetch failed error=%s", exc)
        return []
    items = parse_tree_of_alpha(payload)
    if cfg.max_items:
        items = items[: cfg.max_items]
    return items


def exa_search(query: str, api_key: str, num_results: int = 10, timeout: float = 15.0) -> list[dict]:
    payload = {
        "query": query,
        "numResults": num_results,
        "contents": {"text": True},
    }
    headers = {"x-api-key": api_key, "Content-Type": "application/json"}
    data = post_json(EXA_SEARCH_URL, payload, headers=headers, timeout=timeout)
    results = data.get("results") if isinstance(data, dict) else None
    return results if isinstance(results, list) else []


def exa_results_to_items(results: list[dict], source_name: str) -> list[NewsItem]:
    fetched_at = now_iso_ms()
    items: list[NewsItem] = []
    for index, row in enumerate(results):
        try:
            url = (row.get("url") or "").strip()
            title = (row.get("title") or "").strip()
            if not url or not title:
                continue
            items.append(
                NewsItem(
                    id=row.get("id") or url,
                    title=title,
                    url=url,
                    text=row.get("text") or row.get("summary") or None,
                    publishedDate=to_iso(parse_published(row.get("publishedDate"))),
                    source=source_name,
                    score=row.get("score") if isinstance(row.get("score"), (int, float)) else None,
                    image=row.get("image") or None,
                    fetchedAt=fetched_at,
                )
            )
        except Exception as exc:
            logger.warning("exa item skipped source=%s index=%s error=%s", source_name, index, exc)
    return items


def _is_listing_title(title: str) -> bool:
    lower = (title or "").lower()
    return any(hint in lower for hint in LISTING_TITLE_HINTS)


def fetch_exa_aggr_news(cfg: SourceConfig, timeout: float = 15.0, api_key: str | None = None) -> list[NewsItem]:
    api_key = api_key or os.getenv("EXA_API_KEY")
    if not api_key:
        logger.info("exa disabled: missing EXA_API_KEY")
        return []
    try:
        results = exa_search(cfg.query or AGGR_NEWS_QUERY, api_key, num_results=cfg.max_items or 10, timeout=timeout)
    except Exception as exc:
        logger.warning("exa aggr fetch failed error=%s", exc)
        return []
    return exa_results_to_items(results, cfg.name)


def _fetch_exchange(exchange: str, query: str, api_key: str, timeout: float) -> list[NewsItem]:
    results = exa_search(
        f"{query} crypto coin token",
        api_key,
        num_results=LISTING_RESULTS_PER_EXCHANGE,
        timeout=timeout,
    )
    listings = [r for r in results if _is_listing_title(r.get("title") or "")]
    return exa_results_to_items(listings, f"{exchange} Listing")


def fetch_exchange_listings(cfg: SourceConfig, timeout: float = 15.0, api_key: str | None = None) -> list[NewsItem]:
    api_key = api_key or os.getenv("EXA_API_KEY")
    if not api_key:
        logger.info("exa disabled: missing EXA_API_KEY")
        return []
    by_exchange: dict[str, list[NewsItem]] = {}
    with ThreadPoolExecutor(max_workers=len(EXCHANGE_LISTING_QUERIES)) as ex:
        futures = {
            ex.submit(_fetch_exchange, name, query, api_key, timeout): name
            for name, query in EXCHANGE_LISTING_QUERIES
        }
        for fut in as_completed(futures):
            name = futures[fut]
            try:
                by_exchange[name] = fut.result()
            except Exception as exc:
                logger.warning("exa listings failed exchange=%s error=%s", name, exc)
                by_exchange[name] = []
    items: list[NewsItem] = []
    for name, _query in EXCHANGE_LISTING_QUERIES:
        items.extend(by_exchange.get(name, []))
    return items
