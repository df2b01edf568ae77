from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import time
from typing import Callable, Iterable

from kriptohaber.config import Settings, load_settings
from kriptohaber.engine.text import parse_published
from kriptohaber.infra.cache import now_iso
from kriptohaber.models import NewsItem
from kriptohaber.providers.base import ProviderResult, SourceConfig
from kriptohaber.providers.sources import fetch_source, load_sources
from kriptohaber.services.article import fetch_page_image


logger = logging.getLogger("aggregator")

DEFAULT_BACKFILL_CAP = 50
DEFAULT_BACKFILL_BATCH_SIZE = 10

_LAST_RUN: dict = {"ts": None, "elapsed_ms": 0, "items": 0, "sources": []}


def dedup_by_url(items: Iterable[NewsItem]) -> list[NewsItem]:
    """One item per url. A later duplicate replaces the earlier one in place."""
    by_url: dict[str, NewsItem] = {}
    for item in items:
        if not item.url:
            continue
        by_url[item.url] = item
    return list(by_url.values())


def _sort_key(item: NewsItem) -> tuple:
    published = parse_published(item.publishedDate)
    if published is not None:
        return (0, -published.timestamp())
    return (1, -(item.score or 0.0))


def sort_news(items: Iterable[NewsItem]) -> list[NewsItem]:
    """Dated items first, newest first; undated items after, by score descending.

    Python's sort is stable, so equal keys keep their merged order.
    """
    return sorted(items, key=_sort_key)


def backfill_images(
    items: list[NewsItem],
    cap: int = DEFAULT_BACKFILL_CAP,
    batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE,
    fetcher: Callable[[str], str | None] = fetch_page_image,
) -> list[NewsItem]:
    """Fill ``image`` for the first ``cap`` items lacking one.

    Batches run one after another; items inside a batch are fetched
    concurrently. Items beyond the cap are left without an image.
    """
    pending = [item for item in items if not item.image and item.url][: max(0, cap)]
    if not pending:
        return items
    size = max(1, batch_size)
    filled = 0
    for start in range(0, len(pending), size):
        batch = pending[start : start + size]
        with ThreadPoolExecutor(max_workers=len(batch)) as ex:
            futures = {ex.submit(fetcher, item.url): item for item in batch}
            for fut in as_completed(futures):
                item = futures[fut]
                try:
                    image = fut.result()
                except Exception as exc:
                    logger.debug("backfill failed url=%s error=%s", item.url, exc)
                    continue
                if image:
                    item.image = image
                    filled += 1
    logger.info("backfill attempted=%s filled=%s", len(pending), filled)
    return items


def _fan_out(sources: list[SourceConfig], settings: Settings | None) -> list[ProviderResult]:
    if not sources:
        return []
    max_workers = min(len(sources), settings.max_workers if settings else 16) or 1
    results: list[ProviderResult | None] = [None] * len(sources)
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(fetch_source, cfg, settings): idx for idx, cfg in enumerate(sources)}
        for fut in as_completed(futures):
            idx = futures[fut]
            try:
                results[idx] = fut.result()
            except Exception as exc:
                logger.exception("source crashed source=%s", sources[idx].name)
                results[idx] = ProviderResult(
                    ok=False,
                    source=sources[idx].name,
                    data=[],
                    latency_ms=0,
                    error_code="crashed",
                    error_msg=str(exc),
                    degraded_mode=True,
                )
    return [r for r in results if r is not None]


def fetch_all_news(
    sources: list[SourceConfig] | None = None,
    settings: Settings | None = None,
    image_fetcher: Callable[[str], str | None] = fetch_page_image,
) -> list[NewsItem]:
    """Fetch every source concurrently and return one merged, sorted list.

    A failing source contributes nothing; the call itself never fails
    because of a single source.
    """
    started = time.time()
    if settings is None:
        settings = load_settings()
    if sources is None:
        sources = load_sources(settings)

    results = _fan_out(sources, settings)
    merged: list[NewsItem] = []
    for result in results:
        merged.extend(result.data or [])

    items = sort_news(dedup_by_url(merged))
    backfill_images(
        items,
        cap=settings.backfill_cap,
        batch_size=settings.backfill_batch_size,
        fetcher=image_fetcher,
    )

    elapsed_ms = int((time.time() - started) * 1000)
    _LAST_RUN.update(
        {
            "ts": now_iso(),
            "elapsed_ms": elapsed_ms,
            "items": len(items),
            "sources": [r.debug_view() for r in results],
        }
    )
    failed = [r.source for r in results if not r.ok]
    logger.info(
        "aggregate done sources=%s merged=%s unique=%s failed=%s elapsed_ms=%s",
        len(results),
        len(merged),
        len(items),
        failed,
        elapsed_ms,
    )
    return items


def last_run_stats() -> dict:
    return dict(_LAST_RUN)
