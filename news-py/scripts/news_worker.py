from __future__ import annotations

import logging
import os
import time

from kriptohaber.config import load_settings
from kriptohaber.infra.cache import init_cache
from kriptohaber.services.aggregator import fetch_all_news
from kriptohaber.services.sentiment import sentiment_gauge
from kriptohaber.services.translation import summarize_news_items


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("news_worker")


def _truthy(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


def main() -> None:
    settings = load_settings()
    cache = init_cache(settings.redis_url, settings.translation_ttl_seconds)

    interval_s = int(os.getenv("NEWS_INTERVAL_SECONDS", "300") or 300)
    summarize = _truthy(os.getenv("NEWS_SUMMARIZE", "1"))
    summarize_limit = int(os.getenv("NEWS_SUMMARIZE_LIMIT", "20") or 20)

    logger.info("news_worker starting: interval=%ss summarize=%s limit=%s", interval_s, summarize, summarize_limit)
    while True:
        started = time.time()
        try:
            items = fetch_all_news(settings=settings)
            if summarize and items:
                head = items[:summarize_limit]
                translations = summarize_news_items(head, store=cache)
                gauge = sentiment_gauge(head, translations)
                logger.info(
                    "news_worker sentiment positive=%s negative=%s neutral=%s pct=%.1f omitted=%s",
                    gauge.positive,
                    gauge.negative,
                    gauge.neutral,
                    gauge.positivePercentage,
                    len(head) - len(translations),
                )
            elapsed = time.time() - started
            logger.info("news_worker run ok items=%s (%.2fs)", len(items), elapsed)
        except Exception as exc:
            logger.exception("news_worker run failed: %s", exc)
        time.sleep(max(10, interval_s))


if __name__ == "__main__":
    main()
