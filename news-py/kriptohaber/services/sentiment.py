from __future__ import annotations

from typing import Mapping, Sequence

from kriptohaber.models import NewsItem, SentimentGauge, SummaryWithSentiment


def _sentiment_of(item: NewsItem, translations: Mapping[str, SummaryWithSentiment | dict]) -> str | None:
    entry = translations.get(item.id)
    if isinstance(entry, SummaryWithSentiment):
        return entry.sentiment
    if isinstance(entry, dict):
        return entry.get("sentiment")
    return item.sentiment


def sentiment_gauge(
    items: Sequence[NewsItem],
    translations: Mapping[str, SummaryWithSentiment | dict] | None = None,
    window: int = 20,
) -> SentimentGauge:
    """Market mood over the newest ``window`` items.

    Items without a sentiment are excluded, not counted as neutral. Neutral
    items are counted but do not move the percentage.
    """
    translations = translations or {}
    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for item in list(items)[:window]:
        sentiment = _sentiment_of(item, translations)
        if sentiment in counts:
            counts[sentiment] += 1
    polar = counts["positive"] + counts["negative"]
    return SentimentGauge(
        positive=counts["positive"],
        negative=counts["negative"],
        neutral=counts["neutral"],
        total=sum(counts.values()),
        positivePercentage=(counts["positive"] / polar * 100) if polar else 50.0,
    )
