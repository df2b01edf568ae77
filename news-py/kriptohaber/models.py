from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


Sentiment = Literal["positive", "negative", "neutral"]
SENTIMENTS: tuple[str, ...] = ("positive", "negative", "neutral")


class NewsItem(BaseModel):
    id: str
    title: str
    url: str
    text: str | None = None
    publishedDate: str | None = None
    source: str | None = None
    score: float | None = None
    image: str | None = None
    sentiment: Sentiment | None = None
    fetchedAt: str | None = None


class SummaryWithSentiment(BaseModel):
    summary: str
    sentiment: Sentiment = "neutral"


class ScrapeResult(BaseModel):
    success: bool
    content: str = ""
    length: int = 0
    error: str | None = None


class SentimentGauge(BaseModel):
    positive: int = 0
    negative: int = 0
    neutral: int = 0
    total: int = 0
    positivePercentage: float = 50.0


class ScrapeRequest(BaseModel):
    url: str | None = None


class TranslateRequest(BaseModel):
    text: str | None = None


class SummarizeRequest(BaseModel):
    title: str
    text: str | None = None
    language: Literal["tr", "en"] = "tr"

