from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Generic, TypeVar


T = TypeVar("T")


@dataclass
class ProviderResult(Generic[T]):
    ok: bool
    source: str
    data: T | None
    latency_ms: int
    error_code: str | None = None
    error_msg: str | None = None
    degraded_mode: bool = False

    def debug_view(self) -> dict:
        return {
            "source": self.source,
            "ok": self.ok,
            "items": len(self.data or []) if isinstance(self.data, list) else 0,
            "latency_ms": self.latency_ms,
            "error_code": self.error_code or "",
            "error_msg": self.error_msg or "",
            "degraded_mode": self.degraded_mode,
        }


DEFAULT_ITEM_SELECTORS = (
    "article",
    ".post",
    ".news-item",
    '[class*="article"]',
    '[class*="post"]',
)
DEFAULT_TITLE_SELECTORS = ("h1", "h2", "h3", "h4", ".title", '[class*="title"]', '[class*="heading"]')
DEFAULT_TEXT_SELECTORS = (
    "p",
    ".description",
    '[class*="description"]',
    '[class*="summary"]',
    '[class*="excerpt"]',
)
DEFAULT_CONTENT_SELECTORS = (".content", '[class*="content"]')
DEFAULT_DATE_SELECTORS = ("time", ".date", '[class*="date"]', '[class*="time"]', '[class*="published"]')


@dataclass
class SourceConfig:
    """Declarative description of one news source.

    ``kind`` selects the fetch strategy:

    - ``rss``: feed only
    - ``html``: listing page scrape only
    - ``rss_then_html``: feed first, listing scrape when the feed yields nothing
    - ``bloomberg``: feed first, then the Bloomberg-specific listing parser
    - ``tree_of_alpha`` / ``exa_aggr`` / ``exa_listings``: search/JSON APIs
    """

    name: str
    kind: str = "rss"
    feed_url: str | None = None
    page_url: str | None = None
    domain: str | None = None
    base_score: float = 0.9
    max_items: int | None = None
    item_selectors: tuple[str, ...] = DEFAULT_ITEM_SELECTORS
    title_selectors: tuple[str, ...] = DEFAULT_TITLE_SELECTORS
    text_selectors: tuple[str, ...] = DEFAULT_TEXT_SELECTORS
    content_selectors: tuple[str, ...] = DEFAULT_CONTENT_SELECTORS
    date_selectors: tuple[str, ...] = DEFAULT_DATE_SELECTORS
    query: str | None = None
    enabled: bool = True

    @classmethod
    def from_dict(cls, raw: dict) -> "SourceConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            if key not in known:
                continue
            if key.endswith("_selectors") and isinstance(value, (list, str)):
                value = tuple([value] if isinstance(value, str) else value)
            kwargs[key] = value
        return cls(**kwargs)
