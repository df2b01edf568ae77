from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from kriptohaber.engine.images import extract_image, normalize_url
from kriptohaber.engine.text import collapse_ws, now_iso_ms, parse_published, to_iso
from kriptohaber.infra.http import browser_headers, get_text, origin_of
from kriptohaber.models import NewsItem
from kriptohaber.providers.base import SourceConfig


logger = logging.getLogger("html_scrape")

MIN_TITLE_CHARS = 10
SCORE_STEP = 0.01

BLOOMBERG_ORIGIN = "https://www.bloomberg.com"
BLOOMBERG_ARTICLE_PATH = "/news/articles/"


def _first_text(block: Tag, selectors: tuple[str, ...]) -> str:
    if not selectors:
        return ""
    node = block.select_one(", ".join(selectors))
    if node is None:
        return ""
    return collapse_ws(node.get_text(" "))


def _block_title(block: Tag, cfg: SourceConfig) -> str:
    title = _first_text(block, cfg.title_selectors)
    if title:
        return title
    title = collapse_ws(block.get("title"))
    if title:
        return title
    anchor = block.find("a")
    if anchor is not None:
        return collapse_ws(anchor.get("title")) or collapse_ws(anchor.get_text(" "))
    return ""


def _block_href(block: Tag) -> str:
    href = block.get("href")
    if href:
        return str(href)
    anchor = block.find("a", href=True)
    return str(anchor.get("href")) if anchor is not None else ""


def _block_date(block: Tag, selectors: tuple[str, ...], now_iso: str) -> str:
    node = block.select_one(", ".join(selectors)) if selectors else None
    if node is None:
        return now_iso
    raw = node.get("datetime") or node.get_text(" ").strip()
    return to_iso(parse_published(str(raw))) or now_iso


def scrape_listing(html_text: str, cfg: SourceConfig) -> list[NewsItem]:
    """Parse a listing page into items using the selector cascade in ``cfg``."""
    origin = origin_of(cfg.page_url or "")
    domain = cfg.domain or ""
    soup = BeautifulSoup(html_text or "", "html.parser")
    fetched_at = now_iso_ms()
    seen: set[str] = set()
    items: list[NewsItem] = []

    for index, block in enumerate(soup.select(", ".join(cfg.item_selectors))):
        try:
            title = _block_title(block, cfg)
            url = normalize_url(_block_href(block), origin)
            if not title or not url or len(title) <= MIN_TITLE_CHARS:
                continue
            if domain and domain not in url:
                continue
            if url in seen:
                continue
            seen.add(url)
            text = _first_text(block, cfg.text_selectors) or _first_text(block, cfg.content_selectors)
            items.append(
                NewsItem(
                    id=url,
                    title=title,
                    url=url,
                    text=text or title,
                    publishedDate=_block_date(block, cfg.date_selectors, fetched_at),
                    source=cfg.name,
                    score=round(cfg.base_score - index * SCORE_STEP, 4),
                    image=extract_image(block, origin),
                    fetchedAt=fetched_at,
                )
            )
        except Exception as exc:
            logger.warning("html item skipped source=%s index=%s error=%s", cfg.name, index, exc)

    if cfg.max_items:
        items = items[: cfg.max_items]
    return items


def scrape_bloomberg(html_text: str, cfg: SourceConfig) -> list[NewsItem]:
    soup = BeautifulSoup(html_text or "", "html.parser")
    fetched_at = now_iso_ms()
    items: list[NewsItem] = []

    for index, article in enumerate(soup.select("article")):
        try:
            link = article.select_one(f'a[href*="{BLOOMBERG_ARTICLE_PATH}"]')
            if link is None:
                continue
            relative = str(link.get("href") or "")
            headline = link.select_one('h3, h2, [class*="headline"]')
            title = collapse_ws(headline.get_text(" ")) if headline is not None else ""
            title = title or collapse_ws(link.get("aria-label")) or _first_text(article, ('[class*="headline"]',))
            url = normalize_url(relative, BLOOMBERG_ORIGIN)
            if not title or not url or BLOOMBERG_ARTICLE_PATH not in relative:
                continue

            published = None
            stamp = article.select_one('time, [class*="timestamp"]')
            if stamp is not None:
                if stamp.get("datetime"):
                    published = to_iso(parse_published(str(stamp.get("datetime")))) or fetched_at
                elif stamp.get_text(strip=True):
                    published = fetched_at

            text = _first_text(article, ("p", '[class*="summary"]', '[class*="description"]'))
            items.append(
                NewsItem(
                    id=url,
                    title=title,
                    url=url,
                    text=text or title,
                    publishedDate=published,
                    source=cfg.name,
                    score=round(cfg.base_score - index * SCORE_STEP, 4),
                    image=extract_image(article, BLOOMBERG_ORIGIN),
                    fetchedAt=fetched_at,
                )
            )
        except Exception as exc:
            logger.warning("bloomberg item skipped index=%s error=%s", index, exc)

    if cfg.max_items:
        items = items[: cfg.max_items]
    return items


def fetch_html_source(cfg: SourceConfig, timeout: float = 15.0) -> list[NewsItem]:
    if not cfg.page_url:
        return []
    try:
        html_text = get_text(cfg.page_url, headers=browser_headers(cfg.page_url), timeout=timeout)
    except Exception as exc:
        logger.warning("html fetch failed source=%s url=%s error=%s", cfg.name, cfg.page_url, exc)
        return []
    parser = scrape_bloomberg if cfg.kind == "bloomberg" else scrape_listing
    items = parser(html_text, cfg)
    logger.info("html source=%s items=%s", cfg.name, len(items))
    return items
