from __future__ import annotations

import logging

from bs4 import BeautifulSoup
import feedparser

from kriptohaber.engine.images import normalize_url, upgrade_url
from kriptohaber.engine.text import (
    clean_description,
    collapse_ws,
    from_struct_time,
    now_iso_ms,
    parse_published,
    to_iso,
)
from kriptohaber.infra.http import ACCEPT_FEED, browser_headers, get_text
from kriptohaber.models import NewsItem
from kriptohaber.providers.base import SourceConfig


logger = logging.getLogger("rss")

SCORE_STEP = 0.01


def _entry_description(entry) -> str:
    summary = entry.get("summary") or entry.get("description") or ""
    if summary:
        return summary.strip()
    for content in entry.get("content") or []:
        value = (content or {}).get("value")
        if value:
            return value.strip()
    return ""


def _entry_html_blobs(entry) -> list[str]:
    blobs = [entry.get("summary") or entry.get("description") or ""]
    for content in entry.get("content") or []:
        blobs.append((content or {}).get("value") or "")
    return [b for b in blobs if b]


def _entry_image(entry) -> str | None:
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = (media or {}).get("url")
            if url:
                return url
    for enclosure in entry.get("enclosures") or []:
        if "image" in (enclosure.get("type") or "") and enclosure.get("href"):
            return enclosure.get("href")
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and "image" in (link.get("type") or "") and link.get("href"):
            return link.get("href")
    image = entry.get("image")
    if isinstance(image, dict) and image.get("href"):
        return image.get("href")
    for blob in _entry_html_blobs(entry):
        img = BeautifulSoup(blob, "html.parser").find("img")
        if img is not None and img.get("src"):
            return img.get("src")
    return None


def _entry_published(entry) -> str | None:
    for key in ("published", "pubDate", "updated"):
        dt = parse_published(entry.get(key))
        if dt is not None:
            return to_iso(dt)
    for key in ("published_parsed", "updated_parsed"):
        dt = from_struct_time(entry.get(key))
        if dt is not None:
            return to_iso(dt)
    return None


def parse_rss_feed(xml_text: str, source_name: str, base_score: float = 0.9) -> list[NewsItem]:
    feed = feedparser.parse(xml_text or "")
    if feed.get("bozo") and not feed.entries:
        logger.warning("rss parse failed source=%s error=%s", source_name, feed.get("bozo_exception"))
        return []

    fetched_at = now_iso_ms()
    items: list[NewsItem] = []
    for index, entry in enumerate(feed.entries):
        try:
            title = collapse_ws(entry.get("title"))
            link = (entry.get("link") or "").strip()
            if not title or not link:
                continue
            description = _entry_description(entry)
            image = _entry_image(entry)
            if image:
                image = upgrade_url(normalize_url(image, link) or image)
            items.append(
                NewsItem(
                    id=link,
                    title=title,
                    url=link,
                    text=clean_description(description, title) if description else title,
                    publishedDate=_entry_published(entry),
                    source=source_name,
                    score=round(base_score - index * SCORE_STEP, 4),
                    image=image,
                    fetchedAt=fetched_at,
                )
            )
        except Exception as exc:
            logger.warning("rss item skipped source=%s index=%s error=%s", source_name, index, exc)
    return items


def fetch_rss_source(cfg: SourceConfig, timeout: float = 15.0) -> list[NewsItem]:
    if not cfg.feed_url:
        return []
    try:
        xml_text = get_text(cfg.feed_url, headers=browser_headers(cfg.feed_url, ACCEPT_FEED), timeout=timeout)
    except Exception as exc:
        logger.warning("rss fetch failed source=%s url=%s error=%s", cfg.name, cfg.feed_url, exc)
        return []
    items = parse_rss_feed(xml_text, cfg.name, base_score=cfg.base_score)
    if cfg.max_items:
        items = items[: cfg.max_items]
    logger.info("rss source=%s items=%s", cfg.name, len(items))
    return items
