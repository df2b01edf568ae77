from __future__ import annotations

import logging
import re
import time
from urllib.parse import urlparse

from bs4 import BeautifulSoup
import httpx

from kriptohaber.engine.images import extract_image_from_html
from kriptohaber.engine.text import collapse_ws
from kriptohaber.errors import SourceUnavailable
from kriptohaber.infra.http import browser_headers
from kriptohaber.models import ScrapeResult


logger = logging.getLogger("article")

SCRAPE_TIMEOUT = 15.0
MIN_CONTENT_CHARS = 100
MIN_SCRAPE_PARAGRAPH_CHARS = 50
MIN_FULL_PARAGRAPH_CHARS = 30
MIN_FULL_PARAGRAPHS = 3
MIN_FULL_TEXT_CHARS = 500

SCRAPE_NOISE_SELECTOR = (
    "script, style, nav, header, footer, aside, .ads, .advertisement, "
    ".social-share, .comments, iframe, .related-posts"
)
FULL_TEXT_NOISE_SELECTOR = (
    "script, style, nav, header, footer, aside, .advertisement, .ads, "
    ".social-share, .comments, iframe, noscript"
)

SCRAPE_CONTENT_SELECTORS = (
    ".article-content",
    ".post-content",
    ".entry-content",
    ".article-body",
    ".post-body",
    '[class*="article-text"]',
    '[class*="post-text"]',
    "main article",
    ".content",
    '[itemprop="articleBody"]',
    ".story-body",
    ".article__body",
    ".post__content",
    "#article-body",
    "#post-content",
    ".post__body",
    ".entry__content",
    ".story__content",
    ".article__text",
    '[class*="content-body"]',
    '[class*="article-wrapper"]',
    '[class*="post-wrapper"]',
    ".td-post-content",
    ".tdb-block-inner",
    '[class*="news-content"]',
    '[class*="blog-content"]',
    'div[class*="Article"]',
    'div[class*="Content"]',
)

FULL_TEXT_CONTAINER_SELECTORS = (
    "article",
    ".article-content",
    ".article-body",
    ".entry-content",
    ".post-content",
    ".content-body",
    "main article",
    '[class*="article-text"]',
    '[class*="post-body"]',
    '[class*="story-content"]',
    '[itemprop="articleBody"]',
    ".article__body",
    ".post__content",
)


def validate_url(url) -> str:
    if not url or not isinstance(url, str):
        raise ValueError("URL is required")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL format")
    return url.strip()


def _fetch_html(url: str, timeout: float) -> str:
    """GET ``url`` within ``timeout`` seconds in total, not per read."""
    deadline = time.monotonic() + timeout
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            with client.stream("GET", url, headers=browser_headers(url)) as res:
                if res.status_code >= 400:
                    raise SourceUnavailable(
                        f"Failed to fetch article: {res.reason_phrase}", status_code=res.status_code
                    )
                chunks = []
                for chunk in res.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise SourceUnavailable(f"Failed to fetch article: no complete response within {timeout}s")
                encoding = res.charset_encoding or "utf-8"
    except httpx.HTTPError as exc:
        raise SourceUnavailable(f"Failed to fetch article: {exc}") from exc
    return b"".join(chunks).decode(encoding, errors="replace")


def fetch_page_image(url: str, timeout: float = 10.0) -> str | None:
    """Best image of an article page, or None on any failure."""
    try:
        html_text = _fetch_html(url, timeout)
    except Exception as exc:
        logger.debug("page image fetch failed url=%s error=%s", url, exc)
        return None
    try:
        return extract_image_from_html(html_text, url)
    except Exception as exc:
        logger.debug("page image extraction failed url=%s error=%s", url, exc)
        return None


def extract_article_content(html_text: str) -> str:
    soup = BeautifulSoup(html_text or "", "html.parser")
    for node in soup.select(SCRAPE_NOISE_SELECTOR):
        node.decompose()

    content = ""
    articles = soup.select("article")
    if articles:
        content = " ".join(node.get_text(" ") for node in articles)

    if not content.strip():
        content = ""
        for selector in SCRAPE_CONTENT_SELECTORS:
            nodes = soup.select(selector)
            text = " ".join(node.get_text(" ") for node in nodes)
            if nodes and len(text.strip()) > MIN_CONTENT_CHARS:
                content = text
                break

    if not content:
        main = soup.select_one("main")
        if main is not None:
            content = "\n\n".join(p.get_text(" ") for p in main.find_all("p"))

    if not content.strip():
        paragraphs = [collapse_ws(p.get_text(" ")) for p in soup.find_all("p")]
        content = "\n\n".join(p for p in paragraphs if len(p) > MIN_SCRAPE_PARAGRAPH_CHARS)

    return collapse_ws(content)


def scrape_article(url: str, timeout: float = SCRAPE_TIMEOUT) -> ScrapeResult:
    """Full readable text of one article.

    Raises ``ValueError`` for a malformed URL and ``SourceUnavailable`` when
    the page cannot be fetched within ``timeout`` seconds.
    """
    target = validate_url(url)
    html_text = _fetch_html(target, timeout)
    content = extract_article_content(html_text)
    if len(content) < MIN_CONTENT_CHARS:
        return ScrapeResult(success=False, content="", error="Could not extract sufficient content from article")
    return ScrapeResult(success=True, content=content, length=len(content))


def _paragraphs(container) -> list[str]:
    out = []
    for p in container.find_all("p"):
        text = p.get_text(" ").strip()
        if len(text) > MIN_FULL_PARAGRAPH_CHARS:
            out.append(text)
    return out


def extract_full_text(html_text: str) -> str:
    soup = BeautifulSoup(html_text or "", "html.parser")
    for node in soup.select(FULL_TEXT_NOISE_SELECTOR):
        node.decompose()

    full_text = ""
    for selector in FULL_TEXT_CONTAINER_SELECTORS:
        container = soup.select_one(selector)
        if container is None:
            continue
        paragraphs = _paragraphs(container)
        if len(paragraphs) >= MIN_FULL_PARAGRAPHS:
            full_text = "\n\n".join(paragraphs)
            break

    if len(full_text) < MIN_FULL_TEXT_CHARS:
        body = soup.body or soup
        paragraphs = _paragraphs(body)
        if paragraphs:
            full_text = "\n\n".join(paragraphs)

    full_text = re.sub(r"[ \t\r\f\v]+", " ", full_text)
    full_text = re.sub(r"\n[ \t]+", "\n", full_text)
    full_text = re.sub(r"\n{3,}", "\n\n", full_text)
    return full_text.strip()


def fetch_full_article(url: str, timeout: float = SCRAPE_TIMEOUT) -> str | None:
    """Paragraph text of an article, or None when too little could be extracted."""
    target = validate_url(url)
    html_text = _fetch_html(target, timeout)
    text = extract_full_text(html_text)
    if len(text) < MIN_CONTENT_CHARS:
        logger.info("full article too short url=%s chars=%s", target, len(text))
        return None
    return text
