"""Image candidate extraction, thumbnail upgrading and URL scoring.

Everything here is heuristic. ``upgrade_url`` rewrites common thumbnail
naming schemes into their probable full-size form and may occasionally
mangle a URL that was already full size; that trade-off is accepted.
``score_url`` never raises, whatever it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from typing import Iterable, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True)
class Replacement:
    pattern: str
    replacement: str


@dataclass(frozen=True)
class Weight:
    pattern: str
    weight: int


@dataclass
class ImageCandidate:
    url: str
    score: float


# Longer tokens come first so "-thumbnail" is not half-eaten by "-thumb".
UPGRADE_PATTERNS: tuple[Replacement, ...] = (
    Replacement(r"-thumbnail", ""),
    Replacement(r"-thumb", ""),
    Replacement(r"_thumbnail", ""),
    Replacement(r"_thumb", ""),
    Replacement(r"-small", ""),
    Replacement(r"_small", ""),
    Replacement(r"-medium", "-large"),
    Replacement(r"_medium", "_large"),
    Replacement(r"-150x150", ""),
    Replacement(r"-300x300", ""),
    Replacement(r"(?<=/)thumbnail(?=/)", "full"),
    Replacement(r"(?<=/)thumbs(?=/)", "images"),
    Replacement(r"(?<=/)thumb(?=/)", "full"),
    Replacement(r"(?<=/)small(?=/)", "large"),
    Replacement(r"resize=", "original="),
    Replacement(r"[,;&]?\bw=\d+", ""),
    Replacement(r"[,;&]?\bh=\d+", ""),
    Replacement(r"size=\w+", "size=original"),
)

PENALTY_PATTERNS: tuple[Weight, ...] = tuple(
    Weight(p, -50)
    for p in (
        "placeholder",
        "avatar",
        "icon",
        "logo",
        "favicon",
        "sprite",
        "emoji",
        "pixel",
        "gravatar",
        "profile",
        "1x1",
        "16x16",
        "32x32",
        "64x64",
        "100x100",
        "default",
        "blank",
        "no-image",
        "missing",
    )
)

# Groups of synonyms: at most one bonus per group.
BONUS_PATTERNS: tuple[tuple[Weight, ...], ...] = (
    (Weight("og-image", 50), Weight("og_image", 50)),
    (Weight("twitter-image", 45), Weight("twitter_image", 45)),
    (Weight("featured", 40),),
    (Weight("hero", 35),),
    (Weight("cover", 30),),
    (Weight("banner", 25),),
)

CDN_HINTS: tuple[str, ...] = ("cloudinary", "imgix", "cloudfront", "amazonaws")
CDN_BONUS = 15

BASE_SCORE = 100
MIN_URL_CHARS = 10

_DIMENSION_RE = re.compile(r"(\d+)x(\d+)")
_DUP_SLASH_RE = re.compile(r"([^:]/)/+")

META_SELECTORS: tuple[tuple[str, str], ...] = (
    ('meta[property="og:image"]', "content"),
    ('meta[property="og:image:secure_url"]', "content"),
    ('meta[name="twitter:image"]', "content"),
    ('meta[name="twitter:image:src"]', "content"),
    ('meta[itemprop="image"]', "content"),
    ('link[rel="image_src"]', "href"),
)

HIGH_PRIORITY_SELECTORS: tuple[str, ...] = (
    'article img[class*="featured"]',
    'article img[class*="hero"]',
    'article img[class*="cover"]',
    ".featured-image img",
    ".hero-image img",
    ".post-thumbnail img",
    ".wp-post-image",
    '[class*="featured-image"] img',
    '[class*="hero-image"] img',
    "picture source",
    "figure.wp-block-image img",
)

ARTICLE_IMAGE_SELECTOR = "article img, .article-body img, .entry-content img, .post-content img, main img"

META_BONUS = 100
JSONLD_IMAGE_BONUS = 80
JSONLD_THUMBNAIL_BONUS = 60
PRIORITY_BONUS = 70
PRIORITY_SRCSET_BONUS = 75
ARTICLE_BONUS = 50
ARTICLE_WIDE_BONUS = 20
ARTICLE_TALL_BONUS = 20
ANY_IMAGE_BONUS = 30


def upgrade_url(url: str, patterns: Sequence[Replacement] = UPGRADE_PATTERNS) -> str:
    if not url:
        return url
    upgraded = url.split("?", 1)[0] or url
    for rule in patterns:
        upgraded = re.sub(rule.pattern, rule.replacement, upgraded)
    return _DUP_SLASH_RE.sub(r"\1", upgraded)


def score_url(
    url: str,
    penalties: Sequence[Weight] = PENALTY_PATTERNS,
    bonuses: Sequence[Sequence[Weight]] = BONUS_PATTERNS,
    cdn_hints: Iterable[str] = CDN_HINTS,
) -> float:
    if not isinstance(url, str) or len(url) < MIN_URL_CHARS:
        return 0
    lower = url.lower()
    score = BASE_SCORE

    for rule in penalties:
        if rule.pattern in lower:
            score += rule.weight

    for group in bonuses:
        for rule in group:
            if rule.pattern in lower:
                score += rule.weight
                break

    match = _DIMENSION_RE.search(lower)
    if match:
        width = int(match.group(1))
        height = int(match.group(2))
        if width < 400 or height < 300:
            score -= 30
        if width > 800 and height > 600:
            score += 20

    if any(hint in lower for hint in cdn_hints):
        score += CDN_BONUS

    return max(0, score)


def normalize_url(url: str | None, base_url: str) -> str | None:
    if not url:
        return None
    value = url.strip()
    if not value:
        return None
    if value.startswith("//"):
        return f"https:{value}"
    if value.startswith("http"):
        return value
    parsed = urlparse(base_url or "")
    if not parsed.scheme or not parsed.netloc:
        return None
    try:
        return urljoin(f"{parsed.scheme}://{parsed.netloc}/", value)
    except ValueError:
        return None


def is_valid_image_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    if url.endswith(".svg"):
        return False
    if "data:image" in url:
        return False
    return True


def first_srcset_url(srcset: str | None) -> str | None:
    sources = _srcset_urls(srcset)
    return sources[0] if sources else None


def last_srcset_url(srcset: str | None) -> str | None:
    sources = _srcset_urls(srcset)
    return sources[-1] if sources else None


def _srcset_urls(srcset: str | None) -> list[str]:
    out: list[str] = []
    for part in (srcset or "").split(","):
        bits = part.strip().split(" ")
        if bits and bits[0]:
            out.append(bits[0])
    return out


def _dimension(tag: Tag, name: str) -> int:
    raw = str(tag.get(name) or "").strip()
    match = re.match(r"\d+", raw)
    return int(match.group(0)) if match else 0


def _attr(tag: Tag, *names: str) -> str | None:
    for name in names:
        value = tag.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value:
            return str(value)
    return None


def _jsonld_strings(value) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        out: list[str] = []
        for entry in value:
            if isinstance(entry, str):
                out.append(entry)
            elif isinstance(entry, dict) and isinstance(entry.get("url"), str):
                out.append(entry["url"])
        return out
    if isinstance(value, dict) and isinstance(value.get("url"), str):
        return [value["url"]]
    return []


def _iter_jsonld_nodes(node):
    if isinstance(node, list):
        for entry in node:
            yield from _iter_jsonld_nodes(entry)
        return
    if not isinstance(node, dict):
        return
    yield node
    graph = node.get("@graph")
    if isinstance(graph, list):
        yield from _iter_jsonld_nodes(graph)


class _Collector:
    def __init__(self, base_url: str):
        self.base_url = base_url
        self.candidates: list[ImageCandidate] = []

    def add(self, raw: str | None, bonus: float) -> ImageCandidate | None:
        normalized = normalize_url(raw, self.base_url)
        if not normalized:
            return None
        upgraded = upgrade_url(normalized)
        candidate = ImageCandidate(url=upgraded, score=score_url(upgraded) + bonus)
        self.candidates.append(candidate)
        return candidate


def collect_candidates(root: BeautifulSoup | Tag, base_url: str) -> list[ImageCandidate]:
    """All image candidates in ``root``, in strategy order."""
    collector = _Collector(base_url)

    for selector, attr in META_SELECTORS:
        node = root.select_one(selector)
        if node is not None:
            collector.add(_attr(node, attr), META_BONUS)

    for script in root.select('script[type="application/ld+json"]'):
        raw = script.string or script.get_text() or ""
        try:
            data = json.loads(raw)
        except (ValueError, TypeError):
            continue
        for node in _iter_jsonld_nodes(data):
            for url in _jsonld_strings(node.get("image")):
                collector.add(url, JSONLD_IMAGE_BONUS)
            thumbs = node.get("thumbnailUrl")
            if isinstance(thumbs, (str, list)):
                for url in _jsonld_strings(thumbs):
                    collector.add(url, JSONLD_THUMBNAIL_BONUS)

    for selector in HIGH_PRIORITY_SELECTORS:
        for node in root.select(selector):
            src = _attr(node, "src", "data-src", "data-lazy-src") or first_srcset_url(_attr(node, "srcset"))
            collector.add(src, PRIORITY_BONUS)
            largest = last_srcset_url(_attr(node, "srcset"))
            if largest:
                collector.add(largest, PRIORITY_SRCSET_BONUS)

    for node in root.select(ARTICLE_IMAGE_SELECTOR):
        src = _attr(node, "src", "data-src", "data-lazy-src")
        width = _dimension(node, "width")
        height = _dimension(node, "height")
        if src and (width > 600 or height > 400 or not width):
            bonus = ARTICLE_BONUS
            if width > 800:
                bonus += ARTICLE_WIDE_BONUS
            if height > 600:
                bonus += ARTICLE_TALL_BONUS
            collector.add(src, bonus)

    for node in root.select("img"):
        src = _attr(node, "src", "data-src")
        width = _dimension(node, "width")
        height = _dimension(node, "height")
        if src and (width > 400 or height > 300 or not width):
            collector.add(src, ANY_IMAGE_BONUS)

    return collector.candidates


def select_best(candidates: Iterable[ImageCandidate]) -> str | None:
    best: ImageCandidate | None = None
    for candidate in candidates:
        if candidate.score <= 0 or not is_valid_image_url(candidate.url):
            continue
        if best is None or candidate.score > best.score:
            best = candidate
    return best.url if best else None


def extract_image(root: BeautifulSoup | Tag, base_url: str) -> str | None:
    return select_best(collect_candidates(root, base_url))


def extract_image_from_html(html_text: str, base_url: str) -> str | None:
    if not html_text:
        return None
    return extract_image(BeautifulSoup(html_text, "html.parser"), base_url)
