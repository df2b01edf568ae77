from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import html
import re
import time

from bs4 import BeautifulSoup


_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

_URL_PATTERNS = (
    re.compile(r"https?://[^\s]+"),
    re.compile(r"www\.[^\s]+"),
    re.compile(r"t\.co/[^\s]+"),
)

# Tracking fragments that survive tag stripping in social/RSS descriptions.
_TRACKING_PATTERNS = (
    re.compile(r"source=[^\s&]+", re.IGNORECASE),
    re.compile(r"utm_[^\s&]+=[^\s&]+", re.IGNORECASE),
    re.compile(r"ref=[^\s&]+", re.IGNORECASE),
    re.compile(r"[?&][a-z_]+=[^\s&]+", re.IGNORECASE),
)

_ARTIFACT_PATTERNS = (
    re.compile(r"RSVP:", re.IGNORECASE),
    re.compile(r"Read more:", re.IGNORECASE),
    re.compile(r"Click here:", re.IGNORECASE),
    re.compile(r"\[…\]"),
    re.compile(r"\[\.\.\.\]"),
)

JUNK_SEPARATORS = ("The post", "Read more at", "Continue reading")

MIN_TEXT_CHARS = 10


def collapse_ws(value: str | None) -> str:
    return _WS_RE.sub(" ", value or "").strip()


def parse_published(value: str | None) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        dt = parsedate_to_datetime(raw)
        if dt is not None:
            return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    except Exception:
        pass
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except Exception:
        return None
    return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def to_iso(dt: datetime | None) -> str | None:
    """Millisecond-precision UTC timestamp, e.g. ``2024-01-01T00:00:00.000Z``."""
    if dt is None:
        return None
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def from_struct_time(value: time.struct_time | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def now_iso_ms() -> str:
    return to_iso(datetime.now(timezone.utc)) or ""


def _scrub(text: str) -> str:
    for pattern in _URL_PATTERNS:
        text = pattern.sub("", text)
    for pattern in _TRACKING_PATTERNS:
        text = pattern.sub("", text)
    for pattern in _ARTIFACT_PATTERNS:
        text = pattern.sub("", text)
    return text


def clean_description(description: str | None, title: str = "") -> str:
    """Turn a feed description into display text.

    Falls back to ``title`` when fewer than ten characters survive.
    """
    if not description:
        return title
    text = html.unescape(_TAG_RE.sub(" ", description))
    text = text.split("|")[0]
    text = _scrub(text)
    for separator in JUNK_SEPARATORS:
        text = text.split(separator)[0]
    text = collapse_ws(text)
    if len(text) < MIN_TEXT_CHARS:
        return title
    return text


def strip_html(value: str | None) -> str:
    """Plain text from an HTML fragment, or "" if too little is left."""
    if not value:
        return ""
    soup = BeautifulSoup(value, "html.parser")
    for node in soup.select("script, style"):
        node.decompose()
    text = soup.get_text(" ")
    text = text.split("|")[0]
    text = _scrub(text)
    text = collapse_ws(text)
    if len(text) < MIN_TEXT_CHARS:
        return ""
    return text


def html_to_text(value: str | None) -> str:
    """Visible text of an HTML fragment with whitespace collapsed, nothing else removed."""
    if not value:
        return ""
    soup = BeautifulSoup(value, "html.parser")
    for node in soup.select("script, style"):
        node.decompose()
    return collapse_ws(soup.get_text(" "))
