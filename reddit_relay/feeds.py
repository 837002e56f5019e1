"""Feed fetching and parsing helpers."""

from __future__ import annotations

import html
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
from feedparser.exceptions import CharacterEncodingOverride, NonXMLContentType
import requests
from bs4 import BeautifulSoup

from .models import FeedEntry, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "reddit-relay/0.1 (+https://www.reddit.com/dev/api)"
UNKNOWN_AUTHOR = "Unknown"
NO_CONTENT = "No content provided"
BENIGN_PARSE_ERRORS = (CharacterEncodingOverride, NonXMLContentType)


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser timestamps to timezone-aware datetimes."""
    if value is None:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def fetch_feed(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> FetchResult:
    """Fetch ``url`` and parse it into entries. Never raises on remote errors."""
    logger.info("Fetching feed %s", url)
    try:
        response = requests.get(
            url, timeout=timeout, headers={"User-Agent": user_agent}
        )
    except requests.RequestException as exc:
        logger.warning("Failed to fetch feed %s: %s", url, exc)
        return FetchResult.failure(f"request error: {exc.__class__.__name__}")

    status = response.status_code
    if not 200 <= status < 300:
        logger.warning("Feed %s answered with HTTP %s", url, status)
        return FetchResult.failure(f"HTTP {status}")

    return parse_feed(response.content, source=url)


def parse_feed(
    content: bytes | str,
    source: str = "<memory>",
    fetched_at: Optional[datetime] = None,
) -> FetchResult:
    """Parse syndication markup into a normalised entry list."""
    fetched_at = fetched_at or datetime.now(timezone.utc)
    parsed = feedparser.parse(content)
    raw_entries = list(parsed.get("entries") or [])

    reason = parsed.get("bozo_exception")
    if parsed.get("bozo") and (not raw_entries or not _is_benign(reason)):
        logger.warning("Feed %s is malformed: %s", source, reason)
        return FetchResult.failure(f"malformed feed: {reason}")

    if not raw_entries and not parsed.get("version") and not parsed.get("feed"):
        logger.warning("Document at %s is not an RSS or Atom feed", source)
        return FetchResult.failure("not an RSS or Atom feed")

    entries: List[FeedEntry] = []
    for raw in raw_entries:
        entry = _build_entry(raw, fetched_at)
        if entry is None:
            logger.debug("Skipping entry without identifier in feed %s", source)
            continue
        entries.append(entry)

    site_url = (parsed.get("feed") or {}).get("link")
    logger.info("Collected %d entries from feed %s", len(entries), source)
    return FetchResult.success(entries, site_url=site_url)


def _is_benign(exc: Optional[BaseException]) -> bool:
    """Encoding and content-type complaints leave the parsed document intact."""
    return isinstance(exc, BENIGN_PARSE_ERRORS)


def _build_entry(raw: Any, fetched_at: datetime) -> Optional[FeedEntry]:
    entry_id = raw.get("id") or raw.get("guid") or raw.get("link")
    if not entry_id:
        return None

    title = _text_value(raw.get("title"))
    title = html.unescape(title).strip() if title else "Untitled"

    author = _text_value(raw.get("author"))
    if not author:
        author = _text_value((raw.get("author_detail") or {}).get("name"))

    body = None
    content = raw.get("content")
    if content:
        try:
            body = content[0].get("value")
        except (TypeError, KeyError, IndexError, AttributeError):
            body = None
    if not body:
        body = _text_value(raw.get("summary"))
    text = strip_html(body) if body else ""

    published = None
    for attr in ("published_parsed", "updated_parsed"):
        published = to_datetime(raw.get(attr))
        if published:
            break

    return FeedEntry(
        id=str(entry_id),
        title=title,
        link=raw.get("link") or None,
        author=author.strip() if author and author.strip() else UNKNOWN_AUTHOR,
        content=text or NO_CONTENT,
        thumbnail_url=_thumbnail(raw),
        published=published,
        fetched_at=fetched_at,
    )


def _text_value(value: Any) -> Optional[str]:
    """Collapse the string-or-wrapper shapes parsers emit into a string."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        inner = value.get("value") or value.get("_")
        return inner if isinstance(inner, str) else None
    return str(value)


def _thumbnail(raw: Any) -> Optional[str]:
    for key in ("media_thumbnail", "media_content"):
        items = raw.get(key)
        if not items:
            continue
        if isinstance(items, dict):
            items = [items]
        for item in items:
            url = item.get("url") if isinstance(item, dict) else None
            if not url:
                continue
            medium = item.get("medium") or item.get("type") or "image"
            if key == "media_thumbnail" or medium.startswith("image"):
                return url
    return None


def strip_html(raw_value: str) -> str:
    """Return text content extracted from HTML fragments."""
    soup = BeautifulSoup(raw_value, "html.parser")
    text = soup.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()
