"""Build webhook messages from feed entries within platform limits."""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from .models import DEFAULT_SITE_URL, Embed, FeedEntry, OutboundMessage
from .templating import render

logger = logging.getLogger(__name__)

TITLE_LIMIT = 256
AUTHOR_LIMIT = 256
MIN_DESCRIPTION_LIMIT = 2048
DEFAULT_DESCRIPTION_LIMIT = 4096
DEFAULT_EMBED_COLOR = 0xFF4500
ELLIPSIS = "..."

UK_TIMEZONE = ZoneInfo("Europe/London")


def truncate(value: str, limit: int) -> str:
    """Limit ``value`` to ``limit`` characters, marking cuts with an ellipsis."""
    if len(value) <= limit:
        return value
    logger.debug("Truncating text of length %d to %d characters", len(value), limit)
    return value[: limit - len(ELLIPSIS)] + ELLIPSIS


def uk_time(moment: datetime) -> str:
    """Format ``moment`` as a 24-hour UK wall clock time."""
    return moment.astimezone(UK_TIMEZONE).strftime("%H:%M:%S")


def build_embed(
    entry: FeedEntry,
    site_url: str = DEFAULT_SITE_URL,
    description_limit: int = DEFAULT_DESCRIPTION_LIMIT,
    color: int = DEFAULT_EMBED_COLOR,
) -> OutboundMessage:
    """Turn one entry into a single-embed message."""
    embed = Embed(
        title=truncate(entry.title, TITLE_LIMIT),
        url=entry.link or site_url,
        description=truncate(entry.content, description_limit),
        color=color,
        timestamp=entry.fetched_at.isoformat(),
        author_name=truncate(f"Posted by {entry.author}", AUTHOR_LIMIT),
        image_url=entry.thumbnail_url or None,
    )
    return OutboundMessage(
        embeds=(embed,),
        label=f"entry {entry.id} ({truncate(entry.title, 80)!r})",
    )


def build_announcement(
    count: int, fetched_at: datetime, feed_name: str = "Reddit"
) -> OutboundMessage:
    """Text-only heads-up sent ahead of a batch of embeds."""
    content = render(
        "announcement.txt.j2",
        count=count,
        feed_name=feed_name,
        fetched_time=uk_time(fetched_at),
    )
    return OutboundMessage(content=content, label="announcement")


def build_no_new_posts(fetched_at: datetime, feed_name: str = "Reddit") -> OutboundMessage:
    """Courtesy message for a cycle without new entries."""
    content = render(
        "no_new_posts.txt.j2",
        feed_name=feed_name,
        fetched_time=uk_time(fetched_at),
    )
    return OutboundMessage(content=content, label="no-new-posts")
