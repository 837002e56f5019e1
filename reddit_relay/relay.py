"""Relay orchestration: select, de-duplicate, format and publish entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .feeds import DEFAULT_USER_AGENT, fetch_feed
from .formatting import (
    DEFAULT_DESCRIPTION_LIMIT,
    DEFAULT_EMBED_COLOR,
    build_announcement,
    build_embed,
    build_no_new_posts,
)
from .models import (
    DEFAULT_CURSOR_CAPACITY,
    DedupCursor,
    FeedEntry,
    FetchResult,
    OutboundMessage,
    RelayResult,
    WebhookTarget,
)
from .webhook import post_message

logger = logging.getLogger(__name__)

Sender = Callable[..., bool]
Fetcher = Callable[..., FetchResult]


@dataclass
class RelaySettings:
    """Runtime options shared by every relay pair."""

    batch_size: int = 5
    description_limit: int = DEFAULT_DESCRIPTION_LIMIT
    color: int = DEFAULT_EMBED_COLOR
    announce_empty: bool = False
    timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    cursor_capacity: int = DEFAULT_CURSOR_CAPACITY
    interval: Optional[float] = None


def select_entries(entries: List[FeedEntry], limit: int) -> List[FeedEntry]:
    """Return the first ``limit`` entries in feed order."""
    return list(entries[:limit])


def relay(
    entries: List[FeedEntry],
    cursor: DedupCursor,
    target: WebhookTarget,
    settings: Optional[RelaySettings] = None,
    send: Sender = post_message,
    site_url: Optional[str] = None,
) -> RelayResult:
    """Publish the unseen entries among the newest ``batch_size`` ones.

    Messages go out one at a time: the announcement first, then one embed per
    entry in feed order. A failed send is logged and skipped. The cursor
    advances once the batch has been attempted, whatever the per-message
    outcome, so a failed entry is not retried on the next cycle.
    """
    settings = settings or RelaySettings()
    selected = select_entries(entries, settings.batch_size)
    new_entries = [entry for entry in selected if entry.id not in cursor]
    fetched_at = selected[0].fetched_at if selected else datetime.now(timezone.utc)

    if not new_entries:
        logger.info("[%s] No new entries among %d selected", target.name, len(selected))
        result = RelayResult(cursor=cursor)
        if settings.announce_empty:
            _deliver(target, build_no_new_posts(fetched_at, target.name), settings, send, result)
        return result

    logger.info(
        "[%s] Relaying %d new of %d selected entries",
        target.name,
        len(new_entries),
        len(selected),
    )
    link_fallback = site_url or target.site_url
    messages: List[OutboundMessage] = [
        build_announcement(len(new_entries), fetched_at, target.name)
    ]
    messages.extend(
        build_embed(
            entry,
            site_url=link_fallback,
            description_limit=settings.description_limit,
            color=settings.color,
        )
        for entry in new_entries
    )

    result = RelayResult(cursor=cursor, new_entries=new_entries)
    for message in messages:
        _deliver(target, message, settings, send, result)

    result.cursor = cursor.advance(entry.id for entry in selected)
    logger.info(
        "[%s] Batch complete: %d sent, %d failed", target.name, result.sent, result.failed
    )
    return result


def _deliver(
    target: WebhookTarget,
    message: OutboundMessage,
    settings: RelaySettings,
    send: Sender,
    result: RelayResult,
) -> None:
    if send(target.webhook_url, message, timeout=settings.timeout):
        result.sent += 1
    else:
        result.failed += 1
        logger.warning("[%s] Skipped %s after failed delivery", target.name, message.label)


def run_cycle(
    target: WebhookTarget,
    cursor: DedupCursor,
    settings: Optional[RelaySettings] = None,
    fetch: Fetcher = fetch_feed,
    send: Sender = post_message,
) -> DedupCursor:
    """Fetch the pair's feed and relay it. Returns the cursor to keep."""
    settings = settings or RelaySettings()
    try:
        fetched = fetch(
            target.feed_url, timeout=settings.timeout, user_agent=settings.user_agent
        )
        if not fetched.ok:
            logger.warning(
                "[%s] Fetch of %s failed (%s); skipping cycle",
                target.name,
                target.feed_url,
                fetched.error,
            )
            return cursor

        result = relay(
            fetched.entries,
            cursor,
            target,
            settings=settings,
            send=send,
            site_url=fetched.site_url,
        )
        return result.cursor
    except Exception:
        logger.exception("[%s] Relay cycle failed", target.name)
        return cursor
