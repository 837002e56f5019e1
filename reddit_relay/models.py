"""Shared data models for reddit_relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

DEFAULT_SITE_URL = "https://www.reddit.com"
DEFAULT_CURSOR_CAPACITY = 200


@dataclass
class WebhookTarget:
    """A feed paired with the webhook its posts are relayed to."""

    name: str
    feed_url: str
    webhook_url: str
    site_url: str = DEFAULT_SITE_URL


@dataclass
class FeedEntry:
    """Single syndication item, normalised at the parser boundary."""

    id: str
    title: str
    fetched_at: datetime
    link: Optional[str] = None
    author: str = "Unknown"
    content: str = "No content provided"
    thumbnail_url: Optional[str] = None
    published: Optional[datetime] = None


@dataclass
class FetchResult:
    """Outcome of fetching one feed. Failures never carry entries."""

    ok: bool
    entries: List[FeedEntry] = field(default_factory=list)
    site_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(
        cls, entries: List[FeedEntry], site_url: Optional[str] = None
    ) -> "FetchResult":
        return cls(ok=True, entries=list(entries), site_url=site_url)

    @classmethod
    def failure(cls, reason: str) -> "FetchResult":
        return cls(ok=False, error=reason)


@dataclass(frozen=True)
class DedupCursor:
    """Identifiers already relayed for one feed, newest first.

    The cursor is cumulative but bounded: advancing it prepends the latest
    batch and drops the oldest ids beyond ``capacity``.
    """

    ids: Tuple[str, ...] = ()
    capacity: int = DEFAULT_CURSOR_CAPACITY

    @classmethod
    def empty(cls, capacity: int = DEFAULT_CURSOR_CAPACITY) -> "DedupCursor":
        return cls(ids=(), capacity=capacity)

    def contains(self, entry_id: str) -> bool:
        return entry_id in self.ids

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def advance(self, ids: Iterable[str]) -> "DedupCursor":
        """Return a new cursor with ``ids`` recorded ahead of older ones.

        The latest batch is always kept whole, even when it is larger than
        ``capacity``; only older ids are dropped.
        """
        batch = list(dict.fromkeys(ids))
        merged: List[str] = []
        seen = set()
        for entry_id in batch + list(self.ids):
            if entry_id in seen:
                continue
            seen.add(entry_id)
            merged.append(entry_id)
        keep = max(self.capacity, len(batch))
        return DedupCursor(ids=tuple(merged[:keep]), capacity=self.capacity)


@dataclass(frozen=True)
class Embed:
    """Structured message block rendered by the chat platform."""

    title: str
    url: str
    description: str
    color: int
    timestamp: str
    author_name: Optional[str] = None
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "color": self.color,
            "timestamp": self.timestamp,
        }
        if self.author_name:
            data["author"] = {"name": self.author_name}
        if self.image_url:
            data["image"] = {"url": self.image_url}
        return data


@dataclass(frozen=True)
class OutboundMessage:
    """One webhook request body."""

    content: Optional[str] = None
    embeds: Tuple[Embed, ...] = ()
    label: str = "announcement"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.content:
            payload["content"] = self.content
        if self.embeds:
            payload["embeds"] = [embed.to_dict() for embed in self.embeds]
        return payload


@dataclass
class RelayResult:
    """Returned data after relaying one batch."""

    cursor: DedupCursor
    new_entries: List[FeedEntry] = field(default_factory=list)
    sent: int = 0
    failed: int = 0
