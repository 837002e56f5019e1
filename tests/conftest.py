"""Shared test fixtures for reddit_relay tests."""

from datetime import datetime, timezone

import pytest

from reddit_relay.models import FeedEntry, WebhookTarget


SAMPLE_REDDIT_ATOM = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:media="http://search.yahoo.com/mrss/">
  <title>newest submissions : all</title>
  <link rel="alternate" href="https://www.reddit.com/r/all/new/"/>
  <id>/r/all/new/.rss</id>
  <updated>2026-10-19T10:05:00+00:00</updated>
  <entry>
    <author><name>/u/alice</name><uri>https://www.reddit.com/user/alice</uri></author>
    <content type="html">&lt;div class="md"&gt;&lt;p&gt;Fish &amp;amp; &lt;b&gt;chips&lt;/b&gt;&lt;/p&gt;&lt;/div&gt;</content>
    <id>t3_aaa</id>
    <media:thumbnail url="https://b.thumbs.redditmedia.com/aaa.jpg"/>
    <link href="https://www.reddit.com/r/pics/comments/aaa/first/"/>
    <updated>2026-10-19T10:04:00+00:00</updated>
    <title>First post</title>
  </entry>
  <entry>
    <id>t3_bbb</id>
    <link href="https://www.reddit.com/r/news/comments/bbb/second/"/>
    <updated>2026-10-19T10:03:00+00:00</updated>
    <title>Second post</title>
  </entry>
</feed>"""

SAMPLE_SINGLE_ITEM_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Lonely Feed</title>
    <link>https://example.com</link>
    <description>A feed with one item</description>
    <item>
      <title>Only Article</title>
      <link>https://example.com/only</link>
      <guid>only-1</guid>
      <description>Hello &lt;b&gt;world&lt;/b&gt;</description>
      <pubDate>Mon, 19 Oct 2026 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_EMPTY_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Quiet Feed</title>
    <link>https://example.com</link>
    <description>Nothing yet</description>
  </channel>
</rss>"""

SAMPLE_NOT_A_FEED = b"this is not a feed <<< at all"

FETCHED_AT = datetime(2026, 10, 19, 9, 30, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}


def make_entry(entry_id: str, **overrides) -> FeedEntry:
    values = {
        "id": entry_id,
        "title": f"Title {entry_id}",
        "link": f"https://www.reddit.com/comments/{entry_id}/",
        "author": "/u/tester",
        "content": f"Body of {entry_id}",
        "fetched_at": FETCHED_AT,
    }
    values.update(overrides)
    return FeedEntry(**values)


class RecordingSender:
    """Stands in for webhook.post_message and records every call."""

    def __init__(self, fail_labels=()):
        self.calls = []
        self.fail_labels = set(fail_labels)

    def __call__(self, webhook_url, message, timeout=None):
        self.calls.append((webhook_url, message))
        return message.label not in self.fail_labels

    @property
    def messages(self):
        return [message for _, message in self.calls]

    @property
    def embed_titles(self):
        return [
            message.embeds[0].title for message in self.messages if message.embeds
        ]


@pytest.fixture
def target():
    return WebhookTarget(
        name="r/all",
        feed_url="https://www.reddit.com/r/all/new/.rss",
        webhook_url="https://discord.com/api/webhooks/123/secret-token",
    )


@pytest.fixture
def sender():
    return RecordingSender()
