"""
Pytest fixtures for pipeline tests.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from currents.config import state
from currents.database import Database
from currents.database.models import ArticleRecord
from currents.feeds import FeedParser
from currents.server import app
from currents.sync import FeedSynchronizer

USER_ID = "user-1"
USER_HEADERS = {"X-User-Id": USER_ID}

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/"
     xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example News</title>
    <link>https://example.com/</link>
    <description>Example feed</description>
    <item>
      <title>First &amp; Foremost</title>
      <link>https://example.com/posts/1</link>
      <dc:creator>Jane Writer</dc:creator>
      <pubDate>Tue, 10 Jun 2025 04:00:00 GMT</pubDate>
      <description>Short summary</description>
      <content:encoded><![CDATA[<p>Full body of the first post.</p>]]></content:encoded>
      <enclosure url="https://example.com/img/1.jpg" type="image/jpeg" length="1234"/>
    </item>
    <item>
      <title>Second</title>
      <link>https://example.com/posts/2</link>
      <pubDate>Wed, 11 Jun 2025 04:00:00 GMT</pubDate>
      <description>Second summary</description>
      <media:thumbnail url="https://example.com/img/2-thumb.jpg"/>
    </item>
  </channel>
</rss>
"""


def make_record(feed_id: int, url: str, **overrides) -> ArticleRecord:
    """Article record with sensible defaults."""
    fields = dict(
        feed_id=feed_id,
        title="Title",
        url=url,
        image_url=None,
        content="<p>Feed content</p>",
        author=None,
        published_at=datetime.now(timezone.utc),
    )
    fields.update(overrides)
    return ArticleRecord(**fields)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db


@pytest.fixture
def feed(test_db):
    """A feed the default user subscribes to."""
    feed = test_db.upsert_feed("https://example.com/feed.xml", title="Example News")
    test_db.get_profile(USER_ID)
    test_db.add_subscription(USER_ID, feed.id)
    return feed


@pytest.fixture
def client(temp_db_path):
    """Create a test client with an isolated database."""
    # Store original state
    original_db = state.db
    original_feed_parser = state.feed_parser
    original_extractor = state.extractor
    original_synchronizer = state.synchronizer
    original_scheduler = state.scheduler

    # Set up test state with fresh instances; no background enrichment
    test_db = Database(temp_db_path)
    state.db = test_db
    state.feed_parser = FeedParser(validate_urls=False)
    state.extractor = None
    state.synchronizer = FeedSynchronizer(test_db, state.feed_parser)
    state.scheduler = None
    state.sync_progress.clear()

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    # Restore original state
    state.db = original_db
    state.feed_parser = original_feed_parser
    state.extractor = original_extractor
    state.synchronizer = original_synchronizer
    state.scheduler = original_scheduler
    state.sync_progress.clear()


@pytest.fixture
def client_with_data(client):
    """Test client with a subscribed feed and a few articles."""
    db = state.db
    feed = db.upsert_feed("https://example.com/feed.xml", title="Example News")
    db.get_profile(USER_ID)
    db.add_subscription(USER_ID, feed.id)

    now = datetime.now(timezone.utc)
    refs = db.upsert_articles([
        make_record(feed.id, "https://example.com/posts/new", title="New",
                    published_at=now - timedelta(hours=1)),
        make_record(feed.id, "https://example.com/posts/old", title="Old",
                    published_at=now - timedelta(days=90)),
    ])

    yield client, {
        "feed_id": feed.id,
        "new_id": refs[0].id,
        "old_id": refs[1].id,
    }
