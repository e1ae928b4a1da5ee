"""
Tests for the sync orchestrator.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from currents.database import Database
from currents.exceptions import FeedFetchError, FeedParseError
from currents.feeds import FeedItem, ParsedFeed
from currents.sync import FeedSynchronizer, is_feed_due

from .conftest import USER_ID

NOW = datetime(2025, 6, 12, 12, 0, tzinfo=timezone.utc)


def parsed_feed(url: str, count: int, title: str = "Feed") -> ParsedFeed:
    base = url.rsplit("/", 1)[0]
    items = [
        FeedItem(
            url=f"{base}/posts/{i}",
            title=f"Post {i}",
            author=None,
            published=NOW - timedelta(hours=i),
            content=f"<p>Post {i}</p>",
        )
        for i in range(count)
    ]
    return ParsedFeed(url=url, title=title, link=base + "/", items=items, fetched_at=NOW)


def fake_parser(results: dict) -> MagicMock:
    """Feed parser whose fetch returns or raises per URL."""
    async def fetch(url):
        outcome = results[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    parser = MagicMock()
    parser.fetch = AsyncMock(side_effect=fetch)
    return parser


def subscribe(db: Database, user_id: str, url: str, fetched_at: datetime | None = None):
    feed = db.upsert_feed(url, fetched_at=fetched_at)
    db.get_profile(user_id)
    db.add_subscription(user_id, feed.id)
    return feed


class TestIsFeedDue:
    """Tests for the due-feed rule."""

    def test_never_fetched_is_due(self):
        assert is_feed_due(None, 24, NOW)

    def test_boundary_is_due(self):
        """Exactly one interval since the last fetch counts as due."""
        assert is_feed_due(NOW - timedelta(hours=24), 24, NOW)

    def test_recent_is_not_due(self):
        assert not is_feed_due(NOW - timedelta(hours=23, minutes=59), 24, NOW)


class TestSyncUser:
    """Tests for FeedSynchronizer.sync_user."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_cls, message", [
        (FeedFetchError, "Timed out after 30s"),
        (FeedParseError, "Failed to parse feed: not well-formed"),
    ])
    async def test_partial_failure(self, test_db: Database, error_cls, message):
        """A feed that fails to fetch or parse is recorded and skipped; the others still count."""
        urls = [f"https://site{i}.example.com/feed.xml" for i in range(1, 4)]
        feeds = [subscribe(test_db, USER_ID, url) for url in urls]
        parser = fake_parser({
            urls[0]: parsed_feed(urls[0], 2),
            urls[1]: error_cls(urls[1], message),
            urls[2]: parsed_feed(urls[2], 3),
        })
        synchronizer = FeedSynchronizer(test_db, parser)

        result = await synchronizer.sync_user(USER_ID)

        assert result.inserted_count == 5
        assert result.feeds_total == 3
        assert result.feeds_failed == 1
        for feed in feeds:
            assert test_db.get_feed(feed.id).last_fetched_at is not None

        failed = test_db.get_feed(feeds[1].id)
        assert message in failed.fetch_error
        assert failed.consecutive_failures == 1
        assert test_db.get_feed(feeds[0].id).fetch_error is None

    @pytest.mark.asyncio
    async def test_progress_reports(self, test_db: Database):
        urls = [f"https://site{i}.example.com/feed.xml" for i in range(1, 4)]
        for url in urls:
            subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 1) for url in urls})
        calls = []

        await FeedSynchronizer(test_db, parser).sync_user(USER_ID, lambda c, t: calls.append((c, t)))

        assert calls == [(0, 3), (1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_progress_callback_errors_are_contained(self, test_db: Database):
        url = "https://site.example.com/feed.xml"
        subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 1)})

        def broken(current, total):
            raise RuntimeError("ui went away")

        result = await FeedSynchronizer(test_db, parser).sync_user(USER_ID, broken)
        assert result.inserted_count == 1

    @pytest.mark.asyncio
    async def test_resync_inserts_nothing(self, test_db: Database):
        url = "https://site.example.com/feed.xml"
        subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 4)})
        synchronizer = FeedSynchronizer(test_db, parser)

        first = await synchronizer.sync_user(USER_ID)
        second = await synchronizer.sync_user(USER_ID)

        assert first.inserted_count == 4
        assert second.inserted_count == 0
        assert len(test_db.list_articles_for_user(USER_ID)) == 4

    @pytest.mark.asyncio
    async def test_no_subscriptions(self, test_db: Database):
        calls = []
        result = await FeedSynchronizer(test_db, fake_parser({})).sync_user(
            USER_ID, lambda c, t: calls.append((c, t))
        )
        assert result.inserted_count == 0
        assert calls == [(0, 0)]

    @pytest.mark.asyncio
    async def test_fills_feed_metadata(self, test_db: Database):
        url = "https://site.example.com/feed.xml"
        feed = subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 1, title="Site News")})

        await FeedSynchronizer(test_db, parser).sync_user(USER_ID)

        stored = test_db.get_feed(feed.id)
        assert stored.title == "Site News"
        assert stored.icon_url == "https://icon.horse/icon/site.example.com"


class TestBackgroundWork:
    """Tests for extraction and retention launched by a sync."""

    @pytest.mark.asyncio
    async def test_extraction_launched_for_new_rows_only(self, test_db: Database):
        url = "https://site.example.com/feed.xml"
        subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 2)})
        extractor = MagicMock()
        extractor.extract_content = AsyncMock()
        sweeper = MagicMock()
        sweeper.sweep.return_value = 0
        synchronizer = FeedSynchronizer(test_db, parser, extractor=extractor, sweeper=sweeper)

        await synchronizer.sync_user(USER_ID)
        await synchronizer.sync_user(USER_ID)
        await synchronizer.drain()

        extractor.extract_content.assert_awaited_once()
        refs = extractor.extract_content.await_args.args[0]
        assert len(refs) == 2
        assert sweeper.sweep.call_count == 2
        sweeper.sweep.assert_called_with(60)
        assert synchronizer.pending_tasks == 0

    @pytest.mark.asyncio
    async def test_background_failure_does_not_fail_sync(self, test_db: Database):
        url = "https://site.example.com/feed.xml"
        subscribe(test_db, USER_ID, url)
        parser = fake_parser({url: parsed_feed(url, 1)})
        extractor = MagicMock()
        extractor.extract_content = AsyncMock(side_effect=RuntimeError("extraction crashed"))
        synchronizer = FeedSynchronizer(test_db, parser, extractor=extractor)

        result = await synchronizer.sync_user(USER_ID)
        await synchronizer.drain()

        assert result.inserted_count == 1


class TestScheduledSync:
    """Tests for FeedSynchronizer.sync_all_due_users."""

    @pytest.mark.asyncio
    async def test_only_due_feeds_are_fetched(self, test_db: Database):
        due_url = "https://due.example.com/feed.xml"
        fresh_url = "https://fresh.example.com/feed.xml"
        subscribe(test_db, USER_ID, due_url, fetched_at=NOW - timedelta(hours=24))
        subscribe(test_db, USER_ID, fresh_url, fetched_at=NOW - timedelta(hours=1))
        parser = fake_parser({due_url: parsed_feed(due_url, 2)})

        result = await FeedSynchronizer(test_db, parser).sync_all_due_users(now=NOW)

        parser.fetch.assert_awaited_once_with(due_url)
        assert result.inserted_count == 2

    @pytest.mark.asyncio
    async def test_shared_feed_fetched_once(self, test_db: Database):
        url = "https://shared.example.com/feed.xml"
        subscribe(test_db, "alice", url)
        subscribe(test_db, "bob", url)
        parser = fake_parser({url: parsed_feed(url, 3)})

        result = await FeedSynchronizer(test_db, parser).sync_all_due_users(now=NOW)

        assert parser.fetch.await_count == 1
        assert result.feeds_total == 1
        assert len(test_db.list_articles_for_user("alice")) == 3
        assert len(test_db.list_articles_for_user("bob")) == 3

    @pytest.mark.asyncio
    async def test_per_user_interval(self, test_db: Database):
        """A feed is due if any subscriber's interval has elapsed."""
        url = "https://shared.example.com/feed.xml"
        subscribe(test_db, "hourly", url, fetched_at=NOW - timedelta(hours=2))
        subscribe(test_db, "daily", url)
        test_db.set_sync_interval("hourly", 1)

        parser = fake_parser({url: parsed_feed(url, 1)})
        synchronizer = FeedSynchronizer(test_db, parser)

        assert [t.url for t in synchronizer.due_feeds(NOW)] == [url]
        test_db.set_sync_interval("hourly", 3)
        assert synchronizer.due_feeds(NOW) == []
