"""
Tests for the HTTP routes.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from currents.config import state
from currents.exceptions import FeedParseError
from currents.feeds import FeedItem, ParsedFeed

from .conftest import USER_HEADERS


def parsed(url: str, count: int = 2) -> ParsedFeed:
    now = datetime.now(timezone.utc)
    return ParsedFeed(
        url=url,
        title=None,
        link=None,
        items=[
            FeedItem(url=f"https://example.org/p/{i}", title=f"P{i}", author=None,
                     published=now, content="<p>x</p>")
            for i in range(count)
        ],
        fetched_at=now,
    )


class TestHealth:
    """Tests for GET /health."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestCurrentUser:
    """Tests for the X-User-Id requirement."""

    def test_missing_user_header(self, client):
        response = client.get("/feeds")
        assert response.status_code == 401

    def test_with_user_header(self, client):
        response = client.get("/feeds", headers=USER_HEADERS)
        assert response.status_code == 200
        assert response.json() == []


class TestFeeds:
    """Tests for /feeds."""

    def test_subscribe_ingests_items(self, client):
        url = "https://example.org/feed.xml"
        with patch.object(state.feed_parser, "fetch", AsyncMock(return_value=parsed(url))):
            response = client.post("/feeds", json={"url": url}, headers=USER_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["inserted_count"] == 2
        # Title falls back to the domain
        assert data["feed"]["title"] == "example.org"
        assert data["feed"]["icon_url"] == "https://icon.horse/icon/example.org"

        feeds = client.get("/feeds", headers=USER_HEADERS).json()
        assert [f["url"] for f in feeds] == [url]

    def test_url_spellings_share_one_feed(self, client):
        """Scheme/host case and surrounding spaces do not create new feed rows."""
        canonical = "https://example.com/feed.xml"
        spellings = {
            "u1": canonical,
            "u2": "HTTPS://Example.com/feed.xml",
            "u3": "  https://example.com/feed.xml#top ",
        }
        fetch = AsyncMock(return_value=parsed(canonical))
        feed_ids = set()
        with patch.object(state.feed_parser, "fetch", fetch):
            for user_id, url in spellings.items():
                response = client.post("/feeds", json={"url": url}, headers={"X-User-Id": user_id})
                assert response.status_code == 200
                feed_ids.add(response.json()["feed"]["id"])
                assert response.json()["feed"]["url"] == canonical

        assert len(feed_ids) == 1
        for call in fetch.await_args_list:
            assert call.args == (canonical,)

    def test_subscribe_rejects_non_http_url(self, client):
        fetch = AsyncMock()
        with patch.object(state.feed_parser, "fetch", fetch):
            response = client.post("/feeds", json={"url": "ftp://example.com/feed"}, headers=USER_HEADERS)
        assert response.status_code == 400
        fetch.assert_not_called()

    def test_subscribe_invalid_feed(self, client):
        url = "https://example.org/not-a-feed"
        error = FeedParseError(url, "Failed to parse feed")
        with patch.object(state.feed_parser, "fetch", AsyncMock(side_effect=error)):
            response = client.post("/feeds", json={"url": url}, headers=USER_HEADERS)
        assert response.status_code == 400

    def test_unsubscribe(self, client_with_data):
        client, data = client_with_data
        response = client.delete(f"/feeds/{data['feed_id']}", headers=USER_HEADERS)
        assert response.status_code == 200
        assert client.get("/feeds", headers=USER_HEADERS).json() == []
        # The shared feed row stays
        assert state.db.get_feed(data["feed_id"]) is not None

    def test_unsubscribe_unknown_feed(self, client):
        response = client.delete("/feeds/999", headers=USER_HEADERS)
        assert response.status_code == 404


class TestArticles:
    """Tests for /articles."""

    def test_stream_newest_first(self, client_with_data):
        client, data = client_with_data
        articles = client.get("/articles", headers=USER_HEADERS).json()
        assert [a["id"] for a in articles] == [data["new_id"], data["old_id"]]
        assert articles[0]["excerpt"] == "Feed content"

    def test_save_and_unsave(self, client_with_data):
        client, data = client_with_data
        assert client.post(f"/articles/{data['new_id']}/save", headers=USER_HEADERS).status_code == 200
        saved = client.get("/articles/saved", headers=USER_HEADERS).json()
        assert [a["id"] for a in saved] == [data["new_id"]]

        client.delete(f"/articles/{data['new_id']}/save", headers=USER_HEADERS)
        assert client.get("/articles/saved", headers=USER_HEADERS).json() == []

    def test_read_and_unread(self, client_with_data):
        client, data = client_with_data
        client.post(f"/articles/{data['new_id']}/read", headers=USER_HEADERS)
        article = client.get("/articles", headers=USER_HEADERS).json()[0]
        assert article["is_read"] is True

        client.delete(f"/articles/{data['new_id']}/read", headers=USER_HEADERS)
        article = client.get("/articles", headers=USER_HEADERS).json()[0]
        assert article["is_read"] is False

    def test_unknown_article(self, client):
        response = client.post("/articles/999/save", headers=USER_HEADERS)
        assert response.status_code == 404

    def test_mark_older_read(self, client_with_data):
        client, data = client_with_data
        response = client.post("/articles/mark-older-read", json={"days": 30}, headers=USER_HEADERS)
        assert response.json() == {"marked_count": 1}

    def test_flush_keeps_saved(self, client_with_data):
        client, data = client_with_data
        client.post(f"/articles/{data['old_id']}/save", headers=USER_HEADERS)

        response = client.post("/articles/flush", json={"days": 60})
        assert response.json() == {"deleted_count": 0}

        client.delete(f"/articles/{data['old_id']}/save", headers=USER_HEADERS)
        response = client.post("/articles/flush", json={"days": 60})
        assert response.json() == {"deleted_count": 1}

    def test_extract_reports_processed_count(self, client_with_data):
        client, data = client_with_data
        extractor = AsyncMock()
        extractor.extract_content.return_value.processed_count = 1
        with patch.object(state, "extractor", extractor):
            response = client.post("/articles/extract", json={
                "articles": [{"id": data["new_id"], "url": "https://example.com/posts/new"}]
            })
        assert response.status_code == 200
        assert response.json() == {"processed_count": 1}
        refs = extractor.extract_content.await_args.args[0]
        assert refs[0].id == data["new_id"]

    def test_extract_without_extractor(self, client):
        response = client.post("/articles/extract", json={"articles": []})
        assert response.status_code == 500


class TestSync:
    """Tests for /sync."""

    def test_sync_returns_inserted_count(self, client_with_data):
        client, _ = client_with_data
        url = "https://example.com/feed.xml"
        with patch.object(state.feed_parser, "fetch", AsyncMock(return_value=parsed(url, 3))):
            response = client.post("/sync", headers=USER_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"inserted_count": 3}

        status = client.get("/sync/status", headers=USER_HEADERS).json()
        assert status == {"in_progress": False, "current": 1, "total": 1}

    def test_status_before_any_sync(self, client):
        status = client.get("/sync/status", headers=USER_HEADERS).json()
        assert status == {"in_progress": False, "current": 0, "total": 0}

    def test_scheduled_sync(self, client_with_data):
        client, _ = client_with_data
        url = "https://example.com/feed.xml"
        with patch.object(state.feed_parser, "fetch", AsyncMock(return_value=parsed(url, 1))):
            response = client.post("/sync/scheduled")

        data = response.json()
        assert data["feeds_total"] == 1
        assert data["inserted_count"] == 1


class TestSettings:
    """Tests for /settings/sync-interval."""

    def test_default_interval(self, client):
        response = client.get("/settings/sync-interval", headers=USER_HEADERS)
        assert response.json() == {"sync_interval": 24}

    def test_update_interval(self, client):
        response = client.put("/settings/sync-interval", json={"sync_interval": 6}, headers=USER_HEADERS)
        assert response.status_code == 200
        assert client.get("/settings/sync-interval", headers=USER_HEADERS).json() == {"sync_interval": 6}

    def test_rejects_zero(self, client):
        response = client.put("/settings/sync-interval", json={"sync_interval": 0}, headers=USER_HEADERS)
        assert response.status_code == 422
