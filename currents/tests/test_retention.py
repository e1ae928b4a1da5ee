"""
Tests for the retention sweeper.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from currents.database import Database
from currents.retention import RetentionSweeper

from .conftest import USER_ID, make_record

NOW = datetime(2025, 6, 12, tzinfo=timezone.utc)


class TestRetentionSweeper:
    """Tests for RetentionSweeper.sweep."""

    def test_deletes_old_unsaved_keeps_saved(self, test_db: Database, feed):
        refs = test_db.upsert_articles([
            make_record(feed.id, "https://example.com/old-saved", published_at=NOW - timedelta(days=90)),
            make_record(feed.id, "https://example.com/old", published_at=NOW - timedelta(days=90)),
            make_record(feed.id, "https://example.com/recent", published_at=NOW - timedelta(days=5)),
        ])
        test_db.save_article(USER_ID, refs[0].id)

        deleted = RetentionSweeper(test_db).sweep(60, now=NOW)

        assert deleted == 1
        assert test_db.get_article(refs[0].id) is not None
        assert test_db.get_article(refs[1].id) is None
        assert test_db.get_article(refs[2].id) is not None

    def test_save_by_other_user_protects(self, test_db: Database, feed):
        refs = test_db.upsert_articles([
            make_record(feed.id, "https://example.com/old", published_at=NOW - timedelta(days=90)),
        ])
        test_db.save_article("another-user", refs[0].id)

        assert RetentionSweeper(test_db).sweep(60, now=NOW) == 0
        assert test_db.get_article(refs[0].id) is not None

    def test_uses_default_cutoff(self, test_db: Database, feed):
        test_db.upsert_articles([
            make_record(feed.id, "https://example.com/a", published_at=NOW - timedelta(days=20)),
        ])
        assert RetentionSweeper(test_db, default_days=30).sweep(now=NOW) == 0
        assert RetentionSweeper(test_db, default_days=10).sweep(now=NOW) == 1

    def test_nothing_old_skips_delete(self):
        db = MagicMock()
        db.list_articles_older_than.return_value = []

        assert RetentionSweeper(db).sweep(60, now=NOW) == 0
        db.delete_articles.assert_not_called()

    def test_all_old_saved_skips_delete(self):
        db = MagicMock()
        db.list_articles_older_than.return_value = [1, 2]
        db.list_saved_article_ids.return_value = {1, 2, 3}

        assert RetentionSweeper(db).sweep(60, now=NOW) == 0
        db.delete_articles.assert_not_called()
