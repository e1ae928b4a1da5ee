"""
Feed repository - shared feed rows, one per feed URL.
"""

from datetime import datetime

from .connection import DatabaseConnection
from .converters import row_to_feed, to_db_timestamp, utcnow
from .models import DBFeed


class FeedRepository:
    """Repository for feed operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def upsert(
        self,
        url: str,
        title: str | None = None,
        icon_url: str | None = None,
        fetched_at: datetime | None = None,
    ) -> DBFeed:
        """
        Insert a feed or refresh an existing one with the same URL.

        Non-null arguments overwrite stored values; null arguments keep them.
        """
        with self._db.conn() as conn:
            conn.execute(
                """INSERT INTO feeds (url, title, icon_url, last_fetched_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(url) DO UPDATE SET
                       title = COALESCE(excluded.title, feeds.title),
                       icon_url = COALESCE(excluded.icon_url, feeds.icon_url),
                       last_fetched_at = COALESCE(excluded.last_fetched_at, feeds.last_fetched_at)""",
                (url, title, icon_url, to_db_timestamp(fetched_at) if fetched_at else None)
            )
            row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
            return row_to_feed(row)

    def get(self, feed_id: int) -> DBFeed | None:
        """Get single feed by ID."""
        with self._db.conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,)).fetchone()
            return row_to_feed(row) if row else None

    def get_by_url(self, url: str) -> DBFeed | None:
        """Get feed by URL."""
        with self._db.conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
            return row_to_feed(row) if row else None

    def fill_metadata(self, feed_id: int, title: str | None, icon_url: str | None):
        """Set title/icon only where they are still missing."""
        with self._db.conn() as conn:
            conn.execute(
                """UPDATE feeds SET
                   title = COALESCE(NULLIF(title, ''), ?),
                   icon_url = COALESCE(icon_url, ?)
                   WHERE id = ?""",
                (title, icon_url, feed_id)
            )

    def update_last_fetched(
        self,
        feed_id: int,
        fetched_at: datetime | None = None,
        error: str | None = None,
    ):
        """
        Record a sync attempt.

        The timestamp advances on failure too; the failure counter resets on
        success.
        """
        fetched_at = fetched_at or utcnow()
        with self._db.conn() as conn:
            if error is None:
                conn.execute(
                    """UPDATE feeds SET last_fetched_at = ?, fetch_error = NULL,
                       consecutive_failures = 0 WHERE id = ?""",
                    (to_db_timestamp(fetched_at), feed_id)
                )
            else:
                conn.execute(
                    """UPDATE feeds SET last_fetched_at = ?, fetch_error = ?,
                       consecutive_failures = consecutive_failures + 1 WHERE id = ?""",
                    (to_db_timestamp(fetched_at), error[:1000], feed_id)
                )
