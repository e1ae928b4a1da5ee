"""
Repository for per-user article state (saved / read).
"""

from datetime import datetime

from .connection import DatabaseConnection
from .converters import row_to_article, to_db_timestamp, utcnow
from .models import DBArticle


class UserArticleStateRepository:
    """Repository for per-user saved and read markers."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    # ─────────────────────────────────────────────────────────────
    # Saved articles
    # ─────────────────────────────────────────────────────────────

    def save(self, user_id: str, article_id: int) -> bool:
        """Save an article for a user. Returns False if already saved."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                """
                INSERT INTO saved_articles (user_id, article_id, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id, article_id) DO NOTHING
                """,
                (user_id, article_id, to_db_timestamp(utcnow()))
            )
            return cursor.rowcount > 0

    def unsave(self, user_id: str, article_id: int) -> bool:
        """Remove a saved marker. Returns False if it did not exist."""
        with self._db.conn() as conn:
            cursor = conn.execute(
                "DELETE FROM saved_articles WHERE user_id = ? AND article_id = ?",
                (user_id, article_id)
            )
            return cursor.rowcount > 0

    def list_saved_ids(self, user_id: str | None = None) -> set[int]:
        """
        IDs of saved articles.

        Without a user_id the result covers every user, which is what
        retention needs: a save by anyone protects the article for all.
        """
        with self._db.conn() as conn:
            if user_id is None:
                rows = conn.execute(
                    "SELECT DISTINCT article_id FROM saved_articles"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT article_id FROM saved_articles WHERE user_id = ?",
                    (user_id,)
                ).fetchall()
            return {row["article_id"] for row in rows}

    def list_saved(self, user_id: str) -> list[DBArticle]:
        """A user's saved articles, most recently saved first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """
                SELECT a.*, f.title AS feed_title, f.icon_url AS feed_icon_url,
                       1 AS is_saved,
                       EXISTS(SELECT 1 FROM read_articles r
                              WHERE r.article_id = a.id AND r.user_id = s.user_id) AS is_read
                FROM saved_articles s
                JOIN articles a ON a.id = s.article_id
                JOIN feeds f ON f.id = a.feed_id
                WHERE s.user_id = ?
                ORDER BY s.id DESC
                """,
                (user_id,)
            ).fetchall()
            return [row_to_article(row) for row in rows]

    # ─────────────────────────────────────────────────────────────
    # Read markers
    # ─────────────────────────────────────────────────────────────

    def mark_read(self, user_id: str, article_id: int):
        """Mark an article as read for a user (idempotent)."""
        with self._db.conn() as conn:
            conn.execute(
                """
                INSERT INTO read_articles (user_id, article_id, read_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id, article_id) DO NOTHING
                """,
                (user_id, article_id, to_db_timestamp(utcnow()))
            )

    def mark_unread(self, user_id: str, article_id: int):
        """Remove a user's read marker."""
        with self._db.conn() as conn:
            conn.execute(
                "DELETE FROM read_articles WHERE user_id = ? AND article_id = ?",
                (user_id, article_id)
            )

    def list_read_ids(self, user_id: str) -> set[int]:
        """IDs of articles a user has read."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT article_id FROM read_articles WHERE user_id = ?",
                (user_id,)
            ).fetchall()
            return {row["article_id"] for row in rows}

    def mark_older_as_read(self, user_id: str, cutoff: datetime) -> int:
        """
        Mark every article from the user's feeds published before the
        cutoff as read.

        Returns count of newly marked articles.
        """
        with self._db.conn() as conn:
            # Use INSERT...SELECT to mark everything in one statement
            cursor = conn.execute(
                """
                INSERT INTO read_articles (user_id, article_id, read_at)
                SELECT ?, a.id, ?
                FROM articles a
                JOIN subscriptions sub ON sub.feed_id = a.feed_id AND sub.user_id = ?
                WHERE a.published_at < ?
                ON CONFLICT(user_id, article_id) DO NOTHING
                """,
                (user_id, to_db_timestamp(utcnow()), user_id, to_db_timestamp(cutoff))
            )
            return cursor.rowcount
