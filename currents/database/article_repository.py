"""
Article repository - upsert-by-URL ingestion, enrichment updates and retention.
"""

import logging
import sqlite3
from datetime import datetime

from .connection import DatabaseConnection
from .converters import row_to_article, to_db_timestamp, utcnow
from .models import ArticleRecord, ArticleRef, DBArticle

logger = logging.getLogger(__name__)

# SQLite's default bound-parameter limit is 999 on older builds
_CHUNK_SIZE = 500

# feed_id and published_at belong to the first writer. Extracted full
# content is not replaced by feed content on later syncs.
_UPSERT_SQL = """
    INSERT INTO articles (feed_id, url, title, author, content, image_url, published_at)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(url) DO UPDATE SET
        title = excluded.title,
        author = COALESCE(excluded.author, articles.author),
        content = CASE
            WHEN articles.extracted_at IS NULL AND excluded.content != ''
            THEN excluded.content
            ELSE articles.content
        END,
        image_url = COALESCE(articles.image_url, excluded.image_url)
"""


def _chunks(ids: list[int]):
    for i in range(0, len(ids), _CHUNK_SIZE):
        yield ids[i:i + _CHUNK_SIZE]


class ArticleRepository:
    """Repository for article operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def upsert_many(self, records: list[ArticleRecord]) -> list[ArticleRef]:
        """
        Insert articles, or refresh existing ones with the same URL.

        Runs in a single write transaction. Returns references to the rows
        that were newly inserted; rows that already existed are updated but
        not returned. A record that violates a constraint is logged and
        skipped without aborting the batch.
        """
        if not records:
            return []

        inserted: list[ArticleRef] = []
        with self._db.conn(immediate=True) as conn:
            for record in records:
                existing = conn.execute(
                    "SELECT id FROM articles WHERE url = ?", (record.url,)
                ).fetchone()
                try:
                    cursor = conn.execute(
                        _UPSERT_SQL,
                        (record.feed_id, record.url, record.title, record.author,
                         record.content, record.image_url,
                         to_db_timestamp(record.published_at))
                    )
                except sqlite3.IntegrityError as e:
                    logger.warning(f"Skipping article {record.url}: {e}")
                    continue

                if existing is None:
                    inserted.append(ArticleRef(
                        id=cursor.lastrowid,
                        url=record.url,
                        image_url=record.image_url,
                    ))
        return inserted

    def get(self, article_id: int) -> DBArticle | None:
        """Get single article by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            return row_to_article(row) if row else None

    def get_by_url(self, url: str) -> DBArticle | None:
        """Get article by URL."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE url = ?", (url,)
            ).fetchone()
            return row_to_article(row) if row else None

    def update_extracted(
        self,
        article_id: int,
        content: str | None = None,
        image_url: str | None = None,
    ) -> bool:
        """
        Write extraction results back.

        Content replaces the stored body; the image only fills a null
        image_url and never overwrites an existing one.
        """
        with self._db.conn() as conn:
            cursor = conn.execute(
                """UPDATE articles SET
                   content = COALESCE(?, content),
                   image_url = COALESCE(image_url, ?),
                   extracted_at = CASE WHEN ? IS NOT NULL THEN ? ELSE extracted_at END
                   WHERE id = ?""",
                (content, image_url, content, to_db_timestamp(utcnow()), article_id)
            )
            return cursor.rowcount > 0

    def list_missing_images(self, limit: int = 20) -> list[ArticleRef]:
        """Most recent articles that still have no image."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT id, url FROM articles
                   WHERE image_url IS NULL
                   ORDER BY published_at DESC
                   LIMIT ?""",
                (limit,)
            ).fetchall()
            return [ArticleRef(id=row["id"], url=row["url"]) for row in rows]

    def list_older_than(self, cutoff: datetime) -> list[int]:
        """IDs of articles published before the cutoff."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT id FROM articles WHERE published_at < ?",
                (to_db_timestamp(cutoff),)
            ).fetchall()
            return [row["id"] for row in rows]

    def delete_unsaved(self, article_ids: list[int]) -> int:
        """
        Delete the given articles unless some user has saved them.

        The saved check is part of the DELETE statement itself, so a save
        that lands after the caller selected the IDs still protects the row.
        """
        if not article_ids:
            return 0

        deleted = 0
        with self._db.conn() as conn:
            for chunk in _chunks(list(article_ids)):
                placeholders = ",".join("?" * len(chunk))
                cursor = conn.execute(
                    f"""DELETE FROM articles
                        WHERE id IN ({placeholders})
                          AND NOT EXISTS (
                              SELECT 1 FROM saved_articles s WHERE s.article_id = articles.id
                          )""",
                    chunk
                )
                deleted += cursor.rowcount
        return deleted

    def list_for_user(
        self,
        user_id: str,
        current_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[DBArticle]:
        """
        Articles from a user's subscribed feeds, newest first.

        current_id filters by group: None or "all" for everything, "none"
        for ungrouped subscriptions, otherwise a specific group.
        """
        query = """
            SELECT a.*, f.title AS feed_title, f.icon_url AS feed_icon_url,
                   EXISTS(SELECT 1 FROM saved_articles s
                          WHERE s.article_id = a.id AND s.user_id = ?) AS is_saved,
                   EXISTS(SELECT 1 FROM read_articles r
                          WHERE r.article_id = a.id AND r.user_id = ?) AS is_read
            FROM articles a
            JOIN feeds f ON f.id = a.feed_id
            JOIN subscriptions sub ON sub.feed_id = f.id AND sub.user_id = ?
        """
        params: list = [user_id, user_id, user_id]

        if current_id == "none":
            query += " WHERE sub.current_id IS NULL"
        elif current_id and current_id != "all":
            query += " WHERE sub.current_id = ?"
            params.append(current_id)

        query += " ORDER BY a.published_at DESC, a.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [row_to_article(row) for row in rows]
