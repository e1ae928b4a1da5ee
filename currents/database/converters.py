"""
Database row converters - convert SQLite rows to dataclasses.

Timestamps are stored as ISO-8601 strings in UTC so that lexical
ordering in SQL matches chronological ordering.
"""

import sqlite3
from datetime import datetime, timezone

from .models import DBArticle, DBFeed, DBProfile, DBSubscription


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        # CURRENT_TIMESTAMP defaults are "YYYY-MM-DD HH:MM:SS"
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _safe_get(row: sqlite3.Row, col: str):
    """Get an optional column that only some queries select."""
    try:
        return row[col]
    except (IndexError, KeyError):
        return None


def row_to_feed(row: sqlite3.Row) -> DBFeed:
    """Convert a database row to a DBFeed."""
    return DBFeed(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        icon_url=row["icon_url"],
        last_fetched_at=parse_timestamp(row["last_fetched_at"]),
        fetch_error=row["fetch_error"],
        consecutive_failures=row["consecutive_failures"] or 0,
    )


def row_to_article(row: sqlite3.Row) -> DBArticle:
    """Convert a database row to a DBArticle."""
    return DBArticle(
        id=row["id"],
        feed_id=row["feed_id"],
        url=row["url"],
        title=row["title"],
        content=row["content"],
        author=row["author"],
        image_url=row["image_url"],
        published_at=parse_timestamp(row["published_at"]) or utcnow(),
        created_at=parse_timestamp(row["created_at"]) or utcnow(),
        extracted_at=parse_timestamp(row["extracted_at"]),
        feed_title=_safe_get(row, "feed_title"),
        feed_icon_url=_safe_get(row, "feed_icon_url"),
        is_saved=bool(_safe_get(row, "is_saved")),
        is_read=bool(_safe_get(row, "is_read")),
    )


def row_to_subscription(row: sqlite3.Row) -> DBSubscription:
    """Convert a subscription joined with its feed to a DBSubscription."""
    return DBSubscription(
        user_id=row["user_id"],
        feed_id=row["feed_id"],
        feed_url=row["feed_url"],
        last_fetched_at=parse_timestamp(row["last_fetched_at"]),
        current_id=row["current_id"],
        feed_title=_safe_get(row, "feed_title"),
        feed_icon_url=_safe_get(row, "feed_icon_url"),
    )


def row_to_profile(row: sqlite3.Row, default_interval: int = 24) -> DBProfile:
    """Convert a database row to a DBProfile."""
    return DBProfile(
        user_id=row["user_id"],
        sync_interval=row["sync_interval"] or default_interval,
    )
