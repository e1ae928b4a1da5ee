"""
Database models - dataclasses for database entities.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class DBFeed:
    id: int
    url: str
    title: str | None
    icon_url: str | None
    last_fetched_at: datetime | None
    fetch_error: str | None = None
    consecutive_failures: int = 0


@dataclass
class DBArticle:
    id: int
    feed_id: int
    url: str
    title: str
    content: str | None
    author: str | None
    image_url: str | None
    published_at: datetime
    created_at: datetime
    extracted_at: datetime | None = None

    # Populated by per-user stream queries
    feed_title: str | None = None
    feed_icon_url: str | None = None
    is_saved: bool = False
    is_read: bool = False


@dataclass
class DBSubscription:
    user_id: str
    feed_id: int
    feed_url: str
    last_fetched_at: datetime | None
    current_id: str | None = None
    feed_title: str | None = None
    feed_icon_url: str | None = None


@dataclass
class DBProfile:
    user_id: str
    sync_interval: int


@dataclass
class ArticleRecord:
    """An article ready to be upserted (output of the normalizer)."""
    feed_id: int
    title: str
    url: str
    image_url: str | None
    content: str
    author: str | None
    published_at: datetime


@dataclass
class ArticleRef:
    """Reference to a stored article, as handed to the content extractor."""
    id: int
    url: str
    image_url: str | None = None
