"""
Pydantic models for API request/response validation.
"""

import re

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from .database import DBArticle, DBFeed
from .database.models import ArticleRef, DBSubscription

EXCERPT_LENGTH = 150


def make_excerpt(content: str | None, length: int = EXCERPT_LENGTH) -> str:
    """Plain-text preview of article content."""
    if not content:
        return ""
    text = BeautifulSoup(content, "html.parser").get_text(" ")
    text = re.sub(r"\s+", " ", text).strip()
    return text[:length]


# ─────────────────────────────────────────────────────────────
# Article Schemas
# ─────────────────────────────────────────────────────────────

class ArticleResponse(BaseModel):
    """Article for list view."""
    id: int
    feed_id: int
    url: str
    title: str
    excerpt: str
    author: str | None = None
    image_url: str | None = None
    published_at: str
    feed_title: str | None = None
    feed_icon_url: str | None = None
    is_saved: bool = False
    is_read: bool = False

    @classmethod
    def from_db(cls, article: DBArticle) -> "ArticleResponse":
        return cls(
            id=article.id,
            feed_id=article.feed_id,
            url=article.url,
            title=article.title,
            excerpt=make_excerpt(article.content),
            author=article.author,
            image_url=article.image_url,
            published_at=article.published_at.isoformat(),
            feed_title=article.feed_title,
            feed_icon_url=article.feed_icon_url,
            is_saved=article.is_saved,
            is_read=article.is_read,
        )


class ArticleDetailResponse(ArticleResponse):
    """Full article with content."""
    content: str | None
    created_at: str
    extracted_at: str | None = None

    @classmethod
    def from_db(cls, article: DBArticle) -> "ArticleDetailResponse":
        base = ArticleResponse.from_db(article).model_dump()
        return cls(
            **base,
            content=article.content,
            created_at=article.created_at.isoformat(),
            extracted_at=article.extracted_at.isoformat() if article.extracted_at else None,
        )


class ArticleRefModel(BaseModel):
    """An article to enrich, as passed to the extraction endpoint."""
    id: int
    url: str
    image_url: str | None = None

    def to_ref(self) -> ArticleRef:
        return ArticleRef(id=self.id, url=self.url, image_url=self.image_url)


class ExtractRequest(BaseModel):
    """Request to extract content for a batch of articles."""
    articles: list[ArticleRefModel]


class ExtractResponse(BaseModel):
    processed_count: int


class FlushRequest(BaseModel):
    """Request to delete old unsaved articles."""
    days: int | None = Field(default=None, ge=0)


class FlushResponse(BaseModel):
    deleted_count: int


class MarkOlderReadRequest(BaseModel):
    """Mark every article older than the given number of days as read."""
    days: int = Field(ge=0)


class MarkOlderReadResponse(BaseModel):
    marked_count: int


class BackfillImagesResponse(BaseModel):
    found_count: int


# ─────────────────────────────────────────────────────────────
# Feed Schemas
# ─────────────────────────────────────────────────────────────

class FeedResponse(BaseModel):
    """A feed as seen by one subscriber."""
    id: int
    url: str
    title: str | None
    icon_url: str | None
    current_id: str | None = None
    last_fetched_at: str | None

    @classmethod
    def from_subscription(cls, sub: DBSubscription) -> "FeedResponse":
        return cls(
            id=sub.feed_id,
            url=sub.feed_url,
            title=sub.feed_title,
            icon_url=sub.feed_icon_url,
            current_id=sub.current_id,
            last_fetched_at=sub.last_fetched_at.isoformat() if sub.last_fetched_at else None,
        )

    @classmethod
    def from_db(cls, feed: DBFeed, current_id: str | None = None) -> "FeedResponse":
        return cls(
            id=feed.id,
            url=feed.url,
            title=feed.title,
            icon_url=feed.icon_url,
            current_id=current_id,
            last_fetched_at=feed.last_fetched_at.isoformat() if feed.last_fetched_at else None,
        )


class AddFeedRequest(BaseModel):
    """Request to subscribe to a feed."""
    url: str
    current_id: str | None = None


class AddFeedResponse(BaseModel):
    feed: FeedResponse
    inserted_count: int


# ─────────────────────────────────────────────────────────────
# Sync Schemas
# ─────────────────────────────────────────────────────────────

class SyncResponse(BaseModel):
    inserted_count: int


class ScheduledSyncResponse(BaseModel):
    inserted_count: int
    feeds_total: int
    feeds_failed: int


class SyncStatusResponse(BaseModel):
    """Progress of the current user's sync."""
    in_progress: bool
    current: int
    total: int


# ─────────────────────────────────────────────────────────────
# Settings Schemas
# ─────────────────────────────────────────────────────────────

class SyncIntervalResponse(BaseModel):
    sync_interval: int


class SyncIntervalRequest(BaseModel):
    """Hours between scheduled syncs for this user."""
    sync_interval: int = Field(ge=1, le=24 * 7)
