"""
Database facade - provides unified access to all repositories.

The method names here are the store contract the ingestion pipeline is
written against; each call delegates to a specialized repository.
"""

from datetime import datetime
from pathlib import Path

from .connection import DatabaseConnection
from .article_repository import ArticleRepository
from .feed_repository import FeedRepository
from .profile_repository import ProfileRepository
from .subscription_repository import SubscriptionRepository
from .user_article_state_repository import UserArticleStateRepository
from .models import ArticleRecord, ArticleRef, DBArticle, DBFeed, DBProfile, DBSubscription


class Database:
    """
    Unified database access facade.
    """

    def __init__(self, db_path: Path, default_sync_interval: int = 24):
        self._connection = DatabaseConnection(db_path)

        # Initialize repositories
        self.articles = ArticleRepository(self._connection)
        self.feeds = FeedRepository(self._connection)
        self.subscriptions = SubscriptionRepository(self._connection)
        self.profiles = ProfileRepository(self._connection, default_sync_interval)
        self.user_state = UserArticleStateRepository(self._connection)

    # ─────────────────────────────────────────────────────────────
    # Feed operations (delegated to FeedRepository)
    # ─────────────────────────────────────────────────────────────

    def upsert_feed(
        self,
        url: str,
        title: str | None = None,
        icon_url: str | None = None,
        fetched_at: datetime | None = None,
    ) -> DBFeed:
        return self.feeds.upsert(url, title, icon_url, fetched_at)

    def get_feed(self, feed_id: int) -> DBFeed | None:
        return self.feeds.get(feed_id)

    def get_feed_by_url(self, url: str) -> DBFeed | None:
        return self.feeds.get_by_url(url)

    def fill_feed_metadata(self, feed_id: int, title: str | None, icon_url: str | None):
        return self.feeds.fill_metadata(feed_id, title, icon_url)

    def update_feed_last_fetched(
        self,
        feed_id: int,
        fetched_at: datetime | None = None,
        error: str | None = None,
    ):
        return self.feeds.update_last_fetched(feed_id, fetched_at, error)

    # ─────────────────────────────────────────────────────────────
    # Subscription & profile operations
    # ─────────────────────────────────────────────────────────────

    def add_subscription(self, user_id: str, feed_id: int, current_id: str | None = None) -> bool:
        return self.subscriptions.add(user_id, feed_id, current_id)

    def remove_subscription(self, user_id: str, feed_id: int) -> bool:
        return self.subscriptions.remove(user_id, feed_id)

    def list_subscriptions(self, user_id: str) -> list[DBSubscription]:
        return self.subscriptions.list_for_user(user_id)

    def get_profile(self, user_id: str) -> DBProfile:
        return self.profiles.get_or_create(user_id)

    def list_all_profiles(self) -> list[DBProfile]:
        return self.profiles.list_all()

    def set_sync_interval(self, user_id: str, hours: int):
        return self.profiles.set_sync_interval(user_id, hours)

    # ─────────────────────────────────────────────────────────────
    # Article operations (delegated to ArticleRepository)
    # ─────────────────────────────────────────────────────────────

    def upsert_articles(self, records: list[ArticleRecord]) -> list[ArticleRef]:
        return self.articles.upsert_many(records)

    def get_article(self, article_id: int) -> DBArticle | None:
        return self.articles.get(article_id)

    def get_article_by_url(self, url: str) -> DBArticle | None:
        return self.articles.get_by_url(url)

    def update_article(
        self,
        article_id: int,
        content: str | None = None,
        image_url: str | None = None,
    ) -> bool:
        return self.articles.update_extracted(article_id, content, image_url)

    def list_articles_missing_images(self, limit: int = 20) -> list[ArticleRef]:
        return self.articles.list_missing_images(limit)

    def list_articles_older_than(self, cutoff: datetime) -> list[int]:
        return self.articles.list_older_than(cutoff)

    def delete_articles(self, article_ids: list[int]) -> int:
        return self.articles.delete_unsaved(article_ids)

    def list_articles_for_user(
        self,
        user_id: str,
        current_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[DBArticle]:
        return self.articles.list_for_user(user_id, current_id, limit, offset)

    # ─────────────────────────────────────────────────────────────
    # Per-user state (delegated to UserArticleStateRepository)
    # ─────────────────────────────────────────────────────────────

    def save_article(self, user_id: str, article_id: int) -> bool:
        return self.user_state.save(user_id, article_id)

    def unsave_article(self, user_id: str, article_id: int) -> bool:
        return self.user_state.unsave(user_id, article_id)

    def list_saved_article_ids(self, user_id: str | None = None) -> set[int]:
        return self.user_state.list_saved_ids(user_id)

    def list_saved_articles(self, user_id: str) -> list[DBArticle]:
        return self.user_state.list_saved(user_id)

    def mark_read(self, user_id: str, article_id: int):
        return self.user_state.mark_read(user_id, article_id)

    def mark_unread(self, user_id: str, article_id: int):
        return self.user_state.mark_unread(user_id, article_id)

    def list_read_article_ids(self, user_id: str) -> set[int]:
        return self.user_state.list_read_ids(user_id)

    def mark_older_as_read(self, user_id: str, cutoff: datetime) -> int:
        return self.user_state.mark_older_as_read(user_id, cutoff)
