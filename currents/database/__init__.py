"""
Database module - SQLite operations for feeds, articles and per-user state.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import ArticleRecord, ArticleRef, DBArticle, DBFeed, DBProfile, DBSubscription
from .article_repository import ArticleRepository
from .feed_repository import FeedRepository
from .profile_repository import ProfileRepository
from .subscription_repository import SubscriptionRepository
from .user_article_state_repository import UserArticleStateRepository
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "ArticleRecord",
    "ArticleRef",
    "DBArticle",
    "DBFeed",
    "DBProfile",
    "DBSubscription",
    "ArticleRepository",
    "FeedRepository",
    "ProfileRepository",
    "SubscriptionRepository",
    "UserArticleStateRepository",
]
