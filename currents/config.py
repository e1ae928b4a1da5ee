"""
Configuration and application state management.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

if TYPE_CHECKING:
    from .database import Database
    from .extractor import ContentExtractor
    from .feeds import FeedParser
    from .scheduler import SyncScheduler
    from .sync import FeedSynchronizer

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


class Config:
    """Application configuration from environment."""
    DB_PATH: Path = Path(os.getenv("DB_PATH", "./data/currents.db"))
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Optional shared secret for the X-API-Key header (empty = disabled)
    AUTH_API_KEY: str = os.getenv("AUTH_API_KEY", "")

    # Feed fetching
    FEED_FETCH_TIMEOUT: int = int(os.getenv("FEED_FETCH_TIMEOUT", "30"))  # seconds
    FEED_MAX_ITEMS: int = int(os.getenv("FEED_MAX_ITEMS", "50"))

    # Article page extraction
    EXTRACT_TIMEOUT: int = int(os.getenv("EXTRACT_TIMEOUT", "10"))  # seconds
    EXTRACT_BATCH_SIZE: int = int(os.getenv("EXTRACT_BATCH_SIZE", "5"))
    EXTRACT_MIN_LENGTH: int = int(os.getenv("EXTRACT_MIN_LENGTH", "200"))

    # Retention
    RETENTION_DAYS: int = int(os.getenv("RETENTION_DAYS", "60"))
    ARCHIVE_CLEANUP_DAYS: int = int(os.getenv("ARCHIVE_CLEANUP_DAYS", "30"))

    # Scheduled sync
    DEFAULT_SYNC_INTERVAL_HOURS: int = int(os.getenv("DEFAULT_SYNC_INTERVAL_HOURS", "24"))
    ENABLE_SCHEDULER: bool = _parse_bool(os.getenv("ENABLE_SCHEDULER"), default=True)
    SCHEDULER_INTERVAL_MINUTES: int = int(os.getenv("SCHEDULER_INTERVAL_MINUTES", "15"))


config = Config()


class AppState:
    """Shared application state."""
    db: "Database | None" = None
    feed_parser: "FeedParser | None" = None
    extractor: "ContentExtractor | None" = None
    synchronizer: "FeedSynchronizer | None" = None
    scheduler: "SyncScheduler | None" = None
    # user_id -> {"current": int, "total": int, "in_progress": bool}
    sync_progress: dict[str, dict] = {}


state = AppState()


def get_db() -> "Database":
    """Dependency to get database instance."""
    if not state.db:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return state.db


def get_synchronizer() -> "FeedSynchronizer":
    """Dependency to get the feed synchronizer."""
    if not state.synchronizer:
        raise HTTPException(status_code=500, detail="Synchronizer not initialized")
    return state.synchronizer
