"""
Retention Sweeper - delete aged articles nobody has saved.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .database import Database

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Deletes articles older than a cutoff unless some user saved them."""

    def __init__(self, db: "Database", default_days: int = 60):
        self.db = db
        self.default_days = default_days

    def sweep(self, cutoff_days: int | None = None, now: datetime | None = None) -> int:
        """
        Delete unsaved articles published more than cutoff_days ago.

        Saved status is global: a save by any user protects the article.
        The delete re-checks saved status in the same statement, so a save
        landing between the scan and the delete still wins.

        Returns count of deleted articles.
        """
        days = self.default_days if cutoff_days is None else cutoff_days
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)

        old_ids = self.db.list_articles_older_than(cutoff)
        if not old_ids:
            return 0

        saved_ids = self.db.list_saved_article_ids()
        to_delete = [article_id for article_id in old_ids if article_id not in saved_ids]
        if not to_delete:
            logger.debug(f"Retention: {len(old_ids)} old articles, all saved")
            return 0

        deleted = self.db.delete_articles(to_delete)
        logger.info(f"Retention: deleted {deleted} articles older than {days} days")
        return deleted
