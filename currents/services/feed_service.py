"""
Feed service: business logic for subscription management.

Handles subscribing a user to a feed (creating the shared feed row on
first use), unsubscribing, and listing a user's feeds.
"""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from fastapi import HTTPException

from ..database import Database
from ..database.models import DBFeed, DBSubscription
from ..exceptions import IngestionError, require_feed
from ..feeds import icon_url_for
from ..normalizer import canonicalize_url

if TYPE_CHECKING:
    from ..feeds import FeedParser
    from ..sync import FeedSynchronizer

logger = logging.getLogger(__name__)


class FeedService:
    """Service for feed-related business logic."""

    def __init__(
        self,
        db: Database,
        feed_parser: "FeedParser | None" = None,
        synchronizer: "FeedSynchronizer | None" = None,
    ):
        self.db = db
        self.feed_parser = feed_parser
        self.synchronizer = synchronizer

    def list_feeds(self, user_id: str) -> list[DBSubscription]:
        """List the feeds a user subscribes to."""
        return self.db.list_subscriptions(user_id)

    async def subscribe(
        self,
        user_id: str,
        url: str,
        current_id: str | None = None,
    ) -> tuple[DBFeed, int]:
        """
        Subscribe a user to a feed.

        The URL is canonicalized and the feed fetched first so that invalid
        URLs are rejected. Feeds are shared: an existing row for the
        canonical URL is reused. The latest items
        are ingested immediately and extraction is started for new rows.

        Returns:
            (feed, number of new articles)

        Raises:
            HTTPException: 400 if the URL is not http(s) or the feed cannot be
                fetched or parsed
        """
        if not self.feed_parser or not self.synchronizer:
            raise HTTPException(status_code=500, detail="Feed parser not initialized")

        # One feed row per canonical URL
        url = canonicalize_url(url)
        if url is None:
            raise HTTPException(status_code=400, detail="Invalid feed URL: must be an absolute http(s) URL")

        try:
            parsed = await self.feed_parser.fetch(url)
        except IngestionError as e:
            raise HTTPException(status_code=400, detail=f"Invalid feed URL: {e.message}")

        title = parsed.title or urlparse(url).hostname or url
        feed = self.db.upsert_feed(
            url,
            title=title,
            icon_url=icon_url_for(url, parsed.link),
            fetched_at=datetime.now(timezone.utc),
        )

        self.db.get_profile(user_id)
        if self.db.add_subscription(user_id, feed.id, current_id):
            logger.info(f"User {user_id} subscribed to {url}")

        inserted = self.synchronizer.ingest(feed.id, parsed)
        return feed, len(inserted)

    def unsubscribe(self, user_id: str, feed_id: int):
        """
        Remove a user's subscription. The shared feed and its articles stay.

        Raises:
            HTTPException: 404 if the feed does not exist or the user is not subscribed
        """
        require_feed(self.db.get_feed(feed_id))
        if not self.db.remove_subscription(user_id, feed_id):
            raise HTTPException(status_code=404, detail="Subscription not found")
        logger.info(f"User {user_id} unsubscribed from feed {feed_id}")
