"""
Sync Orchestrator - drive feed parsing, normalization and enrichment.

Two entry points:
- sync_user: every feed a user subscribes to, with progress reporting
- sync_all_due_users: scheduled run over the feeds that are due for
  any user, each feed fetched once

Feeds are processed one at a time so that a failure stays with its feed
and progress is observable. Content extraction and retention sweeps are
launched as background tasks and never gate the sync result.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Awaitable, Callable

from .database.models import ArticleRef
from .feeds import ParsedFeed, icon_url_for
from .normalizer import normalize_items

if TYPE_CHECKING:
    from .database import Database
    from .extractor import ContentExtractor
    from .feeds import FeedParser
    from .retention import RetentionSweeper

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class SyncResult:
    """Aggregate outcome of a sync run."""
    inserted_count: int = 0
    feeds_total: int = 0
    feeds_failed: int = 0


@dataclass
class FeedTarget:
    """A feed queued for fetching."""
    feed_id: int
    url: str


def is_feed_due(last_fetched_at: datetime | None, interval_hours: int, now: datetime) -> bool:
    """A feed is due if never fetched or fetched at least interval_hours ago."""
    if last_fetched_at is None:
        return True
    hours_since = (now - last_fetched_at) / timedelta(hours=1)
    return hours_since >= interval_hours


class FeedSynchronizer:
    """Runs feed syncs against the store."""

    def __init__(
        self,
        db: "Database",
        feed_parser: "FeedParser",
        extractor: "ContentExtractor | None" = None,
        sweeper: "RetentionSweeper | None" = None,
        retention_days: int = 60,
        default_interval: int = 24,
    ):
        self.db = db
        self.feed_parser = feed_parser
        self.extractor = extractor
        self.sweeper = sweeper
        self.retention_days = retention_days
        self.default_interval = default_interval
        self._background_tasks: set[asyncio.Task] = set()

    # ─────────────────────────────────────────────────────────────
    # Entry points
    # ─────────────────────────────────────────────────────────────

    async def sync_user(
        self,
        user_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Sync every feed the user subscribes to."""
        targets: dict[int, FeedTarget] = {}
        for sub in self.db.list_subscriptions(user_id):
            targets.setdefault(sub.feed_id, FeedTarget(sub.feed_id, sub.feed_url))

        logger.info(f"Syncing {len(targets)} feeds for user {user_id}")
        result = await self._sync_feeds(list(targets.values()), on_progress)
        self.launch_sweep()

        logger.info(
            f"User sync finished: {result.inserted_count} new articles, "
            f"{result.feeds_failed}/{result.feeds_total} feeds failed"
        )
        return result

    def due_feeds(self, now: datetime | None = None) -> list[FeedTarget]:
        """
        Feeds due for any user, keyed by feed.

        Each profile's interval is applied to that user's subscriptions; a
        feed shared by several users is queued once if any of them is due.
        """
        now = now or datetime.now(timezone.utc)
        work: dict[int, FeedTarget] = {}

        for profile in self.db.list_all_profiles():
            interval = profile.sync_interval or self.default_interval
            for sub in self.db.list_subscriptions(profile.user_id):
                if sub.feed_id in work:
                    continue
                if is_feed_due(sub.last_fetched_at, interval, now):
                    work[sub.feed_id] = FeedTarget(sub.feed_id, sub.feed_url)

        return list(work.values())

    async def sync_all_due_users(self, now: datetime | None = None) -> SyncResult:
        """Scheduled entry point: sync the feeds that are due."""
        targets = self.due_feeds(now)
        logger.info(f"Starting scheduled sync: {len(targets)} feeds due")

        result = await self._sync_feeds(targets)
        self.launch_sweep()

        logger.info(f"Scheduled sync finished: {result.inserted_count} new articles")
        return result

    # ─────────────────────────────────────────────────────────────
    # Per-feed work
    # ─────────────────────────────────────────────────────────────

    async def sync_feed(self, feed_id: int, url: str) -> int:
        """
        Fetch, parse and ingest one feed. Returns the number of new articles.

        last_fetched_at is advanced whether or not the attempt succeeds;
        failures are recorded on the feed and re-raised.
        """
        logger.info(f"Syncing feed: {url}")
        try:
            parsed = await self.feed_parser.fetch(url)
            self.db.fill_feed_metadata(feed_id, parsed.title, icon_url_for(url, parsed.link))
            inserted = self.ingest(feed_id, parsed)
        except Exception as e:
            self.db.update_feed_last_fetched(feed_id, error=str(e) or type(e).__name__)
            raise

        self.db.update_feed_last_fetched(feed_id)
        return len(inserted)

    def ingest(self, feed_id: int, parsed: ParsedFeed) -> list[ArticleRef]:
        """Normalize and upsert a parsed feed, then launch extraction for new rows."""
        records = normalize_items(feed_id, parsed.items, base_url=parsed.url, now=parsed.fetched_at)
        inserted = self.db.upsert_articles(records)
        if inserted:
            logger.info(f"{len(inserted)} new articles from {parsed.url}")
            self.launch_extraction(inserted)
        return inserted

    async def _sync_feeds(
        self,
        targets: list[FeedTarget],
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        total = len(targets)
        result = SyncResult(feeds_total=total)
        self._notify(on_progress, 0, total)

        for index, target in enumerate(targets, start=1):
            try:
                result.inserted_count += await self.sync_feed(target.feed_id, target.url)
            except Exception as e:
                result.feeds_failed += 1
                logger.error(f"Failed to sync feed {target.url}: {e}")
            self._notify(on_progress, index, total)

        return result

    @staticmethod
    def _notify(callback: ProgressCallback | None, current: int, total: int):
        if callback is None:
            return
        try:
            callback(current, total)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    # ─────────────────────────────────────────────────────────────
    # Background work
    # ─────────────────────────────────────────────────────────────

    def launch_extraction(self, refs: list[ArticleRef]):
        """Start content extraction for new articles without waiting for it."""
        if self.extractor is None or not refs:
            return
        self._spawn(self.extractor.extract_content(refs), name="extract-content")

    def launch_sweep(self):
        """Start a retention sweep without waiting for it."""
        if self.sweeper is None:
            return
        self._spawn(
            asyncio.to_thread(self.sweeper.sweep, self.retention_days),
            name="retention-sweep",
        )

    def _spawn(self, coro: Awaitable, name: str):
        task = asyncio.create_task(coro, name=name)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task):
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc!r}")

    @property
    def pending_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain(self):
        """Wait for outstanding background tasks (shutdown, tests)."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
