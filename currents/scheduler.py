"""
Scheduled Sync.

Background task that periodically syncs the feeds that are due.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sync import FeedSynchronizer


logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    Background scheduler for feed syncs.

    Wakes up every interval and syncs the feeds whose owners' sync
    interval has elapsed. Due-ness is decided per feed, so the wake-up
    interval only bounds how late a due feed can be.
    """

    def __init__(self, synchronizer: "FeedSynchronizer", interval_minutes: int = 15):
        self.synchronizer = synchronizer
        self._interval_minutes = interval_minutes
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, initial_delay: float = 10):
        """Start the scheduler loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(initial_delay))
        logger.info(f"Sync scheduler started (interval: {self._interval_minutes} minutes)")

    async def stop(self):
        """Stop the scheduler loop."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Sync scheduler stopped")

    async def run_now(self):
        """Trigger an immediate scheduled sync."""
        logger.info("Triggering immediate scheduled sync")
        await self._do_sync()

    async def _poll_loop(self, initial_delay: float):
        # Let the server finish starting
        await asyncio.sleep(initial_delay)

        while self._running:
            await self._do_sync()
            await asyncio.sleep(self._interval_minutes * 60)

    async def _do_sync(self):
        try:
            result = await self.synchronizer.sync_all_due_users()
            if result.feeds_total:
                logger.info(
                    f"Scheduled sync: {result.inserted_count} new articles "
                    f"from {result.feeds_total} feeds"
                )
            else:
                logger.debug("Scheduled sync: no feeds due")
        except Exception as e:
            logger.exception(f"Scheduled sync error: {e}")
