"""
Currents Reader API Server

FastAPI application providing endpoints for:
- Feed subscriptions (add, remove, list)
- Syncing (user-triggered and scheduled)
- Article stream and saved/read state
- Content extraction, image backfill and retention
- Settings
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import config, state
from .database import Database
from .extractor import ContentExtractor
from .feeds import FeedParser
from .retention import RetentionSweeper
from .routes import (
    articles_router,
    feeds_router,
    misc_router,
    misc_public_router,
    sync_router,
)
from .scheduler import SyncScheduler
from .sync import FeedSynchronizer

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if already initialized (e.g., by tests)
    if state.db is None:
        state.db = Database(config.DB_PATH, default_sync_interval=config.DEFAULT_SYNC_INTERVAL_HOURS)
        state.feed_parser = FeedParser(
            timeout=config.FEED_FETCH_TIMEOUT,
            max_items=config.FEED_MAX_ITEMS,
        )
        state.extractor = ContentExtractor(
            state.db,
            timeout=config.EXTRACT_TIMEOUT,
            batch_size=config.EXTRACT_BATCH_SIZE,
            min_content_length=config.EXTRACT_MIN_LENGTH,
        )
        state.synchronizer = FeedSynchronizer(
            state.db,
            state.feed_parser,
            extractor=state.extractor,
            sweeper=RetentionSweeper(state.db, default_days=config.RETENTION_DAYS),
            retention_days=config.RETENTION_DAYS,
            default_interval=config.DEFAULT_SYNC_INTERVAL_HOURS,
        )

        if config.ENABLE_SCHEDULER:
            state.scheduler = SyncScheduler(
                state.synchronizer,
                interval_minutes=config.SCHEDULER_INTERVAL_MINUTES,
            )
            await state.scheduler.start()
        else:
            logger.info("Scheduled sync disabled (ENABLE_SCHEDULER=false)")

    yield

    # Shutdown
    if state.scheduler:
        try:
            await state.scheduler.stop()
        except Exception as e:
            logger.warning(f"Error stopping scheduler: {e}")

    if state.synchronizer and state.synchronizer.pending_tasks:
        logger.info(f"Waiting for {state.synchronizer.pending_tasks} background tasks")
        await state.synchronizer.drain()


app = FastAPI(
    title="Currents Reader API",
    version=__version__,
    lifespan=lifespan
)

# Include routers
app.include_router(misc_public_router)
app.include_router(misc_router)
app.include_router(sync_router)
app.include_router(feeds_router)
app.include_router(articles_router)


def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    main()
