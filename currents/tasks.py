"""
Pipeline entry points used by routes and the scheduler.

Each function works against the shared application state set up in
server.py (or by tests).
"""

from .config import config, state
from .database.models import ArticleRef
from .extractor import ExtractionResult
from .retention import RetentionSweeper
from .sync import FeedSynchronizer, ProgressCallback, SyncResult


def _require_synchronizer() -> FeedSynchronizer:
    if not state.synchronizer:
        raise RuntimeError("Synchronizer not initialized")
    return state.synchronizer


async def sync_current_user(
    user_id: str,
    on_progress: ProgressCallback | None = None,
) -> SyncResult:
    """Sync all of a user's feeds, recording progress for status polling."""
    synchronizer = _require_synchronizer()
    progress = {"in_progress": True, "current": 0, "total": 0}
    state.sync_progress[user_id] = progress

    def report(current: int, total: int):
        progress["current"] = current
        progress["total"] = total
        if on_progress:
            on_progress(current, total)

    try:
        return await synchronizer.sync_user(user_id, report)
    finally:
        progress["in_progress"] = False


async def sync_all_due_users() -> SyncResult:
    """Scheduled sync over every due feed."""
    return await _require_synchronizer().sync_all_due_users()


def flush_old_articles(cutoff_days: int | None = None) -> int:
    """Delete unsaved articles older than cutoff_days. Returns count deleted."""
    if not state.db:
        raise RuntimeError("Database not initialized")
    sweeper = RetentionSweeper(state.db, default_days=config.RETENTION_DAYS)
    return sweeper.sweep(cutoff_days)


async def extract_content(refs: list[ArticleRef]) -> ExtractionResult:
    """Run content extraction for the given articles and wait for it."""
    if not state.extractor:
        raise RuntimeError("Extractor not initialized")
    return await state.extractor.extract_content(refs)


async def backfill_images(limit: int = 20) -> int:
    """Find images for recent articles that have none. Returns count found."""
    if not state.extractor:
        raise RuntimeError("Extractor not initialized")
    return await state.extractor.backfill_images(limit)
