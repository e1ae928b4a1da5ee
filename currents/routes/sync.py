"""
Sync routes: user-triggered sync, progress and the scheduled hook.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..auth import get_current_user, verify_api_key
from ..config import state, get_synchronizer
from ..schemas import ScheduledSyncResponse, SyncResponse, SyncStatusResponse
from ..sync import FeedSynchronizer
from ..tasks import sync_all_due_users, sync_current_user

router = APIRouter(
    prefix="/sync",
    tags=["sync"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("")
async def sync_now(
    user_id: Annotated[str, Depends(get_current_user)],
    _: Annotated[FeedSynchronizer, Depends(get_synchronizer)],
) -> SyncResponse:
    """Sync every feed the current user subscribes to."""
    result = await sync_current_user(user_id)
    return SyncResponse(inserted_count=result.inserted_count)


@router.get("/status")
async def sync_status(
    user_id: Annotated[str, Depends(get_current_user)]
) -> SyncStatusResponse:
    """Progress of the current user's most recent sync."""
    progress = state.sync_progress.get(user_id)
    if not progress:
        return SyncStatusResponse(in_progress=False, current=0, total=0)
    return SyncStatusResponse(**progress)


@router.post("/scheduled")
async def scheduled_sync(
    _: Annotated[FeedSynchronizer, Depends(get_synchronizer)],
) -> ScheduledSyncResponse:
    """Sync every feed that is due for any user (cron hook)."""
    result = await sync_all_due_users()
    return ScheduledSyncResponse(
        inserted_count=result.inserted_count,
        feeds_total=result.feeds_total,
        feeds_failed=result.feeds_failed,
    )
