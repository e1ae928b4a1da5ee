"""
Miscellaneous routes: health check and per-user settings.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from .. import __version__
from ..auth import get_current_user, verify_api_key
from ..config import state, get_db
from ..database import Database
from ..schemas import SyncIntervalRequest, SyncIntervalResponse

public_router = APIRouter(tags=["misc"])

router = APIRouter(
    tags=["misc"],
    dependencies=[Depends(verify_api_key)]
)


# ─────────────────────────────────────────────────────────────
# Health Check
# ─────────────────────────────────────────────────────────────

@public_router.get("/health")
async def health_check() -> dict:
    """API health check."""
    return {
        "status": "ok",
        "version": __version__,
        "scheduler_running": bool(state.scheduler and state.scheduler.running),
    }


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────

@router.get("/settings/sync-interval")
async def get_sync_interval(
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> SyncIntervalResponse:
    """Hours between scheduled syncs for the current user."""
    return SyncIntervalResponse(sync_interval=db.get_profile(user_id).sync_interval)


@router.put("/settings/sync-interval")
async def update_sync_interval(
    request: SyncIntervalRequest,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> SyncIntervalResponse:
    """Change the current user's scheduled sync interval."""
    db.set_sync_interval(user_id, request.sync_interval)
    return SyncIntervalResponse(sync_interval=request.sync_interval)
