"""
Article routes: stream, saved/read state, and pipeline maintenance.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import get_current_user, verify_api_key
from ..config import config, get_db
from ..database import Database
from ..exceptions import require_article
from ..schemas import (
    ArticleResponse,
    ArticleDetailResponse,
    BackfillImagesResponse,
    ExtractRequest,
    ExtractResponse,
    FlushRequest,
    FlushResponse,
    MarkOlderReadRequest,
    MarkOlderReadResponse,
)
from ..tasks import backfill_images, extract_content, flush_old_articles

router = APIRouter(
    prefix="/articles",
    tags=["articles"],
    dependencies=[Depends(verify_api_key)]
)

PAGE_SIZE = 20


# ─────────────────────────────────────────────────────────────
# Stream (static paths first)
# ─────────────────────────────────────────────────────────────

@router.get("")
async def list_articles(
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)],
    current_id: str | None = None,
    page: int = Query(default=0, ge=0),
    limit: int = Query(default=PAGE_SIZE, ge=1, le=100),
) -> list[ArticleResponse]:
    """
    The current user's article stream, newest first.

    current_id filters by group: "all" (default), "none" for ungrouped
    feeds, or a group ID.
    """
    articles = db.list_articles_for_user(
        user_id,
        current_id=current_id,
        limit=limit,
        offset=page * limit,
    )
    return [ArticleResponse.from_db(a) for a in articles]


@router.get("/saved")
async def list_saved(
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> list[ArticleResponse]:
    """Articles the current user has saved."""
    return [ArticleResponse.from_db(a) for a in db.list_saved_articles(user_id)]


@router.post("/mark-older-read")
async def mark_older_read(
    request: MarkOlderReadRequest,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> MarkOlderReadResponse:
    """Mark every article older than the given number of days as read."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=request.days)
    return MarkOlderReadResponse(marked_count=db.mark_older_as_read(user_id, cutoff))


# ─────────────────────────────────────────────────────────────
# Pipeline maintenance
# ─────────────────────────────────────────────────────────────

@router.post("/flush")
async def flush_articles(
    request: FlushRequest,
    _: Annotated[Database, Depends(get_db)],
) -> FlushResponse:
    """Delete unsaved articles older than the given number of days."""
    days = config.ARCHIVE_CLEANUP_DAYS if request.days is None else request.days
    return FlushResponse(deleted_count=flush_old_articles(days))


@router.post("/extract")
async def extract_articles(
    request: ExtractRequest,
    _: Annotated[Database, Depends(get_db)],
) -> ExtractResponse:
    """Fetch article pages and store their full content and images."""
    try:
        result = await extract_content([a.to_ref() for a in request.articles])
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return ExtractResponse(processed_count=result.processed_count)


@router.post("/backfill-images")
async def backfill_article_images(
    _: Annotated[Database, Depends(get_db)],
    limit: int = Query(default=20, ge=1, le=100),
) -> BackfillImagesResponse:
    """Look up images for recent articles that have none."""
    try:
        found = await backfill_images(limit)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return BackfillImagesResponse(found_count=found)


# ─────────────────────────────────────────────────────────────
# Single article
# ─────────────────────────────────────────────────────────────

@router.get("/{article_id}")
async def get_article(
    article_id: int,
    db: Annotated[Database, Depends(get_db)],
    _: Annotated[str, Depends(get_current_user)],
) -> ArticleDetailResponse:
    """Get a single article with its full content."""
    return ArticleDetailResponse.from_db(require_article(db.get_article(article_id)))


@router.post("/{article_id}/save")
async def save_article(
    article_id: int,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> dict:
    """Save an article. Saved articles are never removed by retention."""
    require_article(db.get_article(article_id))
    db.save_article(user_id, article_id)
    return {"success": True, "is_saved": True}


@router.delete("/{article_id}/save")
async def unsave_article(
    article_id: int,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> dict:
    """Remove an article from the current user's saved list."""
    require_article(db.get_article(article_id))
    db.unsave_article(user_id, article_id)
    return {"success": True, "is_saved": False}


@router.post("/{article_id}/read")
async def mark_read(
    article_id: int,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> dict:
    """Mark article as read."""
    require_article(db.get_article(article_id))
    db.mark_read(user_id, article_id)
    return {"success": True, "is_read": True}


@router.delete("/{article_id}/read")
async def mark_unread(
    article_id: int,
    db: Annotated[Database, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user)]
) -> dict:
    """Mark article as unread."""
    require_article(db.get_article(article_id))
    db.mark_unread(user_id, article_id)
    return {"success": True, "is_read": False}
