"""
Feed routes: list, subscribe, unsubscribe.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..auth import get_current_user, verify_api_key
from ..schemas import AddFeedRequest, AddFeedResponse, FeedResponse
from ..services import FeedServiceDep

router = APIRouter(
    prefix="/feeds",
    tags=["feeds"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("")
async def list_feeds(
    service: FeedServiceDep,
    user_id: Annotated[str, Depends(get_current_user)]
) -> list[FeedResponse]:
    """List the current user's feeds."""
    return [FeedResponse.from_subscription(s) for s in service.list_feeds(user_id)]


@router.post("")
async def add_feed(
    request: AddFeedRequest,
    service: FeedServiceDep,
    user_id: Annotated[str, Depends(get_current_user)]
) -> AddFeedResponse:
    """Subscribe to a feed and ingest its latest items."""
    feed, inserted_count = await service.subscribe(user_id, request.url, request.current_id)
    return AddFeedResponse(
        feed=FeedResponse.from_db(feed, request.current_id),
        inserted_count=inserted_count,
    )


@router.delete("/{feed_id}")
async def delete_feed(
    feed_id: int,
    service: FeedServiceDep,
    user_id: Annotated[str, Depends(get_current_user)]
) -> dict:
    """Unsubscribe from a feed."""
    service.unsubscribe(user_id, feed_id)
    return {"success": True}
