"""
Service layer for business logic.

Services encapsulate business logic, keeping routes as thin HTTP adapters.
Each service receives its dependencies via constructor injection.

Usage in routes:
    from ..services import FeedServiceDep

    @router.get("/feeds")
    async def list_feeds(
        service: FeedServiceDep,
        user_id: Annotated[str, Depends(get_current_user)]
    ):
        return service.list_feeds(user_id)
"""

from typing import Annotated

from fastapi import Depends

from ..config import state, get_db
from ..database import Database

from .feed_service import FeedService

__all__ = [
    "FeedService",
    "get_feed_service",
    "FeedServiceDep",
]


def get_feed_service(db: Annotated[Database, Depends(get_db)]) -> FeedService:
    """Dependency to get FeedService instance."""
    return FeedService(
        db=db,
        feed_parser=state.feed_parser,
        synchronizer=state.synchronizer,
    )


FeedServiceDep = Annotated[FeedService, Depends(get_feed_service)]
