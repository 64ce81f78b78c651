"""Feed routes."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from potluck.routes.deps import get_feed_service
from potluck.services.feed import FeedService

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("")
async def get_feed(
    limit: int | None = Query(None, ge=1, le=200),
    service: FeedService = Depends(get_feed_service),
):
    """
    Recent completed meals and dishes.

    Posts connected by relationships are returned as one grouped unit
    anchored on the oldest post of the group.
    """
    return service.build_feed(limit).unwrap()


@router.get("/posts/{post_id}/grouped")
async def post_grouped(post_id: UUID, service: FeedService = Depends(get_feed_service)):
    """Whether the post is linked to any other post."""
    return {"post_id": post_id, "grouped": service.is_post_in_group(post_id).unwrap()}
