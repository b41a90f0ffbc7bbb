"""Moderation endpoints for the Campus Feed API."""

from fastapi import APIRouter, Query

from campus_feed.api.v1.dependencies import CapabilitiesDep, SessionDep
from campus_feed.core.settings import settings
from campus_feed.models import Post
from campus_feed.schemas.post import PostResponse
from campus_feed.services.lifecycle import ApprovalService

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.get("/queue", response_model=list[PostResponse])
async def moderation_queue(
    actor: CapabilitiesDep,
    db: SessionDep,
    limit: int = Query(
        settings.feed_default_limit,
        ge=1,
        le=settings.feed_max_limit,
        description="Maximum number of posts to return",
    ),
    offset: int = Query(0, ge=0),
) -> list[Post]:
    """List pending posts the caller may approve, oldest first."""
    return ApprovalService(db).queue(actor, limit=limit, offset=offset)
