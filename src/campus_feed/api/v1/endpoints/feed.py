"""Newsfeed endpoint."""

from fastapi import APIRouter, Query

from campus_feed.api.v1.dependencies import CapabilitiesDep, SessionDep
from campus_feed.core.settings import settings
from campus_feed.schemas.common import PageInfo
from campus_feed.schemas.feed import FeedItemOut, FeedResponse
from campus_feed.schemas.post import PostResponse
from campus_feed.schemas.rsvp import CountersOut
from campus_feed.services.feed import ORDERINGS, FeedAssembler, FeedItem, FeedMode, FeedOrder

router = APIRouter(prefix="/feed", tags=["feed"])


def _render_item(item: FeedItem) -> FeedItemOut:
    counts = None
    if item.counters is not None:
        counts = CountersOut(going=item.counters.going, interested=item.counters.interested)
    return FeedItemOut(
        post=PostResponse.model_validate(item.post),
        rsvp_state=item.rsvp_state,
        counts=counts,
    )


@router.get("/", response_model=FeedResponse)
async def get_feed(
    actor: CapabilitiesDep,
    db: SessionDep,
    mode: FeedMode = Query(FeedMode.FOR_YOU, description="'for-you' or 'global'"),
    limit: int = Query(
        settings.feed_default_limit,
        ge=1,
        le=settings.feed_max_limit,
        description="Maximum number of posts to return",
    ),
    offset: int = Query(0, ge=0, description="Number of posts to skip"),
    order: FeedOrder = Query(FeedOrder.RECENT, description="'recent' or 'upcoming'"),
) -> FeedResponse:
    """Return one page of the caller's feed."""
    page = FeedAssembler(db).assemble(
        actor,
        mode,
        limit=limit,
        offset=offset,
        order_by=ORDERINGS[order],
    )
    return FeedResponse(
        mode=mode.value,
        items=[_render_item(item) for item in page.items],
        page=PageInfo(offset=page.offset, limit=page.limit, next_offset=page.next_offset),
    )
