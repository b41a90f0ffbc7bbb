"""Feed Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel

from campus_feed.models import RsvpState
from campus_feed.schemas.common import PageInfo
from campus_feed.schemas.post import PostResponse
from campus_feed.schemas.rsvp import CountersOut


class FeedItemOut(BaseModel):
    """A post plus, for events, the viewer's RSVP state and live counters."""

    post: PostResponse
    rsvp_state: RsvpState | None = None
    counts: CountersOut | None = None


class FeedResponse(BaseModel):
    ok: bool = True
    mode: str
    items: list[FeedItemOut]
    page: PageInfo
