"""RSVP-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from campus_feed.models import RsvpState
from campus_feed.schemas.post import PostResponse


class RsvpRequest(BaseModel):
    """Desired RSVP state; null clears it."""

    state: RsvpState | None = Field(..., description="'going', 'interested' or null")

    model_config = ConfigDict(extra="forbid")


class CountersOut(BaseModel):
    going: int
    interested: int


class RsvpResponse(BaseModel):
    ok: bool = True
    state: RsvpState | None
    counts: CountersOut


class MyEventsResponse(BaseModel):
    """The caller's events grouped by RSVP state."""

    ok: bool = True
    going: list[PostResponse]
    interested: list[PostResponse]
