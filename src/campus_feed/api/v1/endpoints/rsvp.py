"""RSVP endpoints for events."""

from fastapi import APIRouter

from campus_feed.api.v1.dependencies import CapabilitiesDep, SessionDep
from campus_feed.schemas.post import PostResponse
from campus_feed.schemas.rsvp import CountersOut, MyEventsResponse, RsvpRequest, RsvpResponse
from campus_feed.services.rsvp import RsvpLedger, RsvpResult

router = APIRouter(prefix="/events", tags=["rsvp"])


def _render(result: RsvpResult) -> RsvpResponse:
    return RsvpResponse(
        state=result.state,
        counts=CountersOut(going=result.counters.going, interested=result.counters.interested),
    )


@router.get("/mine", response_model=MyEventsResponse)
async def my_events(actor: CapabilitiesDep, db: SessionDep) -> MyEventsResponse:
    """List the caller's upcoming-first events grouped by RSVP state."""
    events = RsvpLedger(db).my_events(actor)
    return MyEventsResponse(
        going=[PostResponse.model_validate(post) for post in events.going],
        interested=[PostResponse.model_validate(post) for post in events.interested],
    )


@router.post("/{event_id}/rsvp", response_model=RsvpResponse)
async def set_rsvp(
    event_id: int,
    request: RsvpRequest,
    actor: CapabilitiesDep,
    db: SessionDep,
) -> RsvpResponse:
    """Toggle the caller's RSVP. Sending the state already held clears it."""
    return _render(RsvpLedger(db).set_rsvp(actor, event_id, request.state))


@router.delete("/{event_id}/rsvp", response_model=RsvpResponse)
async def clear_rsvp(event_id: int, actor: CapabilitiesDep, db: SessionDep) -> RsvpResponse:
    """Clear the caller's RSVP, if any."""
    return _render(RsvpLedger(db).set_rsvp(actor, event_id, None))
