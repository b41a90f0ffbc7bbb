"""Post-related endpoints for the Campus Feed API."""

from fastapi import APIRouter, status

from campus_feed.api.v1.dependencies import CapabilitiesDep, SessionDep
from campus_feed.models import Post
from campus_feed.schemas.post import (
    PostCreate,
    PostResponse,
    PostUpdate,
    TransitionRequest,
    TransitionResponse,
)
from campus_feed.services.lifecycle import ApprovalService
from campus_feed.services.post_service import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    actor: CapabilitiesDep,
    db: SessionDep,
) -> Post:
    """Create an event or announcement.

    Club posts always start pending approval; institution staff may pick
    draft, pending or published (the default).
    """
    return PostService(db).create(actor, post_data)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    actor: CapabilitiesDep,
    db: SessionDep,
) -> Post:
    """Get a post the caller is allowed to see."""
    return PostService(db).get(actor, post_id)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    changes: PostUpdate,
    actor: CapabilitiesDep,
    db: SessionDep,
) -> Post:
    """Edit content fields. The lifecycle status is never changed here."""
    return PostService(db).update(actor, post_id, changes)


@router.post("/{post_id}/transition", response_model=TransitionResponse)
async def transition_post(
    post_id: int,
    request: TransitionRequest,
    actor: CapabilitiesDep,
    db: SessionDep,
) -> TransitionResponse:
    """Apply a lifecycle action (approve, reject, hide, show, submit, publish, delete)."""
    post = ApprovalService(db).transition(actor, post_id, request.action)
    return TransitionResponse(
        action=request.action,
        post=PostResponse.model_validate(post) if post is not None else None,
    )
