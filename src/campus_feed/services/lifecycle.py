"""Approval state machine governing the post lifecycle.

Initial status depends on who creates the post and in which scope;
afterwards the status only moves through :data:`TRANSITIONS`. Every
transition is a compare-and-swap on the stored status, so two moderators
acting on the same post at once cannot both succeed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import update
from sqlalchemy.orm import Session

from campus_feed.core.errors import Forbidden, InvalidTransition, ValidationError
from campus_feed.models import LIVE_STATUSES, Post, PostOrigin, PostStatus, SourceScope
from campus_feed.repositories.post_repo import PostRepository
from campus_feed.services.capabilities import Capabilities
from campus_feed.services.visibility import ensure_visible

logger = logging.getLogger(__name__)

# Statuses institution staff may pick when creating institution content.
SELF_SELECTABLE_STATUSES = frozenset({PostStatus.DRAFT, PostStatus.PENDING, PostStatus.PUBLISHED})


class Action(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    HIDE = "hide"
    SHOW = "show"
    DELETE = "delete"
    SUBMIT = "submit"
    PUBLISH = "publish"


def _can_approve(actor: Capabilities, post: Post) -> bool:
    return actor.can_approve(post)


def _can_moderate(actor: Capabilities, post: Post) -> bool:
    return actor.can_moderate(post)


def _is_author(actor: Capabilities, post: Post) -> bool:
    return post.author_id == actor.user_id


def _can_delete(actor: Capabilities, post: Post) -> bool:
    return _is_author(actor, post) or actor.can_moderate(post)


def _can_self_publish(actor: Capabilities, post: Post) -> bool:
    return (
        _is_author(actor, post)
        and post.source_scope == SourceScope.INSTITUTION
        and actor.can_create_in(SourceScope.INSTITUTION, post.institution_id)
    )


@dataclass(frozen=True)
class Transition:
    """One row of the transition table.

    Attributes:
        sources: Statuses the transition may start from.
        target: Resulting status; None means the post is deleted.
        allowed: Permission check for the acting user.
        origin: Provenance recorded when the post goes live, if any.
    """

    sources: frozenset[PostStatus]
    target: PostStatus | None
    allowed: Callable[[Capabilities, Post], bool]
    origin: PostOrigin | None = None


TRANSITIONS: dict[Action, Transition] = {
    Action.APPROVE: Transition(
        frozenset({PostStatus.PENDING}), PostStatus.APPROVED, _can_approve, PostOrigin.MODERATED
    ),
    Action.REJECT: Transition(frozenset({PostStatus.PENDING}), PostStatus.REJECTED, _can_approve),
    Action.HIDE: Transition(LIVE_STATUSES, PostStatus.HIDDEN, _can_moderate),
    Action.SHOW: Transition(frozenset({PostStatus.HIDDEN}), PostStatus.PUBLISHED, _can_moderate),
    Action.SUBMIT: Transition(frozenset({PostStatus.DRAFT}), PostStatus.PENDING, _is_author),
    Action.PUBLISH: Transition(
        frozenset({PostStatus.DRAFT}),
        PostStatus.PUBLISHED,
        _can_self_publish,
        PostOrigin.SELF_PUBLISHED,
    ),
    Action.DELETE: Transition(frozenset(PostStatus), None, _can_delete),
}


def initial_status(
    scope: SourceScope,
    requested: PostStatus | None,
) -> tuple[PostStatus, PostOrigin | None]:
    """Return the status (and provenance) a newly created post starts in.

    Club content always waits for moderation. Institution staff may pick
    draft, pending or published; published is the default.

    Raises:
        ValidationError: If the requested status is not selectable for the scope.
    """
    if scope == SourceScope.CLUB:
        if requested not in (None, PostStatus.PENDING):
            raise ValidationError("Club posts always start pending approval")
        return PostStatus.PENDING, None

    status = requested or PostStatus.PUBLISHED
    if status not in SELF_SELECTABLE_STATUSES:
        raise ValidationError(f"Cannot create a post with status '{status.value}'")
    origin = PostOrigin.SELF_PUBLISHED if status == PostStatus.PUBLISHED else None
    return status, origin


def check_transition(actor: Capabilities, post: Post, action: Action) -> Transition:
    """Validate ``action`` on ``post`` for ``actor`` without mutating anything.

    Raises:
        Forbidden: The actor lacks the capability for this action.
        InvalidTransition: The post's current status does not allow it.
    """
    transition = TRANSITIONS[action]
    if not transition.allowed(actor, post):
        raise Forbidden(f"Not allowed to {action.value} this post")
    if post.status not in transition.sources:
        raise InvalidTransition(f"Cannot {action.value} a post that is {post.status.value}")
    return transition


class ApprovalService:
    """Apply lifecycle transitions and serve the moderation queue."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PostRepository(db)

    def transition(self, actor: Capabilities, post_id: int, action: Action) -> Post | None:
        """Apply ``action`` to a post in a single transaction.

        Returns:
            The updated post, or None when the action deleted it.

        Raises:
            NotFound: Post absent or not visible to the actor.
            Forbidden: Actor lacks the capability.
            InvalidTransition: Not allowed from the current status, including
                when another request changed the status first.
        """
        try:
            post = ensure_visible(self.repo.get_for_update(post_id), actor, moderation_view=True)
            transition = check_transition(actor, post, action)

            if transition.target is None:
                removed = self.repo.delete_with_rsvps(post)
                self.db.commit()
                logger.info(
                    "Post %s deleted by user %s (%d RSVPs removed)", post_id, actor.user_id, removed
                )
                return None

            previous = post.status
            values: dict[str, object] = {"status": transition.target}
            if transition.origin is not None:
                values["origin"] = transition.origin
            result = self.db.execute(
                update(Post)
                .where(Post.id == post_id, Post.status == previous)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidTransition("Post status changed concurrently; reload and retry")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Post %s %s -> %s by user %s",
            post_id,
            previous.value,
            transition.target.value,
            actor.user_id,
        )
        self.db.refresh(post)
        return post

    def queue(self, actor: Capabilities, *, limit: int, offset: int = 0) -> list[Post]:
        """Return pending posts the actor may approve, oldest first."""
        if actor.is_super_admin:
            return self.repo.pending_for_review(institution_ids=None, limit=limit, offset=offset)
        if actor.institution_id is None or not actor.is_institution_staff(actor.institution_id):
            raise Forbidden("Only institution staff review pending posts")
        return self.repo.pending_for_review(
            institution_ids=[actor.institution_id], limit=limit, offset=offset
        )
