"""Service-level helpers for creating, editing and reading posts."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from campus_feed.core.errors import Forbidden, NotFound, ValidationError
from campus_feed.db.time import as_utc
from campus_feed.models import (
    Club,
    ClubStatus,
    Post,
    PostStatus,
    PostType,
    SourceScope,
    Visibility,
)
from campus_feed.repositories.post_repo import PostRepository
from campus_feed.services.capabilities import Capabilities
from campus_feed.services.lifecycle import initial_status
from campus_feed.services.visibility import ensure_visible

if TYPE_CHECKING:
    from campus_feed.schemas.post import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

_EVENT_ONLY_FIELDS = ("start_at", "end_at", "venue", "link", "max_slots")
_HTTP_URL = TypeAdapter(HttpUrl)


@dataclass
class PostContent:
    """Editable content of a post, validated as a whole."""

    type: PostType
    scope: SourceScope
    title: str
    body: str
    visibility: Visibility
    image_ref: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    venue: str | None = None
    link: str | None = None
    max_slots: int | None = None
    tags: list[str] = field(default_factory=list)
    audience_ids: list[int] = field(default_factory=list)

    def validate(self) -> None:
        """Check content rules.

        Raises:
            ValidationError: On the first rule that fails.
        """
        if not self.title.strip():
            raise ValidationError("Title is required")
        if not self.body.strip():
            raise ValidationError("Description is required")
        if self.audience_ids and self.visibility != Visibility.RESTRICTED:
            raise ValidationError("An audience can only be selected for restricted posts")

        if self.type == PostType.ANNOUNCEMENT:
            for name in _EVENT_ONLY_FIELDS:
                if getattr(self, name) is not None:
                    raise ValidationError(f"'{name}' is only valid on events")
            if self.tags:
                raise ValidationError("'tags' is only valid on events")
            return

        if self.start_at is None:
            raise ValidationError("Start date is required for events")
        if not (self.venue or "").strip():
            raise ValidationError("Venue is required for events")
        if self.end_at is not None and as_utc(self.end_at) < as_utc(self.start_at):
            raise ValidationError("End date must be after start date")
        if self.link:
            try:
                self.link = str(_HTTP_URL.validate_python(self.link))
            except PydanticValidationError:
                raise ValidationError("Invalid URL format for link") from None
        if self.max_slots is not None and self.max_slots <= 0:
            raise ValidationError("maxSlots must be a positive number")
        if self.scope == SourceScope.CLUB and not self.tags:
            raise ValidationError("At least one tag is required for club events")


def _clean_tags(tags: list[str]) -> list[str]:
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


def _utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class PostService:
    """Create, edit and read posts on behalf of an actor."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PostRepository(db)

    def _resolve_scope(
        self,
        actor: Capabilities,
        payload: PostCreate,
    ) -> tuple[int, int | None]:
        """Return ``(institution_id, club_id)`` for a new post."""
        if payload.scope == SourceScope.CLUB:
            if payload.club_id is None:
                raise ValidationError("club_id is required for club posts")
            club = self.db.get(Club, payload.club_id)
            if club is None or club.status != ClubStatus.APPROVED:
                raise NotFound("Club not found or not approved")
            if payload.institution_id not in (None, club.institution_id):
                raise ValidationError("Club does not belong to the given institution")
            return club.institution_id, club.id

        if payload.club_id is not None:
            raise ValidationError("club_id only applies to club posts")
        institution_id = payload.institution_id or actor.institution_id
        if institution_id is None:
            raise ValidationError("institution_id is required")
        return institution_id, None

    def create(self, actor: Capabilities, payload: PostCreate) -> Post:
        """Create a post in its initial lifecycle status.

        Args:
            actor: Capabilities of the author.
            payload: Validated request body.

        Returns:
            The persisted post.

        Raises:
            ValidationError: Missing or inconsistent fields.
            NotFound: The club does not exist or is not approved.
            Forbidden: The actor cannot author content in the requested scope.
        """
        institution_id, club_id = self._resolve_scope(actor, payload)
        if not actor.can_create_in(payload.scope, institution_id, club_id):
            raise Forbidden("Not allowed to post in this scope")

        status, origin = initial_status(payload.scope, payload.status)
        content = PostContent(
            type=payload.type,
            scope=payload.scope,
            title=payload.title,
            body=payload.body,
            visibility=payload.visibility,
            image_ref=payload.image_ref,
            start_at=payload.start_at,
            end_at=payload.end_at,
            venue=payload.venue,
            link=payload.link,
            max_slots=payload.max_slots,
            tags=_clean_tags(payload.tags),
            audience_ids=list(payload.audience_ids),
        )
        content.validate()

        post = Post(
            type=content.type,
            title=content.title.strip(),
            body=content.body,
            image_ref=content.image_ref,
            author_id=actor.user_id,
            source_scope=content.scope,
            institution_id=institution_id,
            club_id=club_id,
            visibility=content.visibility,
            status=status,
            origin=origin,
            start_at=_utc(content.start_at),
            end_at=_utc(content.end_at),
            venue=content.venue.strip() if content.venue else None,
            link=content.link,
            max_slots=content.max_slots,
            going_count=0,
            interested_count=0,
        )
        try:
            self.repo.add(post, tags=content.tags, audience=content.audience_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Post %s (%s, %s scope) created by user %s as %s",
            post.id,
            post.type.value,
            post.source_scope.value,
            actor.user_id,
            post.status.value,
        )
        self.db.refresh(post)
        return post

    def update(self, actor: Capabilities, post_id: int, changes: PostUpdate) -> Post:
        """Edit content fields of a post. The lifecycle status never changes here.

        Raises:
            NotFound: Post absent, not visible to the actor, or another author's draft.
            Forbidden: Actor is neither the author nor a moderator of the scope.
            ValidationError: The edited content breaks a content rule.
        """
        data: dict[str, Any] = changes.model_dump(exclude_unset=True)
        # These columns are not nullable; an explicit null means "leave as is".
        for name in ("title", "body", "visibility", "tags", "audience_ids"):
            if name in data and data[name] is None:
                del data[name]
        try:
            post = ensure_visible(self.repo.get_for_update(post_id), actor, moderation_view=True)
            if post.status == PostStatus.DRAFT and post.author_id != actor.user_id:
                raise NotFound("Post not found")
            if post.author_id != actor.user_id and not actor.can_moderate(post):
                raise Forbidden("Only the author or a moderator can edit this post")

            visibility = data.get("visibility", post.visibility)
            audience = data.get("audience_ids")
            if audience is None:
                audience = list(post.audience_ids) if visibility == Visibility.RESTRICTED else []
            content = PostContent(
                type=post.type,
                scope=post.source_scope,
                title=data.get("title", post.title),
                body=data.get("body", post.body),
                visibility=visibility,
                image_ref=data.get("image_ref", post.image_ref),
                start_at=data.get("start_at", post.start_at),
                end_at=data.get("end_at", post.end_at),
                venue=data.get("venue", post.venue),
                link=data.get("link", post.link),
                max_slots=data.get("max_slots", post.max_slots),
                tags=_clean_tags(data["tags"]) if "tags" in data else sorted(post.tag_names),
                audience_ids=list(audience),
            )
            content.validate()

            post.title = content.title.strip()
            post.body = content.body
            post.visibility = content.visibility
            post.image_ref = content.image_ref
            if post.type == PostType.EVENT:
                post.start_at = _utc(content.start_at)
                post.end_at = _utc(content.end_at)
                post.venue = content.venue.strip() if content.venue else None
                post.link = content.link
                post.max_slots = content.max_slots
                self.repo.replace_tags(post, content.tags)
            self.repo.replace_audience(post, content.audience_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Post %s edited by user %s (%s)", post_id, actor.user_id, ", ".join(sorted(data)))
        self.db.refresh(post)
        return post

    def get(self, actor: Capabilities, post_id: int) -> Post:
        """Return a post the actor can see, or raise NotFound."""
        return ensure_visible(self.repo.get_by_id(post_id), actor)
