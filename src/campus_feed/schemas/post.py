"""Post-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from campus_feed.db.time import as_utc
from campus_feed.models import PostOrigin, PostStatus, PostType, SourceScope, Visibility
from campus_feed.services.lifecycle import Action


class PostCreate(BaseModel):
    """Schema for creating a new event or announcement."""

    type: PostType
    title: str = Field("", max_length=300)
    body: str = Field("", max_length=10000)
    visibility: Visibility = Visibility.INSTITUTION
    scope: SourceScope = SourceScope.INSTITUTION
    institution_id: int | None = Field(None, description="Defaults to the author's institution")
    club_id: int | None = Field(None, description="Required for club-scoped posts")
    status: PostStatus | None = Field(
        None,
        description="Initial status for institution posts (draft, pending or published)",
    )
    image_ref: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    venue: str | None = None
    link: str | None = None
    max_slots: int | None = None
    tags: list[str] = Field(default_factory=list)
    audience_ids: list[int] = Field(
        default_factory=list,
        description="Explicit viewers of a restricted post",
    )

    model_config = ConfigDict(extra="forbid")


class PostUpdate(BaseModel):
    """Content edit. Status is deliberately absent; it only changes via transitions."""

    title: str | None = Field(None, max_length=300)
    body: str | None = Field(None, max_length=10000)
    visibility: Visibility | None = None
    image_ref: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    venue: str | None = None
    link: str | None = None
    max_slots: int | None = None
    tags: list[str] | None = None
    audience_ids: list[int] | None = None

    model_config = ConfigDict(extra="forbid")


class TransitionRequest(BaseModel):
    """Lifecycle action requested on a post."""

    action: Action


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    type: PostType
    title: str
    body: str
    image_ref: str | None
    created_at: datetime
    updated_at: datetime
    author_id: int
    source_scope: SourceScope
    institution_id: int
    club_id: int | None
    visibility: Visibility
    status: PostStatus
    origin: PostOrigin | None
    start_at: datetime | None = None
    end_at: datetime | None = None
    venue: str | None = None
    link: str | None = None
    max_slots: int | None = None
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _flatten_relationships(cls, data: object) -> object:
        if isinstance(data, dict):
            return data
        extracted: dict[str, object | None] = {}
        for field_name in cls.model_fields:
            if field_name == "tags":
                continue
            extracted[field_name] = getattr(data, field_name, None)
        extracted["tags"] = sorted(getattr(data, "tag_names", ()) or ())
        return extracted

    @field_validator("created_at", "updated_at", "start_at", "end_at")
    @classmethod
    def _attach_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands back naive values for timezone-aware columns.
        return as_utc(value) if value is not None else None

    model_config = ConfigDict(from_attributes=True)


class TransitionResponse(BaseModel):
    """Result of a lifecycle action; ``post`` is None after a delete."""

    ok: bool = True
    action: Action
    post: PostResponse | None
