"""SQLAlchemy models for posts (events and announcements) and related attributes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_feed.db.session import Base
from campus_feed.db.time import utcnow


class PostType(str, Enum):
    EVENT = "event"
    ANNOUNCEMENT = "announcement"


class SourceScope(str, Enum):
    INSTITUTION = "institution"
    CLUB = "club"


class Visibility(str, Enum):
    """Audience policy, independent of moderation status."""

    PUBLIC = "public"
    INSTITUTION = "institution"
    RESTRICTED = "restricted"


class PostStatus(str, Enum):
    """Moderation and publication lifecycle value."""

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    APPROVED = "approved"
    REJECTED = "rejected"
    HIDDEN = "hidden"


class PostOrigin(str, Enum):
    """How a post first went live."""

    SELF_PUBLISHED = "self_published"
    MODERATED = "moderated"


# Feeds and counters treat both labels identically.
LIVE_STATUSES: frozenset[PostStatus] = frozenset({PostStatus.PUBLISHED, PostStatus.APPROVED})


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _enum(enum_cls: type[Enum]) -> SAEnum:
    return SAEnum(enum_cls, native_enum=False, length=16, values_callable=_values)


class Post(Base):
    """Primary content entity: an event or an announcement.

    Events carry schedule fields and denormalized RSVP counters. The counters
    are only ever changed by the RSVP ledger, in the same transaction as the
    ledger row they account for.
    """

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint("going_count >= 0", name="ck_post_going_count_nonnegative"),
        CheckConstraint("interested_count >= 0", name="ck_post_interested_count_nonnegative"),
        CheckConstraint(
            "max_slots IS NULL OR max_slots > 0",
            name="ck_post_max_slots_positive",
        ),
        Index("ix_post_feed", "status", "visibility", "created_at"),
        Index("ix_post_institution_id", "institution_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[PostType] = mapped_column(_enum(PostType), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    image_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
    )

    source_scope: Mapped[SourceScope] = mapped_column(_enum(SourceScope), nullable=False)
    institution_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("institution.id"),
        nullable=False,
    )
    club_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("club.id"),
        nullable=True,
    )

    visibility: Mapped[Visibility] = mapped_column(
        _enum(Visibility),
        nullable=False,
        default=Visibility.INSTITUTION,
    )
    status: Mapped[PostStatus] = mapped_column(_enum(PostStatus), nullable=False)
    # Set the first time the post goes live; survives hide/show.
    origin: Mapped[PostOrigin | None] = mapped_column(_enum(PostOrigin), nullable=True)

    # Event-only fields.
    start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    venue: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    going_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interested_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    tags: Mapped[list[PostTag]] = relationship(
        "PostTag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PostTag.name",
    )
    audience: Mapped[list[PostAudience]] = relationship(
        "PostAudience",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_event(self) -> bool:
        return self.type == PostType.EVENT

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    @property
    def tag_names(self) -> set[str]:
        """Return the event's tags as a set of names."""
        return {tag.name for tag in self.tags}

    @property
    def audience_ids(self) -> frozenset[int]:
        """Return the explicit allow-list of user ids for restricted posts."""
        return frozenset(entry.user_id for entry in self.audience)


class PostTag(Base):
    """Free-form tag attached to an event."""

    __tablename__ = "post_tag"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(Text, primary_key=True)


class PostAudience(Base):
    """Explicitly selected viewer of a restricted post."""

    __tablename__ = "post_audience"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
