"""Per-user attendance intent on events."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from campus_feed.db.session import Base
from campus_feed.db.time import utcnow


class RsvpState(str, Enum):
    """Stored RSVP states. Absence of a row means no RSVP."""

    GOING = "going"
    INTERESTED = "interested"


class Rsvp(Base):
    """Ledger row for one user's RSVP to one event."""

    __tablename__ = "rsvp"
    __table_args__ = (
        CheckConstraint("state IN ('going', 'interested')", name="ck_rsvp_state"),
        Index("ix_rsvp_post_state", "post_id", "state"),
        Index("ix_rsvp_user_id", "user_id"),
    )

    # Composite primary key allows one RSVP per user per event.
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
    state: Mapped[RsvpState] = mapped_column(
        SAEnum(
            RsvpState,
            native_enum=False,
            length=16,
            create_constraint=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
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
