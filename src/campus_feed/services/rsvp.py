"""RSVP ledger with counters kept consistent under concurrent toggles.

Each ``set_rsvp`` call is one transaction that

1. locks the event row (``SELECT ... FOR UPDATE`` where supported),
2. writes the caller's ledger row with a compare-and-swap on its previous
   state (insert, ``UPDATE ... WHERE state = old`` or ``DELETE ... WHERE
   state = old``),
3. applies both counter deltas in a single ``UPDATE`` expressed in SQL, so
   no reader ever sees a decrement without its matching increment.

If another request changed the same ledger row in between, the CAS matches
no row (or the insert hits the primary key) and the whole transaction is
rolled back and replayed against the fresh state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import case, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_feed.core.errors import (
    CapacityExceeded,
    ConcurrencyConflict,
    Forbidden,
    InvalidTransition,
    NotFound,
)
from campus_feed.core.settings import settings
from campus_feed.models import LIVE_STATUSES, Post, Rsvp, RsvpState
from campus_feed.repositories.post_repo import PostRepository
from campus_feed.services.capabilities import Capabilities
from campus_feed.services.visibility import ensure_visible, is_visible

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Counters:
    going: int = 0
    interested: int = 0


@dataclass(frozen=True)
class RsvpResult:
    """Committed state of one user's RSVP plus the event's counters."""

    state: RsvpState | None
    counters: Counters


@dataclass
class MyEvents:
    going: list[Post] = field(default_factory=list)
    interested: list[Post] = field(default_factory=list)


class _LostRace(Exception):
    """The ledger row changed between read and write."""


def _delta(state: RsvpState | None, target: RsvpState | None, which: RsvpState) -> int:
    return int(target == which) - int(state == which)


class RsvpLedger:
    """Record attendance intent and keep the event counters in step."""

    def __init__(
        self,
        db: Session,
        *,
        enforce_capacity: bool | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.db = db
        self.repo = PostRepository(db)
        self.enforce_capacity = (
            settings.enforce_capacity if enforce_capacity is None else enforce_capacity
        )
        self.max_retries = settings.rsvp_max_retries if max_retries is None else max_retries

    def set_rsvp(
        self,
        actor: Capabilities,
        event_id: int,
        desired: RsvpState | None,
    ) -> RsvpResult:
        """Toggle the actor's RSVP on an event.

        Requesting the state already held clears it. ``None`` always clears.

        Raises:
            Forbidden: The actor's role cannot RSVP.
            NotFound: No such event, or the actor cannot see it.
            InvalidTransition: The event is not live.
            CapacityExceeded: ``going`` requested on a full event while
                capacity is enforced.
            ConcurrencyConflict: The row kept changing underneath us.
        """
        if not actor.can_rsvp:
            raise Forbidden("Only students and employees can RSVP")

        for attempt in range(1, self.max_retries + 1):
            try:
                previous, target = self._apply(actor, event_id, desired)
                self.db.commit()
            except (IntegrityError, _LostRace):
                self.db.rollback()
                logger.warning(
                    "RSVP race on event %s for user %s (attempt %d/%d)",
                    event_id,
                    actor.user_id,
                    attempt,
                    self.max_retries,
                )
                continue
            except Exception:
                self.db.rollback()
                raise

            counters = self.counters(event_id)
            logger.info(
                "RSVP user %s event %s: %s -> %s (going=%d, interested=%d)",
                actor.user_id,
                event_id,
                previous.value if previous else "none",
                target.value if target else "none",
                counters.going,
                counters.interested,
            )
            return RsvpResult(state=target, counters=counters)

        raise ConcurrencyConflict("RSVP kept changing concurrently; retry the request")

    def _apply(
        self,
        actor: Capabilities,
        event_id: int,
        desired: RsvpState | None,
    ) -> tuple[RsvpState | None, RsvpState | None]:
        post = self.repo.get_for_update(event_id)
        if post is not None and not post.is_event:
            post = None
        post = ensure_visible(post, actor)

        current = self.db.execute(
            select(Rsvp.state).where(Rsvp.post_id == event_id, Rsvp.user_id == actor.user_id)
        ).scalar_one_or_none()
        target = None if desired == current else desired
        if target is not None and not post.is_live:
            raise InvalidTransition("Event is not published")
        if target == current:
            return current, target

        self._write_row(event_id, actor.user_id, current, target)

        going = _delta(current, target, RsvpState.GOING)
        interested = _delta(current, target, RsvpState.INTERESTED)
        stmt = update(Post).where(Post.id == event_id)
        capped = self.enforce_capacity and going > 0
        if capped:
            stmt = stmt.where(or_(Post.max_slots.is_(None), Post.going_count < Post.max_slots))
        result = self.db.execute(
            stmt.values(
                going_count=Post.going_count + going,
                interested_count=Post.interested_count + interested,
            ).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            exists = self.db.execute(select(Post.id).where(Post.id == event_id)).first()
            if exists is None:
                raise NotFound("Post not found")
            if capped:
                logger.info("Event %s is full; RSVP by user %s rejected", event_id, actor.user_id)
                raise CapacityExceeded("Event is full")
            raise _LostRace()
        return current, target

    def _write_row(
        self,
        event_id: int,
        user_id: int,
        current: RsvpState | None,
        target: RsvpState | None,
    ) -> None:
        if current is None:
            # A concurrent insert of the same key surfaces as IntegrityError.
            self.db.execute(insert(Rsvp).values(post_id=event_id, user_id=user_id, state=target))
            return

        match = (Rsvp.post_id == event_id, Rsvp.user_id == user_id, Rsvp.state == current)
        if target is None:
            stmt = delete(Rsvp).where(*match)
        else:
            stmt = update(Rsvp).where(*match).values(state=target)
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise _LostRace()

    def counters(self, event_id: int) -> Counters:
        """Return the stored counters; zero if the event is gone."""
        row = self.db.execute(
            select(Post.going_count, Post.interested_count).where(Post.id == event_id)
        ).one_or_none()
        if row is None:
            return Counters()
        return Counters(going=row.going_count, interested=row.interested_count)

    def recount(self, event_id: int) -> Counters:
        """Aggregate the ledger rows directly, ignoring the stored counters."""
        row = self.db.execute(
            select(
                func.coalesce(func.sum(case((Rsvp.state == RsvpState.GOING, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Rsvp.state == RsvpState.INTERESTED, 1), else_=0)), 0),
            ).where(Rsvp.post_id == event_id)
        ).one()
        return Counters(going=int(row[0]), interested=int(row[1]))

    def states_for(self, user_id: int, event_ids: Iterable[int]) -> dict[int, RsvpState]:
        """Return ``{event_id: state}`` for the events the user has RSVP'd to."""
        ids = list(event_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(Rsvp.post_id, Rsvp.state).where(Rsvp.user_id == user_id, Rsvp.post_id.in_(ids))
        ).all()
        return {post_id: state for post_id, state in rows}

    def my_events(self, actor: Capabilities, *, limit: int | None = None) -> MyEvents:
        """Return the actor's live, visible events grouped by RSVP state."""
        limit = limit or settings.my_events_limit
        result = MyEvents()
        for state, bucket in ((RsvpState.GOING, result.going), (RsvpState.INTERESTED, result.interested)):
            posts = self.db.execute(
                select(Post)
                .join(Rsvp, Rsvp.post_id == Post.id)
                .where(
                    Rsvp.user_id == actor.user_id,
                    Rsvp.state == state,
                    Post.status.in_(LIVE_STATUSES),
                )
                .order_by(Post.start_at.asc(), Post.id.asc())
                .limit(limit)
                .execution_options(populate_existing=True)
            ).scalars()
            bucket.extend(post for post in posts if is_visible(post, actor))
        return result
