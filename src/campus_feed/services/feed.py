"""Feed assembly for the personalized and global newsfeeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from campus_feed.core.settings import settings
from campus_feed.db.time import utcnow
from campus_feed.models import Post, RsvpState
from campus_feed.repositories.post_repo import PostRepository
from campus_feed.services.capabilities import Capabilities
from campus_feed.services.rsvp import Counters, RsvpLedger
from campus_feed.services.visibility import is_visible

logger = logging.getLogger(__name__)


class FeedMode(str, Enum):
    FOR_YOU = "for-you"
    GLOBAL = "global"


class FeedOrder(str, Enum):
    RECENT = "recent"
    UPCOMING = "upcoming"


# Newest first; id breaks ties so pages are stable.
RECENT_ORDER: tuple[ColumnElement, ...] = (Post.created_at.desc(), Post.id.desc())
# Soonest event first; announcements (no start) trail, newest first.
UPCOMING_ORDER: tuple[ColumnElement, ...] = (
    Post.start_at.is_(None).asc(),
    Post.start_at.asc(),
    Post.created_at.desc(),
    Post.id.desc(),
)

ORDERINGS: dict[FeedOrder, tuple[ColumnElement, ...]] = {
    FeedOrder.RECENT: RECENT_ORDER,
    FeedOrder.UPCOMING: UPCOMING_ORDER,
}


@dataclass(frozen=True)
class FeedItem:
    """A feed entry. Events carry the viewer's RSVP state and the counters."""

    post: Post
    rsvp_state: RsvpState | None = None
    counters: Counters | None = None


@dataclass(frozen=True)
class FeedPage:
    items: list[FeedItem]
    offset: int
    limit: int
    next_offset: int | None


class FeedAssembler:
    """Select, authorize, order and annotate feed candidates. Read-only."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PostRepository(db)
        self.ledger = RsvpLedger(db)

    def assemble(
        self,
        viewer: Capabilities,
        mode: FeedMode,
        *,
        limit: int | None = None,
        offset: int = 0,
        order_by: tuple[ColumnElement, ...] = RECENT_ORDER,
        now: datetime | None = None,
    ) -> FeedPage:
        """Return one page of the viewer's feed.

        Args:
            viewer: Capabilities of the requesting user.
            mode: ``for-you`` (everything the viewer is entitled to) or
                ``global`` (public content across institutions).
            limit: Page size, capped at ``settings.feed_max_limit``.
            offset: Number of candidates to skip.
            order_by: Ordering clauses; see :data:`RECENT_ORDER` and
                :data:`UPCOMING_ORDER`.
            now: Reference time for the recency window.
        """
        limit = min(limit or settings.feed_default_limit, settings.feed_max_limit)
        offset = max(offset, 0)

        if mode == FeedMode.GLOBAL:
            audience = self.repo.public_filter()
        else:
            audience = self.repo.entitled_filter(
                user_id=viewer.user_id,
                institution_id=viewer.institution_id,
                club_ids=viewer.club_ids,
            )

        since = None
        if settings.feed_window_days > 0:
            since = (now or utcnow()) - timedelta(days=settings.feed_window_days)

        # One extra row tells us whether another page exists.
        candidates = self.repo.feed_candidates(
            audience_filter=audience,
            since=since,
            order_by=order_by,
            limit=limit + 1,
            offset=offset,
        )
        has_more = len(candidates) > limit
        candidates = candidates[:limit]

        posts = [post for post in candidates if is_visible(post, viewer)]
        dropped = len(candidates) - len(posts)
        if dropped:
            logger.warning(
                "Feed for user %s dropped %d candidate(s) failing the visibility check",
                viewer.user_id,
                dropped,
            )

        states = self.ledger.states_for(viewer.user_id, [post.id for post in posts if post.is_event])
        items = [
            FeedItem(
                post=post,
                rsvp_state=states.get(post.id),
                counters=Counters(post.going_count, post.interested_count),
            )
            if post.is_event
            else FeedItem(post=post)
            for post in posts
        ]
        return FeedPage(
            items=items,
            offset=offset,
            limit=limit,
            next_offset=offset + limit if has_more else None,
        )
