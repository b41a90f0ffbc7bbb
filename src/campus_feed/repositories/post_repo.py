"""Data access helpers for working with posts."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import and_, delete, false, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from campus_feed.models import (
    LIVE_STATUSES,
    Post,
    PostAudience,
    PostStatus,
    PostTag,
    PostType,
    Rsvp,
    Visibility,
)

__all__ = ["PostRepository"]


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int) -> Post | None:
        """Return a post by identifier."""
        return self.session.get(Post, post_id)

    def get_for_update(self, post_id: int) -> Post | None:
        """Return a freshly loaded post, row-locked where the backend supports it."""
        result = self.session.execute(
            select(Post)
            .where(Post.id == post_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def add(self, post: Post, *, tags: Iterable[str] = (), audience: Iterable[int] = ()) -> Post:
        """Stage a new post with its tags and allow-list and flush to assign an id."""
        post.tags = [PostTag(name=name) for name in sorted(set(tags))]
        post.audience = [PostAudience(user_id=user_id) for user_id in sorted(set(audience))]
        self.session.add(post)
        self.session.flush()
        return post

    def replace_tags(self, post: Post, tags: Iterable[str]) -> None:
        """Sync the post's tags to ``tags`` without re-inserting unchanged rows."""
        wanted = set(tags)
        post.tags = [tag for tag in post.tags if tag.name in wanted]
        existing = post.tag_names
        post.tags.extend(PostTag(name=name) for name in sorted(wanted - existing))

    def replace_audience(self, post: Post, audience: Iterable[int]) -> None:
        """Sync the explicit allow-list to ``audience``."""
        wanted = set(audience)
        post.audience = [entry for entry in post.audience if entry.user_id in wanted]
        existing = post.audience_ids
        post.audience.extend(PostAudience(user_id=user_id) for user_id in sorted(wanted - existing))

    def delete_with_rsvps(self, post: Post) -> int:
        """Hard-delete a post and every RSVP row recorded against it.

        Returns:
            Number of RSVP rows removed.
        """
        result = self.session.execute(
            delete(Rsvp)
            .where(Rsvp.post_id == post.id)
            .execution_options(synchronize_session=False)
        )
        self.session.delete(post)
        self.session.flush()
        return result.rowcount or 0

    def feed_candidates(
        self,
        *,
        audience_filter: ColumnElement[bool],
        since: datetime | None,
        order_by: Sequence[ColumnElement],
        limit: int,
        offset: int = 0,
    ) -> list[Post]:
        """Return live posts matching ``audience_filter`` in the caller's order.

        Args:
            audience_filter: SQL predicate selecting the candidate audience.
            since: Recency cut-off; events compare ``start_at``, announcements
                ``created_at``. None disables the window.
            order_by: Ordering clauses supplied by the caller.
            limit: Maximum rows to return.
            offset: Rows to skip.
        """
        stmt = select(Post).where(Post.status.in_(LIVE_STATUSES), audience_filter)
        if since is not None:
            stmt = stmt.where(
                or_(
                    and_(Post.type == PostType.EVENT, Post.start_at >= since),
                    and_(Post.type == PostType.ANNOUNCEMENT, Post.created_at >= since),
                )
            )
        stmt = (
            stmt.order_by(*order_by)
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(self.session.execute(stmt).scalars())

    @staticmethod
    def public_filter() -> ColumnElement[bool]:
        return Post.visibility == Visibility.PUBLIC

    @staticmethod
    def entitled_filter(
        *,
        user_id: int,
        institution_id: int | None,
        club_ids: Iterable[int],
    ) -> ColumnElement[bool]:
        """Predicate for everything a viewer's memberships entitle them to see."""
        institution_clause = (
            and_(Post.visibility == Visibility.INSTITUTION, Post.institution_id == institution_id)
            if institution_id is not None
            else false()
        )
        allow_listed = select(PostAudience.post_id).where(PostAudience.user_id == user_id)
        club_ids = list(club_ids)
        restricted_audience = Post.id.in_(allow_listed)
        if club_ids:
            restricted_audience = or_(restricted_audience, Post.club_id.in_(club_ids))
        return or_(
            Post.visibility == Visibility.PUBLIC,
            institution_clause,
            and_(Post.visibility == Visibility.RESTRICTED, restricted_audience),
        )

    def pending_for_review(
        self,
        *,
        institution_ids: Iterable[int] | None,
        limit: int,
        offset: int = 0,
    ) -> list[Post]:
        """Return pending posts, oldest first.

        Args:
            institution_ids: Restrict to these institutions; None means all.
        """
        stmt = select(Post).where(Post.status == PostStatus.PENDING)
        if institution_ids is not None:
            stmt = stmt.where(Post.institution_id.in_(list(institution_ids)))
        stmt = stmt.order_by(Post.created_at.asc(), Post.id.asc()).offset(offset).limit(limit)
        return list(self.session.execute(stmt).scalars())
