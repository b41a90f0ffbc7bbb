"""Visibility and audience resolution.

Pure functions of (post, viewer capabilities); nothing here touches the
database or mutates state.
"""

from __future__ import annotations

from campus_feed.core.errors import NotFound
from campus_feed.models import Post, PostStatus, Visibility
from campus_feed.services.capabilities import Capabilities

# Visible only to the author and to moderators of the post's scope.
_MODERATED_STATUSES = frozenset({PostStatus.PENDING, PostStatus.REJECTED, PostStatus.HIDDEN})


def audience_allows(post: Post, viewer: Capabilities) -> bool:
    """Apply the post's audience policy, ignoring moderation status."""
    if post.visibility == Visibility.PUBLIC:
        return True
    if post.visibility == Visibility.INSTITUTION:
        return viewer.institution_id is not None and viewer.institution_id == post.institution_id
    return viewer.can_view_restricted(post)


def is_visible(post: Post, viewer: Capabilities, *, moderation_view: bool = False) -> bool:
    """Decide whether ``viewer`` may see ``post``.

    Args:
        post: The post being checked.
        viewer: Capabilities of the requesting user.
        moderation_view: True for approval dashboards and moderation actions.
            Moderators of the post's scope then see it whatever its status or
            audience. Feeds always pass False.
    """
    is_author = post.author_id == viewer.user_id
    if moderation_view and viewer.can_moderate(post):
        return True

    if post.status == PostStatus.DRAFT:
        return is_author
    if post.status in _MODERATED_STATUSES:
        return is_author or viewer.can_moderate(post)

    if is_author:
        return True
    return audience_allows(post, viewer)


def ensure_visible(post: Post | None, viewer: Capabilities, *, moderation_view: bool = False) -> Post:
    """Return ``post`` or raise NotFound, never revealing that a hidden post exists."""
    if post is None or not is_visible(post, viewer, moderation_view=moderation_view):
        raise NotFound("Post not found")
    return post
