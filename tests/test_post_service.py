"""Tests for post content rules and editing."""

import pytest

from campus_feed.core.errors import NotFound, ValidationError
from campus_feed.models import PostStatus
from campus_feed.schemas.post import PostCreate, PostUpdate
from campus_feed.services.post_service import PostService
from tests.conftest import event_payload


@pytest.mark.parametrize(
    "link",
    [
        "http://exa mple.com/x",
        "https://:80",
        "http://<script>/",
        "ftp://example.org/file",
        "example.org",
    ],
)
def test_malformed_links_are_rejected(campus, caps, db_session, link) -> None:
    service = PostService(db_session)

    with pytest.raises(ValidationError, match="Invalid URL format for link"):
        service.create(caps(campus.north_staff), PostCreate(**event_payload(link=link)))


def test_valid_link_is_stored_normalized(campus, make_post) -> None:
    post = make_post(campus.north_staff, link="HTTPS://Example.org")

    assert post.link == "https://example.org/"


def test_edit_rechecks_link(campus, live_event, caps, db_session) -> None:
    service = PostService(db_session)

    with pytest.raises(ValidationError):
        service.update(caps(campus.north_staff), live_event.id, PostUpdate(link="http://<script>/"))

    db_session.refresh(live_event)
    assert live_event.link is None


def test_staff_cannot_edit_someone_elses_draft(campus, make_post, caps, db_session) -> None:
    draft = make_post(campus.north_staff_employee, status=PostStatus.DRAFT)
    service = PostService(db_session)

    with pytest.raises(NotFound):
        service.update(caps(campus.north_staff), draft.id, PostUpdate(title="Taken over"))

    edited = service.update(caps(campus.north_staff_employee), draft.id, PostUpdate(title="Final"))
    assert edited.title == "Final"
    assert edited.status == PostStatus.DRAFT
