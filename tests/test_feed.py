"""Tests for feed assembly."""

from datetime import timedelta

import pytest

from campus_feed.core.settings import settings
from campus_feed.db.time import utcnow
from campus_feed.models import PostStatus, RsvpState, SourceScope, Visibility
from campus_feed.services.feed import UPCOMING_ORDER, FeedAssembler, FeedMode
from campus_feed.services.lifecycle import Action, ApprovalService
from campus_feed.services.rsvp import Counters, RsvpLedger


def _ids(page) -> list[int]:
    return [item.post.id for item in page.items]


def test_club_post_appears_only_after_approval(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    post = make_post(
        campus.north_officer,
        scope=SourceScope.CLUB,
        club_id=campus.chess_club.id,
        visibility=Visibility.PUBLIC,
        tags=["chess"],
    )
    assert post.status == PostStatus.PENDING

    for viewer in (campus.north_student, campus.south_student, campus.north_officer):
        assert post.id not in _ids(feed.assemble(caps(viewer), FeedMode.GLOBAL))
        assert post.id not in _ids(feed.assemble(caps(viewer), FeedMode.FOR_YOU))

    ApprovalService(db_session).transition(caps(campus.north_staff), post.id, Action.APPROVE)

    for viewer in (campus.north_student, campus.south_student, campus.admin):
        assert post.id in _ids(feed.assemble(caps(viewer), FeedMode.GLOBAL))


def test_institution_announcement_scoped_to_institution(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    post = make_post(campus.north_staff, kind="announcement", status=PostStatus.PUBLISHED)

    assert post.id in _ids(feed.assemble(caps(campus.north_student), FeedMode.FOR_YOU))
    assert post.id not in _ids(feed.assemble(caps(campus.south_student), FeedMode.FOR_YOU))
    assert post.id not in _ids(feed.assemble(caps(campus.north_student), FeedMode.GLOBAL))


def test_restricted_post_excluded_outside_allow_list(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    post = make_post(
        campus.north_staff,
        visibility=Visibility.RESTRICTED,
        audience_ids=[campus.north_member.id],
    )

    assert post.id in _ids(feed.assemble(caps(campus.north_member), FeedMode.FOR_YOU))
    assert post.id not in _ids(feed.assemble(caps(campus.north_student), FeedMode.FOR_YOU))


def test_restricted_club_post_reaches_club_members(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    post = make_post(
        campus.north_officer,
        scope=SourceScope.CLUB,
        club_id=campus.chess_club.id,
        visibility=Visibility.RESTRICTED,
        tags=["chess"],
    )
    ApprovalService(db_session).transition(caps(campus.north_staff), post.id, Action.APPROVE)

    assert post.id in _ids(feed.assemble(caps(campus.north_member), FeedMode.FOR_YOU))
    assert post.id in _ids(feed.assemble(caps(campus.north_advisor), FeedMode.FOR_YOU))
    assert post.id not in _ids(feed.assemble(caps(campus.north_student), FeedMode.FOR_YOU))
    # Moderators do not get a feed bypass.
    assert post.id not in _ids(feed.assemble(caps(campus.north_staff), FeedMode.FOR_YOU))


def test_global_mode_is_public_only(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    public = make_post(campus.south_staff, visibility=Visibility.PUBLIC)
    make_post(campus.north_staff)

    assert _ids(feed.assemble(caps(campus.north_student), FeedMode.GLOBAL)) == [public.id]


def test_hidden_and_draft_posts_never_in_feed(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    hidden = make_post(campus.north_staff)
    ApprovalService(db_session).transition(caps(campus.north_staff), hidden.id, Action.HIDE)
    draft = make_post(campus.north_staff, status=PostStatus.DRAFT)

    for viewer in (campus.north_student, campus.north_staff):
        ids = _ids(feed.assemble(caps(viewer), FeedMode.FOR_YOU))
        assert hidden.id not in ids
        assert draft.id not in ids


def test_recent_order_and_pagination(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    posts = [make_post(campus.north_staff, kind="announcement", title=f"Notice {n}") for n in range(5)]
    expected = [post.id for post in reversed(posts)]
    viewer = caps(campus.north_student)

    first = feed.assemble(viewer, FeedMode.FOR_YOU, limit=2)
    second = feed.assemble(viewer, FeedMode.FOR_YOU, limit=2, offset=first.next_offset)
    last = feed.assemble(viewer, FeedMode.FOR_YOU, limit=2, offset=second.next_offset)

    assert _ids(first) + _ids(second) + _ids(last) == expected
    assert first.next_offset == 2
    assert last.next_offset is None


def test_upcoming_order_puts_soonest_event_first(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    later = make_post(campus.north_staff, start_at=utcnow() + timedelta(days=10))
    sooner = make_post(campus.north_staff, start_at=utcnow() + timedelta(days=1))
    note = make_post(campus.north_staff, kind="announcement")

    page = feed.assemble(caps(campus.north_student), FeedMode.FOR_YOU, order_by=UPCOMING_ORDER)

    assert _ids(page) == [sooner.id, later.id, note.id]


def test_events_outside_window_are_dropped(campus, make_post, caps, db_session) -> None:
    feed = FeedAssembler(db_session)
    past = make_post(
        campus.north_staff,
        start_at=utcnow() - timedelta(days=settings.feed_window_days + 5),
    )
    current = make_post(campus.north_staff)

    ids = _ids(feed.assemble(caps(campus.north_student), FeedMode.FOR_YOU))

    assert current.id in ids
    assert past.id not in ids


def test_events_annotated_with_rsvp_and_counters(campus, live_event, make_post, caps, db_session) -> None:
    note = make_post(campus.north_staff, kind="announcement")
    student = caps(campus.north_student)
    RsvpLedger(db_session).set_rsvp(student, live_event.id, RsvpState.INTERESTED)
    RsvpLedger(db_session).set_rsvp(caps(campus.north_member), live_event.id, RsvpState.GOING)

    page = FeedAssembler(db_session).assemble(student, FeedMode.FOR_YOU)
    items = {item.post.id: item for item in page.items}

    assert items[live_event.id].rsvp_state == RsvpState.INTERESTED
    assert items[live_event.id].counters == Counters(going=1, interested=1)
    assert items[note.id].rsvp_state is None
    assert items[note.id].counters is None


@pytest.mark.parametrize("limit", [0, 10_000])
def test_limit_is_clamped(campus, live_event, caps, db_session, limit) -> None:
    page = FeedAssembler(db_session).assemble(caps(campus.north_student), FeedMode.FOR_YOU, limit=limit)

    assert 1 <= page.limit <= settings.feed_max_limit
