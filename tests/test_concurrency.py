"""Concurrent RSVP toggles against a file-backed database."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from campus_feed.core.errors import ConcurrencyConflict
from campus_feed.db.session import Base
from campus_feed.models import Institution, Role, RsvpState, User
from campus_feed.schemas.post import PostCreate
from campus_feed.services import rsvp as rsvp_module
from campus_feed.services.capabilities import Capabilities, resolve_capabilities
from campus_feed.services.post_service import PostService
from campus_feed.services.rsvp import RsvpLedger

from tests.conftest import event_payload

ROUNDS = 10
CROWD = 12


@pytest.fixture()
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(
        f"sqlite:///{tmp_path / 'campus.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # pysqlite defers BEGIN; take the write lock up front so that concurrent
    # transactions queue on the busy timeout instead of failing on upgrade.
    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record) -> None:  # pragma: no cover
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:  # pragma: no cover
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(file_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def seeded(session_factory: sessionmaker[Session]) -> tuple[int, list[Capabilities]]:
    """Create one live event and a crowd of students; return (event_id, students)."""
    with session_factory() as db:
        college = Institution(name="Concurrency College")
        db.add(college)
        db.flush()
        staff = User(display_name="Office", role=Role.INSTITUTION, institution_id=college.id)
        students = [
            User(display_name=f"Student {n}", role=Role.STUDENT, institution_id=college.id)
            for n in range(CROWD)
        ]
        db.add_all([staff, *students])
        db.commit()

        post = PostService(db).create(resolve_capabilities(db, staff), PostCreate(**event_payload()))
        return post.id, [resolve_capabilities(db, student) for student in students]


def _run_together(tasks: list[Callable[[], None]]) -> list[BaseException]:
    barrier = threading.Barrier(len(tasks))
    errors: list[BaseException] = []

    def _wrap(task: Callable[[], None]) -> None:
        barrier.wait()
        try:
            task()
        except BaseException as exc:  # collected and asserted by the caller
            errors.append(exc)

    threads = [threading.Thread(target=_wrap, args=(task,)) for task in tasks]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return errors


def _toggle(factory: sessionmaker[Session], actor: Capabilities, event_id: int, state) -> Callable[[], None]:
    def _task() -> None:
        with factory() as db:
            RsvpLedger(db).set_rsvp(actor, event_id, state)

    return _task


def test_same_user_conflicting_states_settle_on_one(session_factory, seeded) -> None:
    event_id, students = seeded
    student = students[0]

    for _ in range(ROUNDS):
        errors = _run_together(
            [
                _toggle(session_factory, student, event_id, RsvpState.GOING),
                _toggle(session_factory, student, event_id, RsvpState.INTERESTED),
            ]
        )
        assert errors == []

        with session_factory() as db:
            ledger = RsvpLedger(db)
            states = ledger.states_for(student.user_id, [event_id])
            counters = ledger.counters(event_id)
            assert counters == ledger.recount(event_id)
            # Whichever call ran second switched the first one's state.
            assert len(states) == 1
            assert counters.going + counters.interested == 1

            ledger.set_rsvp(student, event_id, None)


def test_crowd_rsvps_count_exactly(session_factory, seeded) -> None:
    event_id, students = seeded

    errors = _run_together(
        [_toggle(session_factory, student, event_id, RsvpState.GOING) for student in students]
    )
    assert errors == []

    with session_factory() as db:
        ledger = RsvpLedger(db)
        assert ledger.counters(event_id).going == CROWD
        assert ledger.counters(event_id) == ledger.recount(event_id)


def test_exhausted_retries_raise_conflict(session_factory, seeded, monkeypatch) -> None:
    event_id, students = seeded

    def _always_lose(self, *args, **kwargs) -> None:
        raise rsvp_module._LostRace()

    monkeypatch.setattr(RsvpLedger, "_write_row", _always_lose)

    with session_factory() as db:
        ledger = RsvpLedger(db, max_retries=3)
        with pytest.raises(ConcurrencyConflict):
            ledger.set_rsvp(students[0], event_id, RsvpState.GOING)
        assert ledger.counters(event_id) == ledger.recount(event_id)
        assert ledger.recount(event_id).going == 0
