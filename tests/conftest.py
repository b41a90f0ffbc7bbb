# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from campus_feed.core.security import create_access_token
from campus_feed.db.session import Base
from campus_feed.db.session import get_db as app_get_session
from campus_feed.db.time import utcnow
from campus_feed.main import app as fastapi_app
from campus_feed.models import (
    Club,
    ClubAdvisor,
    ClubMember,
    ClubRole,
    ClubStatus,
    Institution,
    Post,
    PostStatus,
    PostType,
    Role,
    SourceScope,
    User,
    Visibility,
)
from campus_feed.schemas.post import PostCreate
from campus_feed.services.capabilities import Capabilities, resolve_capabilities
from campus_feed.services.post_service import PostService

TEST_DB_URL = "sqlite://"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@dataclass
class Campus:
    """Two institutions, their staff and students, and a couple of clubs."""

    north: Institution
    south: Institution
    north_staff: User
    north_staff_employee: User
    north_student: User
    north_member: User
    north_officer: User
    north_advisor: User
    south_staff: User
    south_student: User
    admin: User
    chess_club: Club
    pending_club: Club


def _user(db: Session, name: str, role: Role, institution: Institution | None, **extra: Any) -> User:
    user = User(
        display_name=name,
        role=role,
        institution_id=institution.id if institution else None,
        **extra,
    )
    db.add(user)
    return user


@pytest.fixture()
def campus(db_session: Session) -> Campus:
    """Seed reference data shared by most tests."""
    north = Institution(name="North College")
    south = Institution(name="South University")
    db_session.add_all([north, south])
    db_session.flush()

    users = {
        "north_staff": _user(db_session, "North Office", Role.INSTITUTION, north),
        "north_staff_employee": _user(
            db_session, "Registrar", Role.EMPLOYEE, north, is_staff=True
        ),
        "north_student": _user(db_session, "Ada", Role.STUDENT, north),
        "north_member": _user(db_session, "Bea", Role.STUDENT, north),
        "north_officer": _user(db_session, "Cy", Role.STUDENT, north),
        "north_advisor": _user(db_session, "Dr. Eve", Role.EMPLOYEE, north),
        "south_staff": _user(db_session, "South Office", Role.INSTITUTION, south),
        "south_student": _user(db_session, "Finn", Role.STUDENT, south),
        "admin": _user(db_session, "Root", Role.SUPER_ADMIN, None),
    }
    chess_club = Club(institution_id=north.id, name="Chess Club", status=ClubStatus.APPROVED)
    pending_club = Club(institution_id=north.id, name="Go Club", status=ClubStatus.PENDING)
    db_session.add_all([chess_club, pending_club])
    db_session.flush()

    db_session.add_all(
        [
            ClubMember(
                club_id=chess_club.id,
                user_id=users["north_member"].id,
                role=ClubRole.MEMBER,
            ),
            ClubMember(
                club_id=chess_club.id,
                user_id=users["north_officer"].id,
                role=ClubRole.OFFICER,
            ),
            ClubAdvisor(club_id=chess_club.id, user_id=users["north_advisor"].id),
        ]
    )
    db_session.commit()
    return Campus(north=north, south=south, chess_club=chess_club, pending_club=pending_club, **users)


@pytest.fixture()
def caps(db_session: Session) -> Callable[[User], Capabilities]:
    """Resolve the capability set for a seeded user."""

    def _caps(user: User) -> Capabilities:
        return resolve_capabilities(db_session, user)

    return _caps


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return authorization headers for a seeded user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def event_payload(**overrides: Any) -> dict[str, Any]:
    """Build a valid institution event creation payload."""
    payload: dict[str, Any] = {
        "type": PostType.EVENT,
        "title": "Career Fair",
        "body": "Meet employers from the region.",
        "visibility": Visibility.INSTITUTION,
        "scope": SourceScope.INSTITUTION,
        "start_at": utcnow() + timedelta(days=3),
        "venue": "Main Hall",
        "tags": ["careers"],
    }
    payload.update(overrides)
    return payload


def announcement_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": PostType.ANNOUNCEMENT,
        "title": "Library hours",
        "body": "The library is open until midnight during exams.",
        "visibility": Visibility.INSTITUTION,
        "scope": SourceScope.INSTITUTION,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_post(
    db_session: Session,
    caps: Callable[[User], Capabilities],
) -> Callable[..., Post]:
    """Create a post through the service layer.

    ``kind`` selects the payload template; remaining keyword arguments
    override its fields.
    """

    def _make(author: User, kind: str = "event", **overrides: Any) -> Post:
        template = event_payload if kind == "event" else announcement_payload
        payload = PostCreate(**template(**overrides))
        return PostService(db_session).create(caps(author), payload)

    return _make


@pytest.fixture()
def live_event(campus: Campus, make_post: Callable[..., Post]) -> Post:
    """A published institution event at North, visible to North users."""
    post = make_post(campus.north_staff)
    assert post.status == PostStatus.PUBLISHED
    return post
