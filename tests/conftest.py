# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-entropy-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from huddle.core.security import create_access_token
from huddle.db.session import Base
from huddle.db.session import get_db as app_get_session
from huddle.main import app as fastapi_app
from huddle.models import (
    Comment,
    Community,
    CommunityChatMessage,
    CommunityMember,
    Friendship,
    Post,
    Profile,
)

TEST_DB_URL = "sqlite://"
BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
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


def at(minutes: int) -> datetime:
    """Return a timestamp ``minutes`` after the fixed test epoch."""
    return BASE_TIME + timedelta(minutes=minutes)


def bearer(profile_id: str) -> dict[str, str]:
    """Return authorization headers for ``profile_id``."""
    return {"Authorization": f"Bearer {create_access_token(profile_id)}"}


@pytest.fixture()
def make_row(db_session: Session) -> Callable[..., Any]:
    """Persist and return a model instance built from keyword arguments."""

    def _make(model: type, **fields: Any) -> Any:
        row = model(**fields)
        db_session.add(row)
        db_session.commit()
        return row

    return _make


@pytest.fixture()
def alice(make_row) -> Profile:
    return make_row(Profile, username="alice", avatar_url="https://cdn.test/alice.png")


@pytest.fixture()
def bob(make_row) -> Profile:
    return make_row(Profile, username="bob", avatar_url=None)


@pytest.fixture()
def carol(make_row) -> Profile:
    return make_row(Profile, username="carol", avatar_url="https://cdn.test/carol.png")


@pytest.fixture()
def community(make_row, alice: Profile) -> Community:
    """A community led by alice."""
    return make_row(Community, name="Night Owls", image_url=None, creator_id=alice.id, created_at=at(0))


@pytest.fixture()
def membership(make_row, community: Community, bob: Profile) -> CommunityMember:
    return make_row(CommunityMember, community_id=community.id, profile_id=bob.id, role="member")


@pytest.fixture()
def post(make_row, alice: Profile) -> Post:
    return make_row(Post, author_id=alice.id, content="first post", created_at=at(0))


@pytest.fixture()
def make_message(make_row, community: Community) -> Callable[..., CommunityChatMessage]:
    def _make(user_id: str, minute: int, room_id: str | None = None, **fields: Any):
        return make_row(
            CommunityChatMessage,
            community_id=fields.pop("community_id", community.id),
            user_id=user_id,
            room_id=room_id,
            content=fields.pop("content", f"message at {minute}"),
            created_at=at(minute),
        )

    return _make


@pytest.fixture()
def make_comment(make_row, post: Post) -> Callable[..., Comment]:
    def _make(author_id: str, minute: int, content: str = "nice"):
        return make_row(
            Comment, post_id=post.id, author_id=author_id, content=content, created_at=at(minute)
        )

    return _make


@pytest.fixture()
def befriend(make_row) -> Callable[..., Friendship]:
    def _make(sender: Profile, receiver: Profile, status: str = "accepted", minute: int = 0):
        return make_row(
            Friendship,
            sender_id=sender.id,
            receiver_id=receiver.id,
            status=status,
            created_at=at(minute),
        )

    return _make


@pytest.fixture()
def auth_for() -> Callable[[str], dict[str, str]]:
    """Return a factory for bearer headers of a given profile id."""
    return bearer
