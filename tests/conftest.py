# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-chorus-chat-tests-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from chorus_chat.api.v1.dependencies import get_session_scope
from chorus_chat.core.security import create_access_token
from chorus_chat.db.session import Base
from chorus_chat.db.session import get_db as app_get_session
from chorus_chat.main import app as fastapi_app
from chorus_chat.models import Conversation, User
from chorus_chat.realtime.connection import Connection
from chorus_chat.repositories.chat_repo import ChatRepository
from chorus_chat.services.call_signaling import CallSignalingRelay
from chorus_chat.services.message_relay import MessageRelay
from chorus_chat.services.notifications import NotificationService
from chorus_chat.services.presence import PresenceRegistry

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
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
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    @contextmanager
    def _session_scope_override() -> Iterator[Session]:
        yield db_session

    def _get_session_scope_override():
        return _session_scope_override

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_session_scope] = _get_session_scope_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_session_scope, None)


@pytest.fixture(autouse=True)
def presence(app: FastAPI) -> PresenceRegistry:
    """Give every test an empty presence registry shared with the app."""
    registry = PresenceRegistry()
    app.state.presence = registry
    app.state.call_signaling = CallSignalingRelay(registry)
    return registry


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(db_session: Session, username: str, first_name: str | None = None) -> User:
    user = User(username=username, first_name=first_name, avatar=f"https://cdn.test/{username}.png")
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def alice(db_session: Session) -> User:
    return _make_user(db_session, "alice", "Alice")


@pytest.fixture()
def bob(db_session: Session) -> User:
    return _make_user(db_session, "bob", "Bob")


@pytest.fixture()
def carol(db_session: Session) -> User:
    return _make_user(db_session, "carol")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def alice_auth(alice: User) -> dict[str, str]:
    """Return authorization headers for alice."""
    return auth_headers(alice)


@pytest.fixture()
def bob_auth(bob: User) -> dict[str, str]:
    """Return authorization headers for bob."""
    return auth_headers(bob)


@pytest.fixture()
def carol_auth(carol: User) -> dict[str, str]:
    """Return authorization headers for carol."""
    return auth_headers(carol)


@pytest.fixture()
def conversation(db_session: Session, alice: User, bob: User) -> Conversation:
    """Create the alice/bob conversation."""
    return ChatRepository(db_session).get_or_create_conversation(alice.id, bob.id)


@pytest.fixture()
def repository(db_session: Session) -> ChatRepository:
    return ChatRepository(db_session)


@pytest.fixture()
def relay(repository: ChatRepository, presence: PresenceRegistry) -> MessageRelay:
    return MessageRelay(repository, presence, NotificationService(repository, presence))


class FakeSocket:
    """Transport double that records every frame it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.send_json = AsyncMock(side_effect=self.sent.append)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        return [frame for frame in self.sent if name is None or frame["event"] == name]


@pytest.fixture()
def connect(presence: PresenceRegistry):
    """Register a fake connection for a user and return its transport."""

    def _connect(user_id: int) -> tuple[Connection, FakeSocket]:
        socket = FakeSocket()
        connection = Connection(socket)
        presence.register(user_id, connection)
        return connection, socket

    return _connect
