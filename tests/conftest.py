# tests/conftest.py
from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator, Iterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["BACKGROUND_WORKERS_ENABLED"] = "false"
os.environ["ENABLE_TEST_ROUTES"] = "true"

from essay_arena.api.v1.dependencies import get_settings
from essay_arena.core.settings import Settings
from essay_arena.db.session import Base, enable_sqlite_savepoints
from essay_arena.db.session import get_db as app_get_session
from essay_arena.main import app as fastapi_app
from essay_arena.models import Project
from essay_arena.realtime.registry import SessionRegistry

TEST_DB_URL = "sqlite://"
PROJECT_CODE = "ESSAY1"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with the stock game balance and test routes switched on."""
    return Settings(
        background_workers_enabled=False,
        enable_test_routes=True,
        default_review_cooldown_seconds=120,
        attack_offer_window_seconds=15,
        attack_expiry_grace_seconds=300,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, test_settings: Settings
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def project(db_session: Session) -> Project:
    record = Project(code=PROJECT_CODE, title="Argumentative essay", enabled=True)
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def make_websocket() -> Callable[..., AsyncMock]:
    """Build stand-ins for a Starlette WebSocket that record sent frames."""

    def _make(*, fail_send: bool = False) -> AsyncMock:
        websocket = AsyncMock()
        if fail_send:
            websocket.send_text.side_effect = RuntimeError("socket gone")
        return websocket

    return _make


@pytest.fixture()
def sent_events() -> Callable[[AsyncMock], list[dict[str, Any]]]:
    """Decode the JSON frames a fake websocket was sent."""

    def _decode(websocket: AsyncMock) -> list[dict[str, Any]]:
        return [json.loads(call.args[0]) for call in websocket.send_text.await_args_list]

    return _decode
