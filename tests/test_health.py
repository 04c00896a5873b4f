# tests/test_health.py
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from essay_arena.init_db import seed_project


def test_health(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_root_describes_the_service(client: TestClient) -> None:
    data = client.get("/").json()
    assert data["websocket"] == "/ws"
    assert "version" in data


def test_seed_project_normalizes_and_updates(db_session: Session) -> None:
    created = seed_project(db_session, " essay9 ", "Persuasive essay")
    updated = seed_project(db_session, "ESSAY9", review_cooldown_seconds=30)

    assert created.code == "ESSAY9"
    assert updated is created
    assert updated.title == "Persuasive essay"
    assert updated.review_cooldown_seconds == 30
