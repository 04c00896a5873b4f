"""Tests for the game HTTP endpoints."""

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from essay_arena.models import Project
from essay_arena.services.player_state import PlayerStateStore

BASE = "/api/v1/game/projects"


def _seed(db: Session, name: str, **tokens: int) -> None:
    balances = {"review": 3, "attack": 0, "shield": 1, **tokens}
    PlayerStateStore(db).set_tokens("ESSAY1", name, **balances)
    db.commit()


def test_init_player_returns_default_state(client: TestClient, project: Project) -> None:
    response = client.post(f"{BASE}/{project.code}/player/init", json={"userName": "Alice"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "reviewTokens": 3,
        "attackTokens": 0,
        "shieldTokens": 1,
        "cooldownRemaining": 0,
    }


def test_project_code_is_normalized(client: TestClient, project: Project) -> None:
    response = client.get(f"{BASE}/essay1/player", params={"userName": "Alice"})

    assert response.status_code == status.HTTP_200_OK


def test_unknown_project_is_404(client: TestClient) -> None:
    response = client.get(f"{BASE}/NOPE/player", params={"userName": "Alice"})

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_disabled_project_is_403(client: TestClient, db_session: Session) -> None:
    db_session.add(Project(code="OFF", title="Archived", enabled=False))
    db_session.commit()

    response = client.get(f"{BASE}/OFF/player", params={"userName": "Alice"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_missing_user_name_is_rejected(client: TestClient, project: Project) -> None:
    response = client.get(f"{BASE}/{project.code}/player")

    assert response.status_code == 422


def test_blank_user_name_is_rejected(client: TestClient, project: Project) -> None:
    response = client.post(f"{BASE}/{project.code}/player/init", json={"userName": "   "})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_review_closes_gate_until_cooldown(client: TestClient, project: Project) -> None:
    gate = client.get(f"{BASE}/{project.code}/review-gate", params={"userName": "Alice"})
    assert gate.json() == {"allowed": True, "remainingMs": 0}

    first = client.post(f"{BASE}/{project.code}/reviews", json={"userName": "Alice"})
    assert first.status_code == status.HTTP_200_OK
    assert first.json()["reviewTokens"] == 2
    assert 0 < first.json()["cooldownRemaining"] <= 120_000

    gate = client.get(f"{BASE}/{project.code}/review-gate", params={"userName": "alice"})
    assert gate.json()["allowed"] is False

    second = client.post(f"{BASE}/{project.code}/reviews", json={"userName": "Alice"})
    assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS


def test_review_without_tokens_is_rejected(
    client: TestClient, project: Project, db_session: Session
) -> None:
    _seed(db_session, "Alice", review=0)

    response = client.post(f"{BASE}/{project.code}/reviews", json={"userName": "Alice"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_heartbeat_and_active_players(
    client: TestClient, project: Project, db_session: Session
) -> None:
    _seed(db_session, "Alice")
    _seed(db_session, "Bob", review=2)
    for name, session_id in (("Alice", "tab-a"), ("Bob", "tab-b")):
        response = client.post(
            f"{BASE}/{project.code}/heartbeat",
            json={"userName": name, "sessionId": session_id},
        )
        assert response.json() == {"success": True}

    response = client.get(f"{BASE}/{project.code}/active-players", params={"userName": "Alice"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == [
        {"userName": "Bob", "reviewTokens": 2, "shieldTokens": 1, "canAttack": True}
    ]


def test_attack_and_defend_flow(client: TestClient, project: Project, db_session: Session) -> None:
    _seed(db_session, "Alice", review=1, attack=1, shield=0)
    _seed(db_session, "Bob")

    attack = client.post(
        f"{BASE}/{project.code}/attack",
        json={"attackerName": "Alice", "targetName": "Bob"},
    )
    assert attack.status_code == status.HTTP_200_OK
    body = attack.json()
    assert body["success"] is True
    assert body["expiresInMs"] == 15000
    assert body["delivered"] is False
    assert body["tokens"] == {"reviewTokens": 1, "attackTokens": 0, "shieldTokens": 0}

    defend = client.post(
        f"{BASE}/{project.code}/defend",
        json={"attackId": body["attackId"], "userName": "Bob", "useShield": True},
    )
    assert defend.status_code == status.HTTP_200_OK
    assert defend.json() == {
        "success": True,
        "defended": True,
        "status": "defended",
        "tokens": {"reviewTokens": 3, "attackTokens": 0, "shieldTokens": 0},
    }

    again = client.post(
        f"{BASE}/{project.code}/defend",
        json={"attackId": body["attackId"], "userName": "Bob", "useShield": True},
    )
    assert again.status_code == status.HTTP_409_CONFLICT


def test_declining_to_shield_lets_attack_land(
    client: TestClient, project: Project, db_session: Session
) -> None:
    _seed(db_session, "Alice", review=1, attack=1)
    _seed(db_session, "Bob")
    attack_id = client.post(
        f"{BASE}/{project.code}/attack",
        json={"attackerName": "Alice", "targetName": "Bob"},
    ).json()["attackId"]

    response = client.post(
        f"{BASE}/{project.code}/defend",
        json={"attackId": attack_id, "userName": "Bob", "useShield": False},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "succeeded"
    assert response.json()["tokens"]["reviewTokens"] == 2


def test_attack_error_statuses(client: TestClient, project: Project, db_session: Session) -> None:
    _seed(db_session, "Alice", attack=2)
    _seed(db_session, "Bob")
    _seed(db_session, "Broke", review=0)
    url = f"{BASE}/{project.code}/attack"

    def attack(attacker: str, target: str) -> int:
        return client.post(url, json={"attackerName": attacker, "targetName": target}).status_code

    assert attack("Alice", "alice") == status.HTTP_400_BAD_REQUEST
    assert attack("Alice", "Ghost") == status.HTTP_400_BAD_REQUEST
    assert attack("Alice", "Broke") == status.HTTP_400_BAD_REQUEST
    assert attack("Alice", "Bob") == status.HTTP_200_OK
    assert attack("Bob", "Alice") == status.HTTP_409_CONFLICT


def test_defend_unknown_attack_is_404(client: TestClient, project: Project) -> None:
    response = client.post(
        f"{BASE}/{project.code}/defend",
        json={"attackId": 999, "userName": "Bob", "useShield": True},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
