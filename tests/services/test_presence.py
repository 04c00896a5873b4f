"""Tests for persisted presence tracking."""

from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from essay_arena.core.identity import pair_key
from essay_arena.core.settings import Settings
from essay_arena.models import ATTACK_STATUS_PENDING, ActiveSession, AttackOffer
from essay_arena.services.player_state import PlayerStateStore
from essay_arena.services.presence import (
    list_active_players,
    reap_stale_sessions,
    touch_session,
)

PROJECT = "ESSAY1"
NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


def _seed_player(db: Session, settings: Settings, name: str, *, review: int = 3) -> None:
    PlayerStateStore(db, settings).set_tokens(PROJECT, name, review=review, attack=0, shield=1)
    db.commit()


def test_touch_session_upserts_one_row_per_player(db_session: Session) -> None:
    touch_session(db_session, PROJECT, "Alice", "tab-1", NOW)
    touch_session(db_session, PROJECT, "alice ", "tab-2", NOW + timedelta(seconds=5))

    rows = db_session.query(ActiveSession).all()
    assert len(rows) == 1
    assert rows[0].session_id == "tab-2"


def test_session_id_moves_to_the_latest_name(db_session: Session) -> None:
    touch_session(db_session, PROJECT, "Alice", "tab-1", NOW)
    touch_session(db_session, PROJECT, "Bob", "tab-1", NOW)

    rows = db_session.query(ActiveSession).all()
    assert [row.user_name_norm for row in rows] == ["bob"]


def test_active_players_excludes_viewer_and_stale_sessions(
    db_session: Session, test_settings: Settings
) -> None:
    for name in ("Alice", "Bob", "Carol"):
        _seed_player(db_session, test_settings, name)
    _seed_player(db_session, test_settings, "Dave", review=0)
    touch_session(db_session, PROJECT, "Alice", "a", NOW)
    touch_session(db_session, PROJECT, "Bob", "b", NOW - timedelta(seconds=10))
    touch_session(db_session, PROJECT, "Carol", "c", NOW - timedelta(seconds=200))
    touch_session(db_session, PROJECT, "Dave", "d", NOW - timedelta(seconds=30))

    players = list_active_players(db_session, PROJECT, "alice", NOW, test_settings)

    assert [player.user_name for player in players] == ["Bob", "Dave"]
    assert players[0].can_attack is True
    assert players[1].can_attack is False


def test_pending_attack_disables_can_attack(
    db_session: Session, test_settings: Settings
) -> None:
    _seed_player(db_session, test_settings, "Alice")
    _seed_player(db_session, test_settings, "Bob")
    touch_session(db_session, PROJECT, "Bob", "b", NOW)
    db_session.add(
        AttackOffer(
            project_code=PROJECT,
            attacker_name="Bob",
            attacker_name_norm="bob",
            target_name="Alice",
            target_name_norm="alice",
            pair_key=pair_key("alice", "bob"),
            status=ATTACK_STATUS_PENDING,
            created_at=NOW,
            expires_at=NOW + timedelta(seconds=15),
        )
    )
    db_session.commit()

    players = list_active_players(db_session, PROJECT, "Alice", NOW, test_settings)

    assert [(player.user_name, player.can_attack) for player in players] == [("Bob", False)]


def test_reap_removes_only_stale_rows(db_session: Session, test_settings: Settings) -> None:
    touch_session(db_session, PROJECT, "Alice", "a", NOW - timedelta(seconds=601))
    touch_session(db_session, PROJECT, "Bob", "b", NOW - timedelta(seconds=10))

    removed = reap_stale_sessions(db_session, NOW, test_settings)

    assert removed == 1
    assert [row.user_name_norm for row in db_session.query(ActiveSession).all()] == ["bob"]
