"""Tests for the review cooldown gate."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from essay_arena.core.settings import Settings
from essay_arena.models import Project
from essay_arena.services.cooldown import CooldownGate, cooldown_status
from essay_arena.services.errors import CooldownActive, InsufficientTokens

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


def test_first_review_is_always_allowed() -> None:
    gate = cooldown_status(None, timedelta(seconds=60), NOW)

    assert gate.allowed is True
    assert gate.remaining_ms == 0


def test_half_elapsed_cooldown_reports_remaining_time() -> None:
    cooldown = timedelta(seconds=60)

    assert cooldown_status(NOW - timedelta(seconds=30), cooldown, NOW).remaining_ms == 30000
    assert cooldown_status(NOW - timedelta(seconds=61), cooldown, NOW).allowed is True


def test_gate_closes_for_the_rest_of_the_window() -> None:
    gate = cooldown_status(NOW - timedelta(seconds=59), timedelta(seconds=60), NOW)

    assert gate.allowed is False
    assert gate.remaining_ms == 1000


def test_gate_reopens_exactly_at_the_boundary() -> None:
    gate = cooldown_status(NOW - timedelta(seconds=60), timedelta(seconds=60), NOW)

    assert gate.allowed is True
    assert gate.remaining_ms == 0


def test_remaining_never_exceeds_cooldown_when_clock_went_backwards() -> None:
    gate = cooldown_status(NOW + timedelta(seconds=30), timedelta(seconds=60), NOW)

    assert gate.allowed is False
    assert gate.remaining_ms == 60000


@pytest.fixture()
def gate(db_session: Session, test_settings: Settings) -> CooldownGate:
    return CooldownGate(db_session, test_settings, cooldown_lookup=lambda db, code: 60)


def test_record_review_debits_a_token_and_closes_the_gate(gate: CooldownGate) -> None:
    state = gate.record_review("ESSAY1", "alice", NOW)

    assert state.review_tokens == 2
    status = gate.can_review("ESSAY1", "alice", NOW + timedelta(seconds=15))
    assert status.allowed is False
    assert status.remaining_ms == 45000


def test_second_review_inside_window_is_rejected(gate: CooldownGate) -> None:
    gate.record_review("ESSAY1", "alice", NOW)

    with pytest.raises(CooldownActive) as excinfo:
        gate.record_review("ESSAY1", "alice", NOW + timedelta(seconds=10))

    assert excinfo.value.remaining_ms == 50000
    assert gate.store.get_state("ESSAY1", "alice").review_tokens == 2


def test_review_allowed_again_after_window(gate: CooldownGate) -> None:
    gate.record_review("ESSAY1", "alice", NOW)

    state = gate.record_review("ESSAY1", "alice", NOW + timedelta(seconds=60))

    assert state.review_tokens == 1


def test_review_without_tokens_is_rejected(gate: CooldownGate, db_session: Session) -> None:
    gate.store.set_tokens("ESSAY1", "alice", review=0, attack=0, shield=0)
    db_session.commit()

    with pytest.raises(InsufficientTokens):
        gate.record_review("ESSAY1", "alice", NOW)

    assert gate.store.get_state("ESSAY1", "alice").last_review_at is None


def test_cooldown_comes_from_the_project_row(
    db_session: Session, test_settings: Settings
) -> None:
    db_session.add(Project(code="FAST", title="Quick drafts", review_cooldown_seconds=5))
    db_session.commit()
    gate = CooldownGate(db_session, test_settings)

    assert gate.cooldown_for("FAST") == timedelta(seconds=5)
    assert gate.cooldown_for("UNKNOWN") == timedelta(
        seconds=test_settings.default_review_cooldown_seconds
    )
