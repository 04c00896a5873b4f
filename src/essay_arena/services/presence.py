"""Persisted presence: who has been active recently in a project.

This is the read model for clients that poll over plain HTTP. It is kept
separately from the in-memory WebSocket registry and is pruned by its own
janitor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from essay_arena.core.identity import normalize_user_name, pair_key
from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.models import ActiveSession, PlayerState
from essay_arena.services.attacks import AttackCoordinator

logger = logging.getLogger(__name__)

__all__ = ["ActivePlayer", "touch_session", "list_active_players", "reap_stale_sessions"]


@dataclass(frozen=True)
class ActivePlayer:
    user_name: str
    review_tokens: int
    shield_tokens: int
    can_attack: bool


def touch_session(
    db: Session, project_code: str, user_name: str, session_id: str, now: datetime
) -> ActiveSession:
    """Upsert the player's presence row; a new session id replaces the old one."""
    user_name_norm = normalize_user_name(user_name)
    stmt = select(ActiveSession).where(
        ActiveSession.project_code == project_code,
        ActiveSession.user_name_norm == user_name_norm,
    )
    record = db.execute(stmt).scalar_one_or_none()
    if record is None:
        # A session id left behind under another name is stale by definition.
        db.execute(delete(ActiveSession).where(ActiveSession.session_id == session_id))
        record = ActiveSession(
            project_code=project_code,
            user_name=user_name.strip(),
            user_name_norm=user_name_norm,
            session_id=session_id,
            last_seen=now,
            created_at=now,
        )
        try:
            with db.begin_nested():
                db.add(record)
        except IntegrityError:
            record = db.execute(stmt).scalar_one()
        else:
            db.commit()
            return record

    if record.session_id != session_id:
        db.execute(
            delete(ActiveSession).where(
                ActiveSession.session_id == session_id, ActiveSession.id != record.id
            )
        )
    record.session_id = session_id
    record.user_name = user_name.strip()
    record.last_seen = now
    db.commit()
    return record


def list_active_players(
    db: Session,
    project_code: str,
    viewer_name: str,
    now: datetime,
    config: Settings | None = None,
) -> list[ActivePlayer]:
    """Return players seen within the presence window, excluding the viewer.

    ``can_attack`` is true when the player has review tokens to lose and no
    attack between them and the viewer is pending.
    """
    config = config or default_settings
    viewer_norm = normalize_user_name(viewer_name)
    cutoff = now - timedelta(seconds=config.presence_window_seconds)
    stmt = (
        select(ActiveSession, PlayerState)
        .join(
            PlayerState,
            (PlayerState.project_code == ActiveSession.project_code)
            & (PlayerState.user_name_norm == ActiveSession.user_name_norm),
        )
        .where(
            ActiveSession.project_code == project_code,
            ActiveSession.last_seen > cutoff,
            ActiveSession.user_name_norm != viewer_norm,
        )
        .order_by(PlayerState.review_tokens.desc(), ActiveSession.user_name)
    )
    busy_pairs = AttackCoordinator(db, config=config).pending_pairs_for(project_code, viewer_norm)
    players = []
    for session, state in db.execute(stmt).all():
        already_pending = pair_key(viewer_norm, session.user_name_norm) in busy_pairs
        players.append(
            ActivePlayer(
                user_name=session.user_name,
                review_tokens=state.review_tokens,
                shield_tokens=state.shield_tokens,
                can_attack=state.review_tokens > 0 and not already_pending,
            )
        )
    return players


def reap_stale_sessions(db: Session, now: datetime, config: Settings | None = None) -> int:
    """Delete presence rows not seen within the staleness threshold."""
    config = config or default_settings
    cutoff = now - timedelta(seconds=config.session_staleness_seconds)
    result = db.execute(delete(ActiveSession).where(ActiveSession.last_seen < cutoff))
    db.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info("Reaped %d stale session(s)", removed)
    return removed
