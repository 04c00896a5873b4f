"""Review cooldown gate."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.models import PlayerState
from essay_arena.services.errors import CooldownActive, InsufficientTokens
from essay_arena.services.player_state import PlayerStateStore
from essay_arena.services.projects import get_project_cooldown_seconds

logger = logging.getLogger(__name__)

_ONE_MS = timedelta(milliseconds=1)

__all__ = ["CooldownStatus", "CooldownGate", "cooldown_status"]


@dataclass(frozen=True)
class CooldownStatus:
    """Whether a review may start now, and how long until it may otherwise."""

    allowed: bool
    remaining_ms: int


def cooldown_status(
    last_review_at: datetime | None, cooldown: timedelta, now: datetime
) -> CooldownStatus:
    """Compute the gate for a single ``now`` reading.

    >>> from datetime import UTC
    >>> now = datetime(2026, 1, 1, tzinfo=UTC)
    >>> cooldown_status(now - timedelta(seconds=30), timedelta(seconds=60), now)
    CooldownStatus(allowed=False, remaining_ms=30000)
    """
    if last_review_at is None:
        return CooldownStatus(allowed=True, remaining_ms=0)
    elapsed = now - last_review_at
    if elapsed >= cooldown:
        return CooldownStatus(allowed=True, remaining_ms=0)
    remaining = min(cooldown, cooldown - elapsed)
    return CooldownStatus(allowed=False, remaining_ms=max(0, remaining // _ONE_MS))


class CooldownGate:
    """Decides when a player may submit another review attempt."""

    def __init__(
        self,
        db: Session,
        config: Settings | None = None,
        cooldown_lookup: Callable[[Session, str], int] | None = None,
    ) -> None:
        self.db = db
        self.settings = config or default_settings
        self.store = PlayerStateStore(db, self.settings)
        self._cooldown_lookup = cooldown_lookup or (
            lambda db, code: get_project_cooldown_seconds(db, code, self.settings)
        )

    def cooldown_for(self, project_code: str) -> timedelta:
        return timedelta(seconds=self._cooldown_lookup(self.db, project_code))

    def status_for(self, state: PlayerState, now: datetime) -> CooldownStatus:
        return cooldown_status(
            state.last_review_at_utc, self.cooldown_for(state.project_code), now
        )

    def can_review(self, project_code: str, user_name: str, now: datetime) -> CooldownStatus:
        """Return the gate for a player, creating their default state if needed."""
        state = self.store.get_state(project_code, user_name)
        return self.status_for(state, now)

    def record_review(self, project_code: str, user_name: str, now: datetime) -> PlayerState:
        """Commit an accepted review: stamp the time and pay the review cost.

        ``now`` must be the same reading the caller used for :meth:`can_review`.

        Raises:
            CooldownActive: if the gate is closed at ``now``.
            InsufficientTokens: if the player cannot pay the review cost.
        """
        cooldown = self.cooldown_for(project_code)
        cost = self.settings.review_token_cost
        try:
            applied = self.store.record_review_at(
                project_code, user_name, now, cost=cost, not_after=now - cooldown
            )
            state = self.store.get_state(project_code, user_name)
            if not applied:
                gate = cooldown_status(state.last_review_at_utc, cooldown, now)
                if not gate.allowed:
                    raise CooldownActive(gate.remaining_ms)
                raise InsufficientTokens("No review tokens left", resource="review")
        except Exception:
            self.db.rollback()
            raise

        self.db.commit()
        logger.info(
            "Recorded review for %s in %s (%d review tokens left)",
            state.user_name_norm,
            project_code,
            state.review_tokens,
        )
        return state
