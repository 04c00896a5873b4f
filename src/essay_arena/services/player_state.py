"""Token ledger for players.

All balance changes go through single conditional ``UPDATE`` statements so the
database serializes concurrent writers on the row; no balance is read, changed
in Python and written back.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from essay_arena.core.identity import normalize_user_name
from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.db.time import utcnow
from essay_arena.models import PlayerState
from essay_arena.services.errors import InsufficientTokens

logger = logging.getLogger(__name__)

# Delta keyword -> mapped column, in the order shortfalls are reported.
_TOKEN_COLUMNS = {
    "review": PlayerState.review_tokens,
    "attack": PlayerState.attack_tokens,
    "shield": PlayerState.shield_tokens,
}

__all__ = ["PlayerStateStore"]


class PlayerStateStore:
    """Reads and atomically adjusts per-player token balances.

    Methods flush but never commit; the calling operation owns the transaction.
    ``project_code`` is expected in normalized form, user names may be raw.
    """

    def __init__(self, db: Session, config: Settings | None = None) -> None:
        self.db = db
        self.settings = config or default_settings

    @staticmethod
    def _select(project_code: str, user_name_norm: str):
        return (
            select(PlayerState)
            .where(
                PlayerState.project_code == project_code,
                PlayerState.user_name_norm == user_name_norm,
            )
            .execution_options(populate_existing=True)
        )

    def _load(self, project_code: str, user_name_norm: str) -> PlayerState | None:
        return self.db.execute(self._select(project_code, user_name_norm)).scalar_one_or_none()

    def _reload(self, project_code: str, user_name_norm: str) -> PlayerState:
        """Re-read a row after an UPDATE; raises ``NoResultFound`` if it was deleted."""
        return self.db.execute(self._select(project_code, user_name_norm)).scalar_one()

    def find(self, project_code: str, user_name: str) -> PlayerState | None:
        """Return the player's row without creating it."""
        return self._load(project_code, normalize_user_name(user_name))

    def get_state(self, project_code: str, user_name: str) -> PlayerState:
        """Return the player's balances, creating the default row if needed."""
        user_name_norm = normalize_user_name(user_name)
        state = self._load(project_code, user_name_norm)
        if state is not None:
            return state

        state = PlayerState(
            project_code=project_code,
            user_name=user_name.strip(),
            user_name_norm=user_name_norm,
            review_tokens=self.settings.default_review_tokens,
            attack_tokens=self.settings.default_attack_tokens,
            shield_tokens=self.settings.default_shield_tokens,
        )
        try:
            with self.db.begin_nested():
                self.db.add(state)
        except IntegrityError:
            # Another request created the row first; use theirs.
            existing = self._load(project_code, user_name_norm)
            if existing is None:
                raise
            return existing

        logger.info("Created player state for %s in %s", user_name_norm, project_code)
        return state

    def adjust_tokens(
        self,
        project_code: str,
        user_name: str,
        *,
        review: int = 0,
        attack: int = 0,
        shield: int = 0,
    ) -> PlayerState:
        """Apply token deltas in one statement.

        Raises:
            InsufficientTokens: if any resulting balance would be negative. No
                delta is applied in that case.
        """
        state = self.get_state(project_code, user_name)
        deltas = {"review": review, "attack": attack, "shield": shield}
        changes = {name: delta for name, delta in deltas.items() if delta}
        if not changes:
            return state

        conditions = [
            PlayerState.project_code == project_code,
            PlayerState.user_name_norm == state.user_name_norm,
        ]
        values: dict[str, object] = {"updated_at": utcnow()}
        for name, delta in changes.items():
            column = _TOKEN_COLUMNS[name]
            if delta < 0:
                conditions.append(column >= -delta)
            values[column.key] = column + delta

        stmt = (
            update(PlayerState)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        refreshed = self._reload(project_code, state.user_name_norm)

        if result.rowcount == 0:
            resource = self._first_shortfall(refreshed, changes)
            raise InsufficientTokens(f"Not enough {resource} tokens", resource=resource)
        return refreshed

    @staticmethod
    def _first_shortfall(state: PlayerState, changes: dict[str, int]) -> str:
        for name, delta in changes.items():
            balance = getattr(state, _TOKEN_COLUMNS[name].key)
            if balance + delta < 0:
                return name
        return next(iter(changes))

    def credit_review_tokens(
        self, project_code: str, user_name: str, amount: int, *, cap: int | None = None
    ) -> PlayerState:
        """Add review tokens without pushing the balance past ``cap``.

        Balances already at or above the cap are left untouched.
        """
        state = self.get_state(project_code, user_name)
        if amount <= 0:
            return state
        limit = self.settings.review_token_cap if cap is None else cap
        column = PlayerState.review_tokens
        stmt = (
            update(PlayerState)
            .where(
                PlayerState.project_code == project_code,
                PlayerState.user_name_norm == state.user_name_norm,
                column < limit,
            )
            .values(
                review_tokens=case((column + amount > limit, limit), else_=column + amount),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        refreshed = self._reload(project_code, state.user_name_norm)
        return refreshed

    def take_review_tokens(self, project_code: str, user_name: str, amount: int) -> PlayerState:
        """Remove up to ``amount`` review tokens, stopping at zero."""
        state = self.get_state(project_code, user_name)
        if amount <= 0:
            return state
        column = PlayerState.review_tokens
        stmt = (
            update(PlayerState)
            .where(
                PlayerState.project_code == project_code,
                PlayerState.user_name_norm == state.user_name_norm,
            )
            .values(
                review_tokens=case((column >= amount, column - amount), else_=0),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        refreshed = self._reload(project_code, state.user_name_norm)
        return refreshed

    def record_review_at(
        self,
        project_code: str,
        user_name: str,
        now: datetime,
        *,
        cost: int,
        not_after: datetime,
    ) -> bool:
        """Stamp ``last_review_at`` and debit ``cost`` review tokens in one step.

        The update only applies when the player has ``cost`` review tokens and
        their previous review is no later than ``not_after``. Returns whether a
        row was updated.
        """
        state = self.get_state(project_code, user_name)
        stmt = (
            update(PlayerState)
            .where(
                PlayerState.project_code == project_code,
                PlayerState.user_name_norm == state.user_name_norm,
                PlayerState.review_tokens >= cost,
                (PlayerState.last_review_at.is_(None))
                | (PlayerState.last_review_at <= not_after),
            )
            .values(
                review_tokens=PlayerState.review_tokens - cost,
                last_review_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount > 0

    def set_tokens(
        self,
        project_code: str,
        user_name: str,
        *,
        review: int,
        attack: int,
        shield: int,
        reset_review_clock: bool = True,
    ) -> PlayerState:
        """Overwrite a player's balances; used by seeding and reset tooling."""
        if min(review, attack, shield) < 0:
            raise ValueError("Token balances cannot be negative")
        state = self.get_state(project_code, user_name)
        state.review_tokens = review
        state.attack_tokens = attack
        state.shield_tokens = shield
        if reset_review_clock:
            state.last_review_at = None
        self.db.flush()
        return state
