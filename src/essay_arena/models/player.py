"""Per-player token ledger."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from essay_arena.db.session import Base
from essay_arena.db.time import ensure_utc, utcnow


class PlayerState(Base):
    """Token balances and last review time for one player in one project."""

    __tablename__ = "player_state"
    __table_args__ = (
        UniqueConstraint("project_code", "user_name_norm", name="uq_player_state_user"),
        CheckConstraint("review_tokens >= 0", name="ck_player_state_review_tokens"),
        CheckConstraint("attack_tokens >= 0", name="ck_player_state_attack_tokens"),
        CheckConstraint("shield_tokens >= 0", name="ck_player_state_shield_tokens"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_code: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    user_name_norm: Mapped[str] = mapped_column(Text, nullable=False)
    review_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    attack_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shield_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_review_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def last_review_at_utc(self) -> datetime | None:
        """Return ``last_review_at`` as an aware UTC datetime."""
        if self.last_review_at is None:
            return None
        return ensure_utc(self.last_review_at)

    def token_balances(self) -> dict[str, int]:
        """Return the balances in the shape pushed to clients."""
        return {
            "reviewTokens": self.review_tokens,
            "attackTokens": self.attack_tokens,
            "shieldTokens": self.shield_tokens,
        }
