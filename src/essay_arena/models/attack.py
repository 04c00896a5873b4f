"""Models tracking attack offers between players."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from essay_arena.db.session import Base
from essay_arena.db.time import ensure_utc, utcnow

ATTACK_STATUS_PENDING = "pending"
ATTACK_STATUS_DEFENDED = "defended"
ATTACK_STATUS_SUCCEEDED = "succeeded"
ATTACK_STATUS_EXPIRED = "expired"


class AttackOffer(Base):
    """State machine for one time-boxed attack from an attacker to a target.

    ``pending`` is the only non-terminal state. The partial unique index keeps
    a single pending offer per unordered pair of players in a project.
    """

    __tablename__ = "attacks"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'defended', 'succeeded', 'expired')",
            name="ck_attacks_status",
        ),
        Index(
            "uq_attacks_pending_pair",
            "project_code",
            "pair_key",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_attacks_target", "project_code", "target_name_norm", "status"),
        Index("ix_attacks_pending", "status", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_code: Mapped[str] = mapped_column(String(16), nullable=False)
    attacker_name: Mapped[str] = mapped_column(Text, nullable=False)
    attacker_name_norm: Mapped[str] = mapped_column(Text, nullable=False)
    target_name: Mapped[str] = mapped_column(Text, nullable=False)
    target_name_norm: Mapped[str] = mapped_column(Text, nullable=False)
    pair_key: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ATTACK_STATUS_PENDING
    )
    shield_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @property
    def is_pending(self) -> bool:
        return self.status == ATTACK_STATUS_PENDING

    @property
    def expires_at_utc(self) -> datetime:
        return ensure_utc(self.expires_at)
