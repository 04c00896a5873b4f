"""Persisted presence records."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from essay_arena.db.session import Base
from essay_arena.db.time import utcnow


class ActiveSession(Base):
    """Marker that a player was recently active in a project.

    A newer session for the same player replaces the previous row.
    """

    __tablename__ = "active_sessions"
    __table_args__ = (
        UniqueConstraint("project_code", "user_name_norm", name="uq_active_sessions_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_code: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    user_name_norm: Mapped[str] = mapped_column(Text, nullable=False)
    session_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # Indexed for the janitor's range delete.
    last_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
