"""Minimal project record consulted by the game layer."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from essay_arena.db.session import Base
from essay_arena.db.time import utcnow


class Project(Base):
    """Essay project students join by code.

    Project administration lives outside this service; only the columns the
    cooldown gate and the game endpoints read are mapped here.
    """

    __tablename__ = "projects"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    review_cooldown_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
