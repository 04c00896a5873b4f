"""SQLAlchemy models for the Essay Arena application."""

from .attack import (
    ATTACK_STATUS_DEFENDED,
    ATTACK_STATUS_EXPIRED,
    ATTACK_STATUS_PENDING,
    ATTACK_STATUS_SUCCEEDED,
    AttackOffer,
)
from .player import PlayerState
from .project import Project
from .session import ActiveSession

__all__ = [
    "ATTACK_STATUS_DEFENDED", "ATTACK_STATUS_EXPIRED",
    "ATTACK_STATUS_PENDING", "ATTACK_STATUS_SUCCEEDED",
    "AttackOffer",
    "PlayerState",
    "Project",
    "ActiveSession",
]
