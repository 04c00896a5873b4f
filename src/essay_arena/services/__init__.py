"""Business logic services for the Essay Arena application."""

from .attacks import AttackCoordinator
from .cooldown import CooldownGate
from .player_state import PlayerStateStore

__all__ = [
    "AttackCoordinator",
    "CooldownGate",
    "PlayerStateStore",
]
