"""
Pydantic schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire, matching the
browser client.
"""

from .game import (
    ActivePlayerResponse,
    AttackRequest,
    AttackResponse,
    DefendRequest,
    DefendResponse,
    HeartbeatRequest,
    PlayerRequest,
    PlayerStateResponse,
    ReviewGateResponse,
    TokenBalances,
)
from .testing import ClearAttacksRequest, ResetTokensRequest

__all__ = [
    "ActivePlayerResponse",
    "AttackRequest", "AttackResponse",
    "DefendRequest", "DefendResponse",
    "HeartbeatRequest",
    "PlayerRequest", "PlayerStateResponse",
    "ReviewGateResponse",
    "TokenBalances",
    "ClearAttacksRequest", "ResetTokensRequest",
]
