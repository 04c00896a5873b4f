"""Game-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenBalances(CamelModel):
    review_tokens: int
    attack_tokens: int
    shield_tokens: int


class PlayerRequest(CamelModel):
    """Body carrying only the caller's display name."""

    user_name: str = Field(..., min_length=1, max_length=100)


class PlayerStateResponse(TokenBalances):
    cooldown_remaining: int = Field(..., description="Milliseconds until the next review")


class ReviewGateResponse(CamelModel):
    allowed: bool
    remaining_ms: int


class HeartbeatRequest(CamelModel):
    user_name: str = Field(..., min_length=1, max_length=100)
    session_id: str = Field(..., min_length=1, max_length=200)


class ActivePlayerResponse(CamelModel):
    user_name: str
    review_tokens: int
    shield_tokens: int
    can_attack: bool


class AttackRequest(CamelModel):
    attacker_name: str = Field(..., min_length=1, max_length=100)
    target_name: str = Field(..., min_length=1, max_length=100)


class AttackResponse(CamelModel):
    success: bool = True
    attack_id: int
    expires_in_ms: int
    delivered: bool
    message: str
    tokens: TokenBalances


class DefendRequest(CamelModel):
    attack_id: int
    user_name: str = Field(..., min_length=1, max_length=100)
    use_shield: bool


class DefendResponse(CamelModel):
    success: bool = True
    defended: bool
    status: str
    tokens: TokenBalances
