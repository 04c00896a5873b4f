"""Schemas for the seeding endpoints used by end-to-end runs."""

from pydantic import Field

from .game import CamelModel


class ResetTokensRequest(CamelModel):
    project_code: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    review_tokens: int = Field(default=3, ge=0)
    attack_tokens: int = Field(default=0, ge=0)
    shield_tokens: int = Field(default=1, ge=0)


class ClearAttacksRequest(CamelModel):
    project_code: str = Field(..., min_length=1)
