"""Domain errors raised by the game services.

Each error carries the HTTP status the API layer reports it with, so endpoint
code can translate any :class:`GameError` uniformly.
"""

from __future__ import annotations

from fastapi import status

__all__ = [
    "GameError",
    "ProjectNotFound",
    "ProjectDisabled",
    "InsufficientTokens",
    "NoAttackTokens",
    "NoShieldTokens",
    "NothingToSteal",
    "CooldownActive",
    "InvalidTarget",
    "AttackAlreadyPending",
    "OfferNotFound",
    "OfferNotPending",
    "OfferExpired",
]


class GameError(Exception):
    """Base class for user-correctable game rejections."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Game action rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ProjectNotFound(GameError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Project not found"


class ProjectDisabled(GameError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Project is disabled"


class InsufficientTokens(GameError):
    """A debit would drive one of the player's balances below zero."""

    default_message = "Not enough tokens"

    def __init__(self, message: str | None = None, *, resource: str | None = None) -> None:
        super().__init__(message)
        self.resource = resource


class NoAttackTokens(InsufficientTokens):
    default_message = "No attack tokens available"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, resource="attack")


class NoShieldTokens(InsufficientTokens):
    default_message = "No shield available"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, resource="shield")


class NothingToSteal(InsufficientTokens):
    default_message = "Target has no tokens to steal"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, resource="review")


class CooldownActive(GameError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Review cooldown is still active"

    def __init__(self, remaining_ms: int) -> None:
        super().__init__(f"Review cooldown is still active ({remaining_ms} ms remaining)")
        self.remaining_ms = remaining_ms


class InvalidTarget(GameError):
    default_message = "Players cannot attack themselves"


class AttackAlreadyPending(GameError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "An attack between these players is already pending"


class OfferNotFound(GameError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Attack not found"


class OfferNotPending(GameError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Attack already resolved"


class OfferExpired(GameError):
    status_code = status.HTTP_410_GONE
    default_message = "Attack window has closed"
