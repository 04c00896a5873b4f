"""API endpoint modules for version 1."""

from .game import router as game_router
from .realtime import router as realtime_router
from .testing import router as testing_router

__all__ = [
    "game_router",
    "realtime_router",
    "testing_router",
]
