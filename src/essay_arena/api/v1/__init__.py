"""Version 1 API endpoints."""

from .endpoints import game_router, realtime_router, testing_router

__all__ = [
    "game_router",
    "realtime_router",
    "testing_router",
]
