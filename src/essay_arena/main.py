# src/essay_arena/main.py
"""Main entry point for the Essay Arena application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from essay_arena.api.v1 import game_router, realtime_router, testing_router
from essay_arena.core.settings import settings
from essay_arena.db.session import SessionLocal
from essay_arena.realtime.notifier import NotificationDispatcher
from essay_arena.realtime.registry import SessionRegistry
from essay_arena.services.workers import (
    AttackResolver,
    LivenessSweeper,
    PeriodicWorker,
    SessionJanitor,
)

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Essay Arena API",
    description="Review cooldowns, token economy and live peer attacks",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(game_router, prefix="/api/v1")
app.include_router(testing_router, prefix="/api/v1")
app.include_router(realtime_router)


def build_workers(
    registry: SessionRegistry, notifier: NotificationDispatcher
) -> list[PeriodicWorker]:
    """Create the three independent background timers."""
    return [
        AttackResolver(SessionLocal, notifier, settings),
        LivenessSweeper(registry, settings),
        SessionJanitor(SessionLocal, settings),
    ]


@app.on_event("startup")
async def on_startup() -> None:
    registry = SessionRegistry()
    notifier = NotificationDispatcher(registry)
    app.state.registry = registry
    app.state.notifier = notifier
    app.state.workers = []
    if settings.background_workers_enabled:
        workers = build_workers(registry, notifier)
        for worker in workers:
            await worker.start()
        app.state.workers = workers
    logger.info("WebSocket server initialized on /ws")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    workers: list[PeriodicWorker] = getattr(app.state, "workers", [])
    for worker in workers:
        await worker.stop()
    registry: SessionRegistry | None = getattr(app.state, "registry", None)
    if registry is not None:
        await registry.close_all()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "websocket": "/ws",
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("essay_arena.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
