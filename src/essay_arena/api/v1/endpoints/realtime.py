"""Live event channel for players."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from essay_arena.api.v1.dependencies import RegistryDep
from essay_arena.realtime.connection import LiveConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def player_socket(websocket: WebSocket, registry: RegistryDep) -> None:
    """Accept a client, then feed its frames to its connection state object.

    Clients send ``register`` once and ``heartbeat`` periodically; the server
    pushes attack and token events through the registry.
    """
    await websocket.accept()
    connection = LiveConnection(websocket, registry)
    registry.attach(connection)
    logger.info("New connection established: %r", connection)
    try:
        while connection.is_open:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("Client disconnected: %r", connection)
                break
            raw = message.get("text")
            if raw is None:
                connection.mark_alive()
                logger.warning("Dropping binary frame from %r", connection)
                continue
            await connection.handle_message(raw)
    except WebSocketDisconnect:
        logger.debug("Client disconnected: %r", connection)
    except RuntimeError as exc:
        # Raised by Starlette when receiving on a socket we already closed.
        logger.debug("Receive on closed socket %r: %s", connection, exc)
    finally:
        connection.mark_closed()
