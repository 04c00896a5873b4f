"""Per-connection state for live WebSocket clients.

Each accepted socket is wrapped in a :class:`LiveConnection` that owns its
lifecycle (``open -> closing -> closed``), its liveness flag and the dispatch
of inbound messages by ``type``.
"""

from __future__ import annotations

import enum
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, status

from essay_arena.core.identity import normalize_project_code, normalize_user_name

if TYPE_CHECKING:
    from essay_arena.realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[None]]


class ConnectionState(str, enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class LiveConnection:
    """A reachable transport handle for one client."""

    def __init__(self, websocket: WebSocket, registry: SessionRegistry) -> None:
        self.websocket = websocket
        self.registry = registry
        self.connection_id = uuid.uuid4().hex
        self.state = ConnectionState.OPEN
        self.is_alive = True
        self.project_code: str | None = None
        self.user_name: str | None = None
        self.user_name_norm: str | None = None
        self._handlers: dict[str, Handler] = {
            "register": self._handle_register,
            "heartbeat": self._handle_heartbeat,
        }

    def __repr__(self) -> str:
        return (
            f"LiveConnection(id={self.connection_id[:8]}, state={self.state.value}, "
            f"user={self.user_name_norm!r}, project={self.project_code!r})"
        )

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def key(self) -> tuple[str, str] | None:
        """Return the registry key once the client has registered."""
        if self.project_code is None or self.user_name_norm is None:
            return None
        return self.project_code, self.user_name_norm

    def mark_alive(self) -> None:
        self.is_alive = True

    async def send_event(self, event_type: str, **payload: Any) -> bool:
        """Serialize and send one event; return whether it reached the transport."""
        if not self.is_open:
            return False
        message = json.dumps({"type": event_type, **payload})
        try:
            await self.websocket.send_text(message)
        except Exception as exc:
            logger.warning("Send to %r failed, dropping connection: %s", self, exc)
            self.mark_closed()
            return False
        logger.debug("Sent %s to %r", event_type, self)
        return True

    async def handle_message(self, raw: str) -> None:
        """Dispatch one inbound text frame.

        Any frame counts as proof of liveness. Malformed payloads and unknown
        types are logged and dropped without closing the connection.
        """
        self.mark_alive()
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Dropping malformed payload from %r", self)
            return
        if not isinstance(message, dict):
            logger.warning("Dropping non-object payload from %r", self)
            return

        message_type = message.get("type")
        if not isinstance(message_type, str):
            logger.warning("Dropping payload without a string type from %r", self)
            return
        handler = self._handlers.get(message_type)
        if handler is None:
            logger.info("Unknown message type from %r: %r", self, message_type)
            return
        await handler(message)

    async def _handle_register(self, message: dict[str, Any]) -> None:
        project_code = message.get("projectCode")
        user_name = message.get("userName")
        if not isinstance(project_code, str) or not isinstance(user_name, str):
            await self.send_event(
                "registered", success=False, error="projectCode and userName are required"
            )
            return
        project_norm = normalize_project_code(project_code)
        user_norm = normalize_user_name(user_name)
        if not project_norm or not user_norm:
            await self.send_event(
                "registered", success=False, error="projectCode and userName are required"
            )
            return

        # Re-registering under a new identity releases the old mapping first.
        if self.key is not None and self.key != (project_norm, user_norm):
            self.registry.unregister(self)

        self.project_code = project_norm
        self.user_name = user_name.strip()
        self.user_name_norm = user_norm
        self.registry.register(self, project_norm, user_norm)
        await self.send_event("registered", success=True)

    async def _handle_heartbeat(self, message: dict[str, Any]) -> None:
        await self.send_event("heartbeat_ack")

    async def ping(self) -> bool:
        """Ask the client to prove liveness before the next sweep."""
        self.is_alive = False
        return await self.send_event("ping")

    async def close(self, code: int = status.WS_1000_NORMAL_CLOSURE) -> None:
        """Close the transport and release the registry entry."""
        if self.state is not ConnectionState.OPEN:
            return
        self.state = ConnectionState.CLOSING
        try:
            await self.websocket.close(code=code)
        except Exception as exc:  # transport may already be gone
            logger.debug("Close of %r raised: %s", self, exc)
        self.mark_closed()

    async def terminate(self) -> None:
        """Forcibly close a connection that failed its liveness check."""
        logger.info("Terminating unresponsive connection %r", self)
        await self.close(code=status.WS_1001_GOING_AWAY)

    def mark_closed(self) -> None:
        """Record that the transport is gone; idempotent."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        self.registry.detach(self)
