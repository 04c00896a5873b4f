"""In-memory registry of reachable players.

The registry is a cache of reachability, never a source of game state. It is
created once per process (see ``essay_arena.main``) and handed to request and
connection handlers through FastAPI dependencies.

>>> registry = SessionRegistry()
>>> registry.connection_count
0
"""

from __future__ import annotations

import logging
from typing import Any

from essay_arena.realtime.connection import LiveConnection

logger = logging.getLogger(__name__)

__all__ = ["SessionRegistry"]


class SessionRegistry:
    """Maps ``project -> normalized user -> LiveConnection``."""

    def __init__(self) -> None:
        self._connections: set[LiveConnection] = set()
        self._routes: dict[str, dict[str, LiveConnection]] = {}

    @property
    def connection_count(self) -> int:
        """Number of open transports, registered or not."""
        return len(self._connections)

    def registered_users(self, project_code: str) -> list[str]:
        return sorted(self._routes.get(project_code, {}))

    def attach(self, connection: LiveConnection) -> None:
        """Track a freshly accepted transport for liveness sweeps."""
        self._connections.add(connection)

    def detach(self, connection: LiveConnection) -> None:
        """Forget a transport entirely; called from its close path."""
        self._connections.discard(connection)
        self.unregister(connection)

    def register(self, connection: LiveConnection, project_code: str, user_name_norm: str) -> None:
        """Route a player's events to ``connection``.

        A previous connection for the same key is superseded but not closed;
        its own close or liveness failure cleans it up.
        """
        self._connections.add(connection)
        project_routes = self._routes.setdefault(project_code, {})
        previous = project_routes.get(user_name_norm)
        project_routes[user_name_norm] = connection
        if previous is not None and previous is not connection:
            logger.info("Superseded %r for %s in %s", previous, user_name_norm, project_code)
        logger.info("Registered %s in project %s", user_name_norm, project_code)

    def unregister(self, connection: LiveConnection) -> None:
        """Drop the route for ``connection`` only if it still owns it."""
        key = connection.key
        if key is None:
            return
        project_code, user_name_norm = key
        project_routes = self._routes.get(project_code)
        if not project_routes or project_routes.get(user_name_norm) is not connection:
            return
        del project_routes[user_name_norm]
        if not project_routes:
            del self._routes[project_code]
        logger.info("Disconnected %s from project %s", user_name_norm, project_code)

    def connection_for(self, project_code: str, user_name_norm: str) -> LiveConnection | None:
        return self._routes.get(project_code, {}).get(user_name_norm)

    def is_reachable(self, project_code: str, user_name_norm: str) -> bool:
        connection = self.connection_for(project_code, user_name_norm)
        return connection is not None and connection.is_open

    async def send(self, project_code: str, user_name_norm: str, event: dict[str, Any]) -> bool:
        """Best-effort delivery of ``event`` (which must carry a ``type``).

        Returns whether the event was handed to an open transport.
        """
        connection = self.connection_for(project_code, user_name_norm)
        if connection is None or not connection.is_open:
            return False
        payload = dict(event)
        event_type = payload.pop("type")
        return await connection.send_event(event_type, **payload)

    async def sweep_liveness(self) -> int:
        """Terminate connections that missed the previous ping, ping the rest.

        Returns the number of terminated connections.
        """
        terminated = 0
        for connection in list(self._connections):
            if not connection.is_open:
                self.detach(connection)
                continue
            if not connection.is_alive:
                await connection.terminate()
                terminated += 1
                continue
            await connection.ping()
        if terminated:
            logger.info("Liveness sweep terminated %d connection(s)", terminated)
        return terminated

    async def close_all(self) -> None:
        for connection in list(self._connections):
            await connection.close()
