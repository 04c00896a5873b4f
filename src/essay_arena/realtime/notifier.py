"""Fire-and-forget notifications to players' live connections."""

from __future__ import annotations

import logging
from typing import Any

from essay_arena.realtime.registry import SessionRegistry

logger = logging.getLogger(__name__)

__all__ = ["NotificationDispatcher"]


class NotificationDispatcher:
    """Thin fan-out over the :class:`SessionRegistry`.

    A missing connection is not an error, only a missed real-time update;
    clients re-read their state when they reconnect. Nothing is queued or
    retried.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    async def _deliver(self, project_code: str, user_name_norm: str, event: dict[str, Any]) -> bool:
        try:
            delivered = await self.registry.send(project_code, user_name_norm, event)
        except Exception:
            logger.exception("Failed to deliver %s to %s", event.get("type"), user_name_norm)
            return False
        if not delivered:
            logger.debug("%s not reachable for %s", user_name_norm, event.get("type"))
        return delivered

    async def notify_attack(
        self, project_code: str, target_norm: str, attack_id: int, expires_in_ms: int
    ) -> bool:
        delivered = await self._deliver(
            project_code,
            target_norm,
            {"type": "incoming_attack", "attackId": attack_id, "expiresInMs": expires_in_ms},
        )
        if delivered:
            logger.info("Attack notification sent to %s", target_norm)
        return delivered

    async def notify_attack_result(
        self, project_code: str, user_name_norm: str, outcome: dict[str, Any]
    ) -> bool:
        return await self._deliver(
            project_code, user_name_norm, {"type": "attack_result", **outcome}
        )

    async def notify_token_update(
        self, project_code: str, user_name_norm: str, tokens: dict[str, int]
    ) -> bool:
        return await self._deliver(
            project_code, user_name_norm, {"type": "token_update", "tokens": tokens}
        )
