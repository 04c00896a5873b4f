"""Background timers for the game layer.

Three independent loops run on the application's event loop:

- ``AttackResolver`` settles attack offers whose window has elapsed,
- ``LivenessSweeper`` evicts WebSocket clients that stopped answering pings,
- ``SessionJanitor`` prunes the persisted presence table.

The sweeper works on in-memory transports only; the janitor works on the
persisted presence table only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.db.time import utcnow
from essay_arena.realtime.notifier import NotificationDispatcher
from essay_arena.realtime.registry import SessionRegistry
from essay_arena.services.attacks import AttackCoordinator, AttackOutcome, announce_outcome
from essay_arena.services.presence import reap_stale_sessions

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]

__all__ = ["PeriodicWorker", "AttackResolver", "LivenessSweeper", "SessionJanitor"]


class PeriodicWorker:
    """Runs :meth:`tick` every ``interval`` seconds until stopped.

    A failing tick is logged and the loop carries on; one bad iteration must
    not stop the timer or affect request handling.
    """

    name = "worker"

    def __init__(self, interval: float) -> None:
        self.interval = max(0.1, float(interval))
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run(), name=self.name)
            logger.info("%s started (interval %.1fs)", self.name, self.interval)

    async def stop(self) -> None:
        """Stop the background loop and wait for the current tick."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info("%s stopped", self.name)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.tick()
            except SQLAlchemyError as e:
                logger.warning("%s encountered database error: %s", self.name, e)
            except Exception as e:
                logger.error("%s tick failed: %s", self.name, e, exc_info=True)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue

    async def tick(self) -> None:
        raise NotImplementedError


class AttackResolver(PeriodicWorker):
    name = "attack-resolver"

    def __init__(
        self,
        session_factory: SessionFactory,
        notifier: NotificationDispatcher,
        config: Settings | None = None,
    ) -> None:
        self.settings = config or default_settings
        super().__init__(self.settings.attack_resolve_interval_seconds)
        self.session_factory = session_factory
        self.notifier = notifier

    def _settle(self) -> list[AttackOutcome]:
        with self.session_factory() as db:
            return AttackCoordinator(db, config=self.settings).settle_due(utcnow())

    async def tick(self) -> None:
        outcomes = await asyncio.to_thread(self._settle)
        for outcome in outcomes:
            await announce_outcome(self.notifier, outcome)
        if outcomes:
            logger.debug("Resolved %d expired attack(s)", len(outcomes))


class LivenessSweeper(PeriodicWorker):
    name = "liveness-sweeper"

    def __init__(self, registry: SessionRegistry, config: Settings | None = None) -> None:
        config = config or default_settings
        super().__init__(config.ws_heartbeat_interval_seconds)
        self.registry = registry

    async def tick(self) -> None:
        await self.registry.sweep_liveness()


class SessionJanitor(PeriodicWorker):
    name = "session-janitor"

    def __init__(self, session_factory: SessionFactory, config: Settings | None = None) -> None:
        self.settings = config or default_settings
        super().__init__(self.settings.session_janitor_interval_seconds)
        self.session_factory = session_factory

    def _reap(self) -> int:
        with self.session_factory() as db:
            return reap_stale_sessions(db, utcnow(), self.settings)

    async def tick(self) -> None:
        await asyncio.to_thread(self._reap)
