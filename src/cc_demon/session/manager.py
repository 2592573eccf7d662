"""Session manager: composition root for the persistent Claude session.

The manager owns one :class:`SessionEngine` and runs three independent asyncio
tasks against it: the request worker (FIFO, one exchange at a time), the health
monitor (liveness polling, bounded auto-restart) and the compactor (periodic
``/compact``). External collaborators only call :meth:`SessionManager.send_message`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from types import TracebackType

from cc_demon.session.backend.base import ClaudeSession, Spawner
from cc_demon.session.compactor import Compactor
from cc_demon.session.engine import SessionEngine
from cc_demon.session.health import HealthMonitor
from cc_demon.session.models import SessionConfig, SessionSnapshot, SessionState
from cc_demon.session.request_queue import RequestQueue

logger = logging.getLogger(__name__)


class SessionManager:
    """Queues callers onto one supervised session and keeps it healthy."""

    def __init__(
        self,
        session: ClaudeSession,
        config: SessionConfig,
        *,
        engine: SessionEngine | None = None,
    ) -> None:
        self.config = config
        self.session = session
        self._engine = engine
        self.queue = RequestQueue(session, capacity=config.queue_capacity)
        self.health_monitor = HealthMonitor(
            session,
            interval_seconds=config.health_check_interval_seconds,
            max_restart_attempts=config.max_restart_attempts,
            session_name=config.session_name,
        )
        self.compactor = Compactor(
            session,
            interval_seconds=config.compact_interval_seconds,
            session_name=config.session_name,
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._shut_down = False

    @classmethod
    async def create(
        cls,
        config: SessionConfig,
        *,
        spawner: Spawner | None = None,
    ) -> SessionManager:
        """Start the subprocess, complete the handshake, then launch background tasks.

        Raises ``SpawnError`` or ``InitializationError`` when the first generation
        cannot be brought up within ``startup_timeout_seconds``.
        """

        logger.info("Initializing SessionManager with session '%s'", config.session_name)
        engine = SessionEngine(config, spawner=spawner)
        await engine.start()
        manager = cls(engine, config, engine=engine)
        manager.start_background_tasks()
        logger.info("SessionManager initialized successfully")
        return manager

    def start_background_tasks(self) -> None:
        if self._tasks:
            return
        self.queue.start()
        self._tasks.append(
            asyncio.create_task(self.health_monitor.run(), name="session-health-monitor"),
        )
        if self.config.compact_interval_seconds > 0:
            self._tasks.append(
                asyncio.create_task(self.compactor.run(), name="session-compactor"),
            )
        else:
            logger.info("Compaction disabled for session '%s'", self.config.session_name)

    async def send_message(self, text: str) -> str:
        """Queue a message and wait for its response.

        Cancelling the caller only abandons the reply; an exchange already in
        flight runs to completion and its result is discarded.
        """

        return await self.queue.enqueue(text)

    @property
    def state(self) -> SessionState | None:
        return self._engine.state if self._engine is not None else None

    @property
    def session_identity(self) -> str | None:
        return self._engine.session_identity if self._engine is not None else None

    @property
    def consecutive_failures(self) -> int:
        return self.health_monitor.consecutive_failures

    def snapshot(self) -> SessionSnapshot | None:
        if self._engine is None:
            return None
        snapshot = self._engine.snapshot()
        snapshot.consecutive_failures = self.health_monitor.consecutive_failures
        snapshot.queued = self.queue.pending
        return snapshot

    async def shutdown(self) -> None:
        """Stop background tasks, fail queued requests and kill the subprocess."""

        if self._shut_down:
            return
        self._shut_down = True
        logger.info("Shutting down SessionManager for session '%s'", self.config.session_name)

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.queue.stop()
        if self._engine is not None:
            await self._engine.close()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.shutdown()
