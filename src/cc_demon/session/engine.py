"""Session engine: drives Claude subprocess generations behind an exchange lock.

One generation is one spawn-to-termination lifetime of the CLI process::

    unstarted -> starting -> initializing -> ready <-> serving
                                                  \\-> dead (any IO error, EOF, timeout)

``dead`` is terminal for a generation; only :meth:`SessionEngine.restart`
creates the next one. Every exchange (startup handshake, ordinary request,
compaction, restart) holds ``_lock`` so two exchanges never interleave on the
pipes. :meth:`SessionEngine.is_alive` is lock-free so health checks never queue
behind a slow response.
"""

from __future__ import annotations

import asyncio
import logging
import time

from cc_demon.session.backend.base import Spawner, SubprocessHandle
from cc_demon.session.backend.subprocess_backend import spawn_subprocess
from cc_demon.session.errors import (
    InitializationError,
    ProtocolIOError,
    ProtocolTimeout,
    SemanticError,
    SessionUnavailable,
    SpawnError,
)
from cc_demon.session.models import SessionConfig, SessionSnapshot, SessionState
from cc_demon.session.protocol import (
    AssistantTextEvent,
    InitEvent,
    OtherEvent,
    ParsedEvent,
    ResultErrorEvent,
    ResultEvent,
    decode_line,
    encode_user_message,
)

logger = logging.getLogger(__name__)

_SERVING_STATES = (SessionState.READY, SessionState.SERVING)


class SessionEngine:
    """Owns the current subprocess generation and serializes exchanges."""

    def __init__(self, config: SessionConfig, *, spawner: Spawner | None = None) -> None:
        self.config = config
        self._spawner = spawner or spawn_subprocess
        self._lock = asyncio.Lock()
        self._handle: SubprocessHandle | None = None
        self._state = SessionState.UNSTARTED
        self._generation = 0
        self._identity: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def session_identity(self) -> str | None:
        return self._identity

    @property
    def pid(self) -> int | None:
        return self._handle.pid if self._handle is not None else None

    def is_alive(self) -> bool:
        handle = self._handle
        return self._state in _SERVING_STATES and handle is not None and handle.is_alive()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_name=self.config.session_name,
            state=self._state,
            generation=self._generation,
            pid=self.pid,
            session_identity=self._identity,
        )

    async def start(self) -> None:
        """Spawn the first generation and complete the startup handshake."""

        async with self._lock:
            if self._state is not SessionState.UNSTARTED:
                raise RuntimeError(f"Session engine already started ({self._state.value}).")
            await self._start_generation()

    async def restart(self) -> None:
        """Tear down the current generation, then spawn and initialize a new one."""

        async with self._lock:
            logger.info("Restarting Claude process (%s)", self._context())
            await self._teardown()
            if self.config.restart_delay_seconds > 0:
                await asyncio.sleep(self.config.restart_delay_seconds)
            await self._start_generation()

    async def send_and_await(self, text: str) -> str:
        """Send one message and wait for its terminal result."""

        async with self._lock:
            return await self._exchange(text)

    async def send_message(self, text: str) -> str:
        return await self.send_and_await(text)

    async def compact(self) -> None:
        logger.info("Running %s (%s)", self.config.compact_command, self._context())
        await self.send_and_await(self.config.compact_command)

    async def close(self) -> None:
        async with self._lock:
            await self._teardown()

    async def _start_generation(self) -> None:
        self._generation += 1
        self._state = SessionState.STARTING
        try:
            handle = await self._spawner(self.config)
        except SpawnError as error:
            self._state = SessionState.DEAD
            logger.error(
                "Failed to spawn Claude (%s, transient=%s): %s",
                self._context(),
                error.transient,
                error,
            )
            raise

        self._handle = handle
        self._state = SessionState.INITIALIZING
        logger.info("Claude process spawned, waiting for init (%s)", self._context())
        try:
            await self._handshake(handle)
        except InitializationError as error:
            logger.error("Claude failed to initialize (%s): %s", self._context(), error)
            await self._teardown()
            raise
        self._state = SessionState.READY
        logger.info("Claude session ready (%s)", self._context())

    async def _handshake(self, handle: SubprocessHandle) -> None:
        timeout = self.config.startup_timeout_seconds
        deadline = time.monotonic() + timeout
        got_init = False
        got_result = False
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError
                try:
                    line = await handle.read_line(min(self.config.drain_timeout_seconds, remaining))
                except TimeoutError:
                    break
                event = decode_line(line)
                self._observe(event)
                got_init = got_init or isinstance(event, InitEvent)
                logger.debug("Initial message: %s", line.strip()[:80])

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError
            await asyncio.wait_for(
                handle.write_line(encode_user_message(self.config.handshake_text)),
                timeout=remaining,
            )
            logger.debug("Handshake sent, waiting for init and response (%s)", self._context())

            while not (got_init and got_result):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError
                event = decode_line(await handle.read_line(remaining))
                self._observe(event)
                if isinstance(event, InitEvent):
                    got_init = True
                elif isinstance(event, ResultErrorEvent):
                    logger.warning("Handshake returned an error result: %s", event.message)
                    got_result = True
                elif isinstance(event, ResultEvent):
                    got_result = True
        except TimeoutError as error:
            raise InitializationError(
                f"Timeout after {timeout:g}s waiting for Claude to initialize "
                f"(init={got_init}, result={got_result})",
            ) from error
        except ProtocolIOError as error:
            raise InitializationError(f"Claude failed to initialize: {error}") from error

    async def _exchange(self, text: str) -> str:
        handle = self._handle
        if self._state is not SessionState.READY or handle is None:
            raise SessionUnavailable(
                f"Claude session '{self.config.session_name}' is {self._state.value}; "
                "waiting for restart",
            )
        if not handle.is_alive():
            logger.warning("Claude process exited between exchanges (%s)", self._context())
            await self._teardown()
            raise SessionUnavailable("Claude process is not alive")

        self._state = SessionState.SERVING
        timeout = self.config.response_timeout_seconds
        deadline = time.monotonic() + timeout
        last_text: str | None = None
        try:
            # A peer that stops reading stdin stalls the write; same deadline applies.
            await asyncio.wait_for(handle.write_line(encode_user_message(text)), timeout=timeout)
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError
                event = decode_line(await handle.read_line(remaining))
                self._observe(event)
                if isinstance(event, AssistantTextEvent):
                    last_text = event.text
                elif isinstance(event, ResultEvent):
                    self._state = SessionState.READY
                    if event.text is not None:
                        return event.text
                    return last_text or ""
                elif isinstance(event, ResultErrorEvent):
                    self._state = SessionState.READY
                    raise SemanticError(f"Claude error: {event.message}")
                elif isinstance(event, OtherEvent) and event.event_type not in (
                    None,
                    "system",
                    "user",
                    "assistant",
                ):
                    logger.debug("Unknown message type: %s", event.event_type)
        except TimeoutError as error:
            logger.error("Claude response timed out after %gs (%s)", timeout, self._context())
            await self._teardown()
            raise ProtocolTimeout(
                f"Timeout after {timeout:g}s waiting for Claude response",
            ) from error
        except ProtocolIOError as error:
            logger.error("Claude exchange failed (%s, eof=%s): %s", self._context(), error.eof, error)
            await self._teardown()
            raise
        except asyncio.CancelledError:
            # Stream position is unknown; the generation cannot serve again.
            self._state = SessionState.DEAD
            await asyncio.shield(self._teardown())
            raise

    def _observe(self, event: ParsedEvent) -> None:
        if event.identity and event.identity != self._identity:
            logger.debug("Session id updated: %s -> %s", self._identity, event.identity)
            self._identity = event.identity

    async def _teardown(self) -> None:
        handle = self._handle
        self._handle = None
        self._identity = None
        self._state = SessionState.DEAD
        if handle is not None:
            await handle.terminate()

    def _context(self) -> str:
        return (
            f"session='{self.config.session_name}' generation={self._generation} "
            f"pid={self.pid} session_id={self._identity}"
        )
