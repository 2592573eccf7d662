"""In-memory doubles for the Claude subprocess and session capability."""

from __future__ import annotations

import asyncio
import json
import sys
import time
from collections import deque
from collections.abc import Callable, Iterable

from cc_demon.session.errors import ProtocolIOError, SessionError, SpawnError
from cc_demon.session.models import SessionConfig

ECHO_AGENT_COMMAND: tuple[str, ...] = (
    sys.executable,
    "-m",
    "cc_demon.session.backend.echo_agent",
)

# A responder maps one written user message to the lines the CLI emits back.
# ``None`` in the returned list closes the stream (EOF).
Responder = Callable[[str], list[str | None]]


def init_line(session_id: str | None = "sess-1") -> str:
    payload: dict[str, object] = {"type": "system", "subtype": "init"}
    if session_id:
        payload["session_id"] = session_id
    return json.dumps(payload)


def assistant_line(text: str, session_id: str | None = None) -> str:
    payload: dict[str, object] = {
        "type": "assistant",
        "message": {"content": [{"type": "text", "text": text}]},
    }
    if session_id:
        payload["session_id"] = session_id
    return json.dumps(payload)


def result_line(text: str | None = None, session_id: str | None = None) -> str:
    payload: dict[str, object] = {"type": "result"}
    if text is not None:
        payload["result"] = text
    if session_id:
        payload["session_id"] = session_id
    return json.dumps(payload)


def error_line(message: str) -> str:
    return json.dumps({"type": "result", "is_error": True, "error": message})


def echo_responder(session_id: str = "sess-1") -> Responder:
    def respond(content: str) -> list[str | None]:
        if content == "ping":
            return [init_line(session_id), result_line("pong", session_id)]
        if content == "/compact":
            return [result_line("compacted", session_id)]
        return [assistant_line(f"echo: {content}"), result_line(f"echo: {content}", session_id)]

    return respond


class ScriptedHandle:
    """Subprocess double that answers each written message from a responder.

    Records a violation whenever a line is written while the previous
    exchange has not yet produced its terminal ``result`` line.
    """

    def __init__(
        self,
        responder: Responder,
        *,
        preamble: Iterable[str] = (),
        pid: int = 4242,
    ) -> None:
        self.pid: int | None = pid
        self.responder = responder
        self.written: list[str] = []
        self.violations: list[str] = []
        self.alive = True
        self.stall_writes = False
        self.terminated = 0
        self._lines: deque[str | None] = deque(preamble)
        self._available = asyncio.Event()
        if self._lines:
            self._available.set()
        self._in_flight = False

    def is_alive(self) -> bool:
        return self.alive

    def push(self, *lines: str | None) -> None:
        self._lines.extend(lines)
        self._available.set()

    async def write_line(self, text: str) -> None:
        if not self.alive:
            raise ProtocolIOError("Claude process stdin is closed")
        content = json.loads(text)["message"]["content"]
        if self._in_flight:
            self.violations.append(f"write of {content!r} while exchange unresolved")
        self._in_flight = True
        self.written.append(content)
        if self.stall_writes:
            # Peer stopped reading stdin: the write never drains.
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        self.push(*self.responder(content))

    async def read_line(self, timeout: float) -> str:
        deadline = time.monotonic() + timeout
        while not self._lines:
            self._available.clear()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError
            await asyncio.wait_for(self._available.wait(), timeout=remaining)
        line = self._lines.popleft()
        await asyncio.sleep(0)
        if line is None:
            self._in_flight = False
            raise ProtocolIOError("Claude process closed unexpectedly", eof=True)
        if _is_result(line):
            self._in_flight = False
        return line

    async def terminate(self) -> None:
        self.alive = False
        self.terminated += 1


class ScriptedSpawner:
    """Spawner double producing a fresh :class:`ScriptedHandle` per generation."""

    def __init__(
        self,
        responder: Responder | None = None,
        *,
        preamble: Iterable[str] = (),
        failures: Iterable[SpawnError] = (),
    ) -> None:
        self.responder = responder or echo_responder()
        self.preamble = tuple(preamble)
        self.failures: deque[SpawnError] = deque(failures)
        self.handles: list[ScriptedHandle] = []
        self.calls = 0

    async def __call__(self, config: SessionConfig) -> ScriptedHandle:
        self.calls += 1
        if self.failures:
            raise self.failures.popleft()
        handle = ScriptedHandle(
            self.responder,
            preamble=self.preamble,
            pid=4242 + len(self.handles),
        )
        self.handles.append(handle)
        return handle

    @property
    def current(self) -> ScriptedHandle:
        return self.handles[-1]


class FakeSession:
    """ClaudeSession double with scripted liveness and restart outcomes."""

    def __init__(
        self,
        *,
        alive: Iterable[bool] = (),
        restart_errors: Iterable[SessionError | None] = (),
        compact_errors: Iterable[SessionError | None] = (),
        delay_seconds: float = 0.0,
        fail_prompts: Iterable[str] = (),
    ) -> None:
        self._alive = deque(alive)
        self._restart_errors = deque(restart_errors)
        self._compact_errors = deque(compact_errors)
        self.delay_seconds = delay_seconds
        self.fail_prompts = set(fail_prompts)
        self.served: list[str] = []
        self.restarts = 0
        self.compactions = 0

    async def send_message(self, text: str) -> str:
        self.served.append(text)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if text in self.fail_prompts:
            raise SessionError(f"scripted failure for {text!r}")
        return text.upper()

    def is_alive(self) -> bool:
        if self._alive:
            return self._alive.popleft()
        return True

    async def restart(self) -> None:
        self.restarts += 1
        error = self._restart_errors.popleft() if self._restart_errors else None
        if error is not None:
            raise error

    async def compact(self) -> None:
        self.compactions += 1
        error = self._compact_errors.popleft() if self._compact_errors else None
        if error is not None:
            raise error


async def wait_until(predicate: Callable[[], bool], *, timeout: float = 3.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def _is_result(line: str) -> bool:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError:
        return False
    return isinstance(payload, dict) and payload.get("type") == "result"
