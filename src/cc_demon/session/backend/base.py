"""Capability interfaces between the supervisor and its subprocess backend."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from cc_demon.session.models import SessionConfig


class SubprocessHandle(Protocol):
    """One owned subprocess generation with line-oriented pipes."""

    pid: int | None

    def is_alive(self) -> bool:
        """Non-blocking process-state check."""

    async def write_line(self, text: str) -> None:
        """Write one newline-terminated line; raise ``ProtocolIOError`` on failure.

        May block while the reader applies backpressure; callers bound it.
        """

    async def read_line(self, timeout: float) -> str:
        """Read one line.

        Raises ``TimeoutError`` when nothing arrives within ``timeout`` seconds and
        ``ProtocolIOError`` (with ``eof=True`` for a closed stream) on failure.
        """

    async def terminate(self) -> None:
        """Best-effort, idempotent and bounded kill."""


Spawner = Callable[[SessionConfig], Awaitable[SubprocessHandle]]


class ClaudeSession(Protocol):
    """Session backend capability used by the queue, monitor and compactor."""

    async def send_message(self, text: str) -> str:
        """Run one exchange and return the response text."""

    def is_alive(self) -> bool:
        """Report whether the current generation can serve requests."""

    async def restart(self) -> None:
        """Tear down the current generation and start a new one."""

    async def compact(self) -> None:
        """Issue the maintenance command that bounds context growth."""
