"""Domain models for the persistent Claude session supervisor."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of one subprocess generation."""

    UNSTARTED = "unstarted"
    STARTING = "starting"
    INITIALIZING = "initializing"
    READY = "ready"
    SERVING = "serving"
    DEAD = "dead"


class FailureKind(str, Enum):
    """Normalized failure kinds surfaced to callers and logs."""

    SPAWN_FAILED = "spawn_failed"
    INIT_FAILED = "init_failed"
    TIMEOUT = "timeout"
    IO = "io"
    SEMANTIC = "semantic"
    QUEUE_SATURATED = "queue_saturated"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Immutable launch and supervision parameters for one session."""

    command: tuple[str, ...] = ("claude",)
    model: str = "sonnet"
    max_turns: int = 100
    max_budget_usd: float = 10.0
    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()
    append_system_prompt: str = ""
    session_name: str = "cc-demon-session"
    startup_timeout_seconds: float = 60.0
    response_timeout_seconds: float = 300.0
    drain_timeout_seconds: float = 2.0
    health_check_interval_seconds: float = 10.0
    compact_interval_seconds: float = 3600.0
    max_restart_attempts: int = 3
    restart_delay_seconds: float = 0.5
    queue_capacity: int = 100
    handshake_text: str = "ping"
    compact_command: str = "/compact"
    terminate_grace_seconds: float = 2.0
    max_line_bytes: int = 16 * 1024 * 1024

    @classmethod
    def from_gateway(  # noqa: PLR0913
        cls,
        *,
        command: tuple[str, ...],
        model: str,
        max_turns: int,
        max_budget_usd: float,
        allowed_tools: tuple[str, ...] = (),
        disallowed_tools: tuple[str, ...] = (),
        append_system_prompt: str = "",
        session_name: str = "cc-demon-session",
        compact_interval_seconds: float = 3600.0,
        **overrides: object,
    ) -> SessionConfig:
        """Derive persistent-session limits from per-chat gateway limits.

        A persistent session serves many chat turns, so its turn and budget
        ceilings are ten times the per-chat values, and its response timeout
        scales with the per-chat turn limit unless explicitly overridden.
        """

        values: dict[str, object] = {
            "command": command,
            "model": model,
            "max_turns": max_turns * 10,
            "max_budget_usd": max_budget_usd * 10.0,
            "allowed_tools": allowed_tools,
            "disallowed_tools": disallowed_tools,
            "append_system_prompt": append_system_prompt,
            "session_name": session_name,
            "compact_interval_seconds": compact_interval_seconds,
            "response_timeout_seconds": float(max_turns * 30 + 60),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]


@dataclass(slots=True)
class PendingRequest:
    """One queued prompt and its single-use reply channel."""

    prompt: str
    reply: asyncio.Future[str]
    sequence: int


@dataclass(slots=True)
class HealthCheckResult:
    """Outcome of one health monitor tick."""

    alive: bool
    consecutive_failures: int
    restart_attempted: bool = False
    restarted: bool = False
    error: str | None = None


@dataclass(slots=True)
class SessionSnapshot:
    """Point-in-time diagnostics for operators and CLI output."""

    session_name: str
    state: SessionState
    generation: int
    pid: int | None
    session_identity: str | None
    consecutive_failures: int = 0
    queued: int = 0
