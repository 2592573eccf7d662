"""Runtime configuration for the gateway daemon and its persistent session."""

from __future__ import annotations

import os
import shlex
import shutil
from dataclasses import dataclass, field

from cc_demon.session.models import SessionConfig


@dataclass(slots=True)
class GatewaySettings:
    """Per-chat limits the gateway applies to Claude runs."""

    default_model: str = "sonnet"
    max_turns: int = 10
    max_budget_usd: float = 5.0
    allowed_tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()
    append_system_prompt: str = ""
    session_name: str = "cc-demon-session"
    compact_interval_seconds: float = 3600.0


@dataclass(slots=True)
class SessionSettings:
    """Supervisor knobs for the persistent session."""

    command: tuple[str, ...] = ("claude",)
    startup_timeout_seconds: float = 60.0
    response_timeout_seconds: float | None = None
    health_check_interval_seconds: float = 10.0
    max_restart_attempts: int = 3
    queue_capacity: int = 100


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    session: SessionSettings = field(default_factory=SessionSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``CC_DEMON_*`` environment variables."""

        response_timeout_raw = os.getenv("CC_DEMON_RESPONSE_TIMEOUT_SECONDS", "").strip()
        return cls(
            gateway=GatewaySettings(
                default_model=os.getenv("CC_DEMON_MODEL", "sonnet"),
                max_turns=int(os.getenv("CC_DEMON_MAX_TURNS", "10")),
                max_budget_usd=float(os.getenv("CC_DEMON_MAX_BUDGET_USD", "5.0")),
                allowed_tools=_env_list("CC_DEMON_ALLOWED_TOOLS"),
                disallowed_tools=_env_list("CC_DEMON_DISALLOWED_TOOLS"),
                append_system_prompt=os.getenv("CC_DEMON_APPEND_SYSTEM_PROMPT", ""),
                session_name=os.getenv("CC_DEMON_SESSION_NAME", "cc-demon-session"),
                compact_interval_seconds=float(
                    os.getenv("CC_DEMON_COMPACT_INTERVAL_SECONDS", "3600"),
                ),
            ),
            session=SessionSettings(
                command=_resolve_claude_command(),
                startup_timeout_seconds=float(
                    os.getenv("CC_DEMON_STARTUP_TIMEOUT_SECONDS", "60"),
                ),
                response_timeout_seconds=(
                    float(response_timeout_raw) if response_timeout_raw else None
                ),
                health_check_interval_seconds=float(
                    os.getenv("CC_DEMON_HEALTH_CHECK_INTERVAL_SECONDS", "10"),
                ),
                max_restart_attempts=int(os.getenv("CC_DEMON_MAX_RESTART_ATTEMPTS", "3")),
                queue_capacity=int(os.getenv("CC_DEMON_QUEUE_CAPACITY", "100")),
            ),
        )

    def validate_for_session(self) -> None:
        """Raise configuration error if the persistent session cannot be started."""

        if not self.session.command:
            raise ValueError("CC_DEMON_CLAUDE_COMMAND must not be empty.")
        if self.gateway.max_turns <= 0:
            raise ValueError("CC_DEMON_MAX_TURNS must be > 0.")
        if self.gateway.max_budget_usd <= 0:
            raise ValueError("CC_DEMON_MAX_BUDGET_USD must be > 0.")
        if self.gateway.compact_interval_seconds < 0:
            raise ValueError("CC_DEMON_COMPACT_INTERVAL_SECONDS must be >= 0 (0 disables).")
        if self.session.startup_timeout_seconds <= 0:
            raise ValueError("CC_DEMON_STARTUP_TIMEOUT_SECONDS must be > 0.")
        if (
            self.session.response_timeout_seconds is not None
            and self.session.response_timeout_seconds <= 0
        ):
            raise ValueError("CC_DEMON_RESPONSE_TIMEOUT_SECONDS must be > 0.")
        if self.session.health_check_interval_seconds <= 0:
            raise ValueError("CC_DEMON_HEALTH_CHECK_INTERVAL_SECONDS must be > 0.")
        if self.session.max_restart_attempts < 0:
            raise ValueError("CC_DEMON_MAX_RESTART_ATTEMPTS must be >= 0.")
        if self.session.queue_capacity <= 0:
            raise ValueError("CC_DEMON_QUEUE_CAPACITY must be > 0.")

    def session_config(self) -> SessionConfig:
        """Build the immutable config for the persistent session."""

        self.validate_for_session()
        return SessionConfig.from_gateway(
            command=self.session.command,
            model=self.gateway.default_model,
            max_turns=self.gateway.max_turns,
            max_budget_usd=self.gateway.max_budget_usd,
            allowed_tools=self.gateway.allowed_tools,
            disallowed_tools=self.gateway.disallowed_tools,
            append_system_prompt=self.gateway.append_system_prompt,
            session_name=self.gateway.session_name,
            compact_interval_seconds=self.gateway.compact_interval_seconds,
            startup_timeout_seconds=self.session.startup_timeout_seconds,
            response_timeout_seconds=self.session.response_timeout_seconds,
            health_check_interval_seconds=self.session.health_check_interval_seconds,
            max_restart_attempts=self.session.max_restart_attempts,
            queue_capacity=self.session.queue_capacity,
        )


def _resolve_claude_command() -> tuple[str, ...]:
    raw = os.getenv("CC_DEMON_CLAUDE_COMMAND", "").strip()
    if raw:
        return tuple(shlex.split(raw))
    cli_path = os.getenv("CLAUDE_CODE_CLI_PATH", "").strip()
    if cli_path and os.path.exists(cli_path):
        return (cli_path,)
    return (shutil.which("claude") or "claude",)


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    values: list[str] = []
    for part in raw.split(","):
        normalized = part.strip()
        if normalized and normalized not in values:
            values.append(normalized)
    return tuple(values)
