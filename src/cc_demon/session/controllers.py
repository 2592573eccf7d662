"""Controllers for persistent session CLI commands."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass, replace

from cc_demon.config import Settings
from cc_demon.session.backend import build_run_args
from cc_demon.session.errors import SessionError
from cc_demon.session.manager import SessionManager
from cc_demon.session.models import SessionConfig


@dataclass(slots=True)
class SessionCheckCommand:
    """CLI input for the session startup check."""

    model: str | None = None


@dataclass(slots=True)
class SessionAskCommand:
    """CLI input for sending prompts through the session queue."""

    prompts: tuple[str, ...]
    model: str | None = None


@dataclass(slots=True)
class SessionCommandResult:
    """Rendered output lines plus overall success flag."""

    lines: list[str]
    success: bool


class SessionCliController:
    """CLI controller for persistent session operations."""

    def check(self, command: SessionCheckCommand) -> SessionCommandResult:
        """Bring up one session generation, report it and shut it down."""

        config = _session_config(model=command.model)
        return asyncio.run(self._check(config))

    def ask(self, command: SessionAskCommand) -> SessionCommandResult:
        """Submit prompts concurrently and report responses in submission order."""

        config = _session_config(model=command.model)
        return asyncio.run(self._ask(config, command.prompts))

    async def _check(self, config: SessionConfig) -> SessionCommandResult:
        lines = [_startup_line(config)]
        try:
            manager = await SessionManager.create(config)
        except SessionError as error:
            lines.append(f"Session failed [{error.kind.value}]: {error}")
            return SessionCommandResult(lines=lines, success=False)

        async with manager:
            snapshot = manager.snapshot()
            if snapshot is not None:
                lines.append(
                    f"Session ready: state={snapshot.state.value} "
                    f"generation={snapshot.generation} pid={snapshot.pid} "
                    f"session_id={snapshot.session_identity or '-'}",
                )
        return SessionCommandResult(lines=lines, success=True)

    async def _ask(self, config: SessionConfig, prompts: tuple[str, ...]) -> SessionCommandResult:
        lines = [_startup_line(config)]
        try:
            manager = await SessionManager.create(config)
        except SessionError as error:
            lines.append(f"Session failed [{error.kind.value}]: {error}")
            return SessionCommandResult(lines=lines, success=False)

        success = True
        async with manager:
            results = await asyncio.gather(
                *(manager.send_message(prompt) for prompt in prompts),
                return_exceptions=True,
            )
        for index, result in enumerate(results, start=1):
            if isinstance(result, SessionError):
                success = False
                lines.append(f"[{index}] error [{result.kind.value}]: {result}")
            elif isinstance(result, BaseException):
                success = False
                lines.append(f"[{index}] error: {result}")
            else:
                lines.append(f"[{index}] {result}")
        return SessionCommandResult(lines=lines, success=success)


def _session_config(*, model: str | None) -> SessionConfig:
    settings = Settings.from_env()
    if model:
        settings = replace(settings, gateway=replace(settings.gateway, default_model=model))
    return settings.session_config()


def _startup_line(config: SessionConfig) -> str:
    return f"Starting session '{config.session_name}': {shlex.join(build_run_args(config))}"
