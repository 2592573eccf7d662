"""asyncio subprocess backend speaking stream-json over stdin/stdout."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from cc_demon.session.errors import ProtocolIOError, SpawnError
from cc_demon.session.models import SessionConfig

logger = logging.getLogger(__name__)

_STREAM_JSON_ARGS: tuple[str, ...] = (
    "-p",
    "--input-format",
    "stream-json",
    "--output-format",
    "stream-json",
    "--verbose",
)


class StreamJsonProcess:
    """Owned Claude CLI process with line-oriented pipes."""

    def __init__(self, process: asyncio.subprocess.Process, *, grace_seconds: float) -> None:
        self._process = process
        self._grace_seconds = grace_seconds
        self.pid: int | None = process.pid

    def is_alive(self) -> bool:
        return self._process.returncode is None

    async def write_line(self, text: str) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            raise ProtocolIOError("Claude process stdin is closed")
        try:
            stdin.write(text.encode("utf-8") + b"\n")
            await stdin.drain()
        except OSError as error:
            raise ProtocolIOError(f"Error writing to Claude: {error}") from error

    async def read_line(self, timeout: float) -> str:
        stdout = self._process.stdout
        if stdout is None:
            raise ProtocolIOError("Claude process stdout is not piped", eof=True)
        try:
            raw = await asyncio.wait_for(stdout.readline(), timeout=max(0.0, timeout))
        except ValueError:
            # Line exceeded the StreamReader limit; the buffer was discarded.
            logger.warning("Claude stdout line exceeded buffer limit (pid=%s), skipping", self.pid)
            return ""
        except TimeoutError:
            # TimeoutError is an OSError subclass; callers handle it as a deadline.
            raise
        except OSError as error:
            raise ProtocolIOError(f"Error reading from Claude: {error}") from error
        if not raw:
            raise ProtocolIOError("Claude process closed unexpectedly", eof=True)
        return raw.decode("utf-8", errors="replace")

    async def terminate(self) -> None:
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            with contextlib.suppress(OSError):
                stdin.close()

        if self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
        try:
            await asyncio.wait_for(self._process.wait(), timeout=self._grace_seconds)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._process.wait(), timeout=self._grace_seconds)
        logger.debug(
            "Claude process pid=%s terminated (returncode=%s)",
            self.pid,
            self._process.returncode,
        )


def build_run_args(config: SessionConfig) -> list[str]:
    """Render the full argv for a persistent stream-json session."""

    if not config.command or not config.command[0].strip():
        raise SpawnError("Claude CLI command is empty.", transient=False)

    args = [*config.command, *_STREAM_JSON_ARGS]
    if config.model:
        args.extend(["--model", config.model])
    args.extend(["--max-turns", str(config.max_turns)])
    args.extend(["--max-budget-usd", f"{config.max_budget_usd:.2f}"])
    for tool in config.allowed_tools:
        args.extend(["--allowedTools", tool])
    for tool in config.disallowed_tools:
        args.extend(["--disallowedTools", tool])
    if config.append_system_prompt:
        args.extend(["--append-system-prompt", config.append_system_prompt])
    return args


async def spawn_subprocess(config: SessionConfig) -> StreamJsonProcess:
    """Start one Claude CLI generation with piped stdin/stdout."""

    run_args = build_run_args(config)
    try:
        process = await asyncio.create_subprocess_exec(
            *run_args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            limit=config.max_line_bytes,
            start_new_session=True,
        )
    except FileNotFoundError as error:
        raise SpawnError(
            f"Claude CLI command not found: {run_args[0]}",
            transient=False,
        ) from error
    except OSError as error:
        raise SpawnError(f"Claude CLI failed to start: {error}", transient=True) from error

    logger.info(
        "Started Claude process pid=%s for session '%s' (model=%s)",
        process.pid,
        config.session_name,
        config.model or "default",
    )
    return StreamJsonProcess(process, grace_seconds=config.terminate_grace_seconds)
