"""Session backend implementations."""

from cc_demon.session.backend.base import ClaudeSession, Spawner, SubprocessHandle
from cc_demon.session.backend.subprocess_backend import (
    StreamJsonProcess,
    build_run_args,
    spawn_subprocess,
)

__all__ = [
    "ClaudeSession",
    "Spawner",
    "StreamJsonProcess",
    "SubprocessHandle",
    "build_run_args",
    "spawn_subprocess",
]
