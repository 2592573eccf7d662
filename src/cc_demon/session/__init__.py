"""Persistent Claude CLI session supervision.

Starting ``claude -p`` costs several seconds per message, so the gateway keeps
one long-lived process in stream-json mode and multiplexes every caller onto
it. This package owns that process: it serializes exchanges, restarts the
process when it dies and periodically compacts its context.
"""

from cc_demon.session.backend import ClaudeSession
from cc_demon.session.engine import SessionEngine
from cc_demon.session.errors import (
    InitializationError,
    ProtocolIOError,
    ProtocolTimeout,
    QueueSaturated,
    SemanticError,
    SessionError,
    SessionUnavailable,
    SpawnError,
)
from cc_demon.session.manager import SessionManager
from cc_demon.session.models import FailureKind, SessionConfig, SessionState

__all__ = [
    "ClaudeSession",
    "FailureKind",
    "InitializationError",
    "ProtocolIOError",
    "ProtocolTimeout",
    "QueueSaturated",
    "SemanticError",
    "SessionConfig",
    "SessionEngine",
    "SessionError",
    "SessionManager",
    "SessionState",
    "SessionUnavailable",
    "SpawnError",
]
