"""Error taxonomy for session supervision."""

from __future__ import annotations

from cc_demon.session.models import FailureKind


class SessionError(RuntimeError):
    """Base error carrying a normalized failure kind."""

    kind: FailureKind = FailureKind.IO


class SpawnError(SessionError):
    """Subprocess could not be created, with retryability hint."""

    kind = FailureKind.SPAWN_FAILED

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class InitializationError(SessionError):
    """Subprocess never became usable within the startup window."""

    kind = FailureKind.INIT_FAILED


class ProtocolTimeout(SessionError):
    """Response deadline exceeded for one exchange."""

    kind = FailureKind.TIMEOUT


class ProtocolIOError(SessionError):
    """Pipe write/read failure; ``eof`` marks a closed output stream."""

    kind = FailureKind.IO

    def __init__(self, message: str, *, eof: bool = False) -> None:
        super().__init__(message)
        self.eof = eof


class SemanticError(SessionError):
    """The subprocess itself reported an error result."""

    kind = FailureKind.SEMANTIC


class QueueSaturated(SessionError):
    """Bounded request queue is full."""

    kind = FailureKind.QUEUE_SATURATED


class SessionUnavailable(SessionError):
    """Session is dead or shut down; the request was not attempted."""

    kind = FailureKind.UNAVAILABLE
