"""Periodic liveness polling with bounded restart attempts."""

from __future__ import annotations

import asyncio
import logging

from cc_demon.session.backend.base import ClaudeSession
from cc_demon.session.errors import SessionError
from cc_demon.session.models import HealthCheckResult

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Polls session liveness and drives restarts up to a failure ceiling.

    Each failed poll increments ``consecutive_failures``. While the counter is
    at or below ``max_restart_attempts`` a restart is attempted and a successful
    restart resets the counter. Above the ceiling the monitor stops acting but
    keeps polling and logging, so a later manual restart can still recover the
    session and the next healthy poll resets the counter.
    """

    def __init__(
        self,
        session: ClaudeSession,
        *,
        interval_seconds: float = 10.0,
        max_restart_attempts: int = 3,
        session_name: str = "",
    ) -> None:
        self.session = session
        self.interval_seconds = interval_seconds
        self.max_restart_attempts = max_restart_attempts
        self.session_name = session_name
        self.consecutive_failures = 0

    async def run(self) -> None:
        logger.info(
            "Health monitor started for session '%s' (check every %gs)",
            self.session_name,
            self.interval_seconds,
        )
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception:
                logger.exception("Health monitor error for session '%s'", self.session_name)

    async def tick(self) -> HealthCheckResult:
        """Run one liveness check and, within the ceiling, one restart attempt."""

        if self.session.is_alive():
            if self.consecutive_failures > 0:
                logger.info(
                    "Session '%s' recovered, resetting failure counter (was %d)",
                    self.session_name,
                    self.consecutive_failures,
                )
            self.consecutive_failures = 0
            return HealthCheckResult(alive=True, consecutive_failures=0)

        self.consecutive_failures += 1
        logger.warning(
            "Session '%s' not alive (failure %d/%d)",
            self.session_name,
            self.consecutive_failures,
            self.max_restart_attempts,
        )
        if self.consecutive_failures > self.max_restart_attempts:
            logger.error(
                "Max restart attempts (%d) exceeded for session '%s', not restarting "
                "(consecutive failures: %d)",
                self.max_restart_attempts,
                self.session_name,
                self.consecutive_failures,
            )
            return HealthCheckResult(
                alive=False,
                consecutive_failures=self.consecutive_failures,
            )

        logger.info("Attempting to restart session '%s'...", self.session_name)
        try:
            await self.session.restart()
        except SessionError as error:
            logger.error(
                "Failed to restart session '%s' (failure %d/%d): %s",
                self.session_name,
                self.consecutive_failures,
                self.max_restart_attempts,
                error,
            )
            return HealthCheckResult(
                alive=False,
                consecutive_failures=self.consecutive_failures,
                restart_attempted=True,
                error=str(error),
            )

        logger.info("Session '%s' restarted successfully", self.session_name)
        self.consecutive_failures = 0
        return HealthCheckResult(
            alive=False,
            consecutive_failures=0,
            restart_attempted=True,
            restarted=True,
        )
