"""Periodic context compaction through the shared session."""

from __future__ import annotations

import asyncio
import logging

from cc_demon.session.backend.base import ClaudeSession
from cc_demon.session.errors import SessionError

logger = logging.getLogger(__name__)


class Compactor:
    """Sends the maintenance command on a fixed period; failures never stop it."""

    def __init__(
        self,
        session: ClaudeSession,
        *,
        interval_seconds: float = 3600.0,
        session_name: str = "",
    ) -> None:
        self.session = session
        self.interval_seconds = interval_seconds
        self.session_name = session_name
        self.completed = 0
        self.failed = 0

    async def run(self) -> None:
        logger.info(
            "Compaction task started for session '%s' (interval: %gs)",
            self.session_name,
            self.interval_seconds,
        )
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception:
                logger.exception("Compaction task error for session '%s'", self.session_name)

    async def tick(self) -> bool:
        logger.info("Running scheduled compaction for session '%s'", self.session_name)
        try:
            await self.session.compact()
        except SessionError as error:
            self.failed += 1
            logger.error("Compaction failed for session '%s': %s", self.session_name, error)
            return False
        self.completed += 1
        logger.info("Compaction completed successfully for session '%s'", self.session_name)
        return True
