"""Bounded FIFO request queue drained by a single worker task."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging

from cc_demon.session.backend.base import ClaudeSession
from cc_demon.session.errors import QueueSaturated, SessionUnavailable
from cc_demon.session.models import PendingRequest

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 50


class RequestQueue:
    """Accepts concurrent callers and feeds the session one request at a time."""

    def __init__(self, session: ClaudeSession, *, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("Request queue capacity must be > 0.")
        self.session = session
        self.capacity = capacity
        self._queue: asyncio.Queue[PendingRequest] = asyncio.Queue(maxsize=capacity)
        self._sequence = itertools.count(1)
        self._worker: asyncio.Task[None] | None = None
        self._closed = False
        self.dequeued = 0
        self.last_sequence = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, prompt: str) -> asyncio.Future[str]:
        """Queue a prompt and return the future its response is delivered to."""

        if self._closed:
            raise SessionUnavailable("Session manager is shut down")
        reply: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        request = PendingRequest(prompt=prompt, reply=reply, sequence=next(self._sequence))
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull as error:
            logger.warning("Request queue saturated (capacity=%d), rejecting request", self.capacity)
            raise QueueSaturated(
                f"Session request queue is full ({self.capacity} pending requests)",
            ) from error
        return reply

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self.run(), name="session-request-worker")

    async def stop(self) -> None:
        """Stop the worker and fail every request that will not be served."""

        self._closed = True
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        while not self._queue.empty():
            request = self._queue.get_nowait()
            _deliver_error(request, SessionUnavailable("Session manager is shut down"))

    async def run(self) -> None:
        """Serve requests in arrival order until cancelled."""

        logger.info("Worker loop started")
        try:
            while True:
                request = await self._queue.get()
                await self._serve(request)
        finally:
            logger.info("Worker loop ended")

    async def _serve(self, request: PendingRequest) -> None:
        self.dequeued += 1
        self.last_sequence = request.sequence
        logger.debug(
            "Processing request #%d: %s...",
            request.sequence,
            request.prompt[:_PREVIEW_CHARS],
        )
        try:
            result = await self.session.send_message(request.prompt)
        except asyncio.CancelledError:
            _deliver_error(request, SessionUnavailable("Session manager is shut down"))
            raise
        except Exception as error:  # noqa: BLE001
            logger.warning("Request #%d failed: %s", request.sequence, error)
            _deliver_error(request, error)
        else:
            if request.reply.done():
                logger.debug("Caller for request #%d is gone, discarding result", request.sequence)
            else:
                request.reply.set_result(result)
        finally:
            self._queue.task_done()


def _deliver_error(request: PendingRequest, error: BaseException) -> None:
    if request.reply.done():
        return
    request.reply.set_exception(error)
