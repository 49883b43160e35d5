"""Outbound mirror queue — decouples mutations from the document store.

Mutations call enqueue() (never blocks, never raises) and move on. A single
background worker drains the queue and retries each request with capped
exponential backoff:

    delay(attempt) = min(base_delay * 2 ** (attempt - 1), max_delay)

A request that still fails after max_attempts is logged and dropped; the
next full sync ("all") repairs the mirror.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..config import MirrorConfig
from ..errors import ValidationError
from .job import MirrorJob

logger = logging.getLogger(__name__)


@dataclass
class MirrorRequest:
    action: str
    ids: list[str] = field(default_factory=list)
    attempts: int = 0


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


class MirrorQueue:
    """Bounded asyncio queue with one retrying worker."""

    def __init__(
        self,
        job: Optional[MirrorJob],
        config: MirrorConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.job = job
        self.config = config
        self._sleep = sleep
        self._queue: asyncio.Queue[MirrorRequest] = asyncio.Queue(maxsize=config.queue_size)
        self._worker: Optional[asyncio.Task] = None
        self._stats = {"queued": 0, "synced": 0, "failed": 0, "retried": 0, "dropped": 0}

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled and self.job is not None

    def enqueue(self, action: str, ids: Optional[list[str]] = None) -> str:
        """Queue a sync request.

        Returns:
            "queued", "disabled" (mirror off) or "dropped" (queue full)
        """
        if not self.is_enabled:
            logger.debug(f"Mirror disabled — skipping {action} {ids}")
            return "disabled"
        try:
            self._queue.put_nowait(MirrorRequest(action=action, ids=list(ids or [])))
        except asyncio.QueueFull:
            self._stats["dropped"] += 1
            logger.warning(f"Mirror queue full — dropped {action} {ids}")
            return "dropped"
        self._stats["queued"] += 1
        return "queued"

    async def _process(self, request: MirrorRequest) -> None:
        while True:
            request.attempts += 1
            try:
                result = await self.job.sync(request.action, request.ids or None)
            except ValidationError as e:
                self._stats["failed"] += 1
                logger.error(f"Mirror request {request.action} {request.ids} rejected: {e}")
                return
            except Exception as e:
                error = str(e)
            else:
                retry_ids = [
                    d["project_id"] for d in result["details"]
                    if not d["success"] and d.get("retryable", True)
                ]
                if not retry_ids:
                    self._stats["synced" if result["failed"] == 0 else "failed"] += 1
                    return
                # Only the projects the store rejected are retried
                request.action, request.ids = "project", retry_ids
                error = f"{len(retry_ids)} document(s) failed"

            if request.attempts >= self.config.max_attempts:
                self._stats["failed"] += 1
                logger.error(
                    f"Mirror {request.action} {request.ids} gave up after "
                    f"{request.attempts} attempts: {error}"
                )
                return

            delay = backoff_delay(
                request.attempts, self.config.base_delay, self.config.max_delay
            )
            self._stats["retried"] += 1
            logger.warning(
                f"Mirror {request.action} {request.ids} failed "
                f"(attempt {request.attempts}/{self.config.max_attempts}): {error} "
                f"— retrying in {delay:.1f}s"
            )
            await self._sleep(delay)

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                await self._process(request)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is None and self.is_enabled:
            self._worker = asyncio.create_task(self._run())
            logger.info("Mirror worker started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Mirror worker stopped")

    async def join(self) -> None:
        """Wait until every queued request has been processed."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def stats(self) -> dict:
        return {**self._stats, "pending": self.pending, "enabled": self.is_enabled}
