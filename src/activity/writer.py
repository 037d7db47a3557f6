"""Fire-and-forget activity writer with background processing.

Key features:
- Non-blocking emission via asyncio.Queue.put_nowait()
- Graceful degradation (drop + log on queue full)
- Batch processing (batch_size entries or flush_interval timeout)
- A failed write is logged and never reaches the request that caused it
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from .models import ActivityLog, ActivityType


if TYPE_CHECKING:
    from uuid import UUID

    from .service import ActivityService


logger = structlog.get_logger(__name__)


class ActivityWriter:
    """Non-blocking activity log writer with background worker."""

    def __init__(
        self,
        service: ActivityService | None = None,
        queue_size: int = 10000,
        batch_size: int = 50,
        flush_interval: float = 1.0,
    ) -> None:
        """Initialize the writer.

        Args:
            service: Persists batches; without one entries are only counted
            queue_size: Maximum queue size (entries dropped when full)
            batch_size: Entries per batch write
            flush_interval: Max seconds between batch flushes
        """
        self.service = service
        self.queue_size = queue_size
        self.batch_size = batch_size
        self.flush_interval = flush_interval

        self._queue: asyncio.Queue[ActivityLog] = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._worker_task: asyncio.Task | None = None

        self._emitted = 0
        self._dropped = 0
        self._written = 0
        self._failed = 0

    # ==========================================================================
    # Fire-and-forget emission
    # ==========================================================================

    def emit(
        self,
        tenant_id: UUID,
        user_id: UUID,
        activity_type: ActivityType | str,
        resource_id: UUID | None = None,
        resource_type: str | None = None,
    ) -> bool:
        """Queue an activity entry. Never raises.

        Returns:
            True if queued, False if dropped
        """
        try:
            kind = ActivityType(activity_type)
        except ValueError:
            logger.warning("activity_type_unknown", activity_type=str(activity_type))
            return False

        log = ActivityLog(
            tenant_id=tenant_id,
            user_id=user_id,
            activity_type=kind.value,
            resource_id=resource_id,
            resource_type=resource_type,
        )
        try:
            self._queue.put_nowait(log)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                "activity_queue_full",
                activity_type=log.activity_type,
                queue_size=self.queue_size,
                dropped_total=self._dropped,
            )
            return False
        self._emitted += 1
        return True

    # ==========================================================================
    # Background Worker
    # ==========================================================================

    async def start(self) -> None:
        """Start the background worker."""
        if self._running:
            logger.warning("activity_writer_already_running")
            return

        self._running = True
        self._worker_task = asyncio.create_task(
            self._worker_loop(),
            name="activity_writer",
        )
        logger.info(
            "activity_writer_started",
            queue_size=self.queue_size,
            batch_size=self.batch_size,
        )

    async def stop(self) -> None:
        """Stop the worker and flush what is left."""
        if not self._running:
            return

        self._running = False

        if self._worker_task:
            try:
                await asyncio.wait_for(self._worker_task, timeout=5.0)
            except TimeoutError:
                logger.warning("activity_writer_stop_timeout")
                self._worker_task.cancel()
            except asyncio.CancelledError:
                pass

        await self.flush()

        logger.info("activity_writer_stopped", **self.get_stats())

    async def _worker_loop(self) -> None:
        """Collect entries until the batch is full or the interval passes."""
        batch: list[ActivityLog] = []

        while self._running:
            try:
                timeout_reached = False
                try:
                    log = await asyncio.wait_for(
                        self._queue.get(),
                        timeout=self.flush_interval,
                    )
                    batch.append(log)
                except TimeoutError:
                    timeout_reached = True

                if len(batch) >= self.batch_size or (timeout_reached and batch):
                    await self._write_batch(batch)
                    batch = []

            except asyncio.CancelledError:
                if batch:
                    await self._write_batch(batch)
                raise

            except Exception:
                logger.exception("activity_writer_error")
                await asyncio.sleep(0.1)

        if batch:
            await self._write_batch(batch)

    async def _write_batch(self, batch: list[ActivityLog]) -> None:
        if not batch:
            return
        if self.service is None:
            self._written += len(batch)
            return
        try:
            self._written += await self.service.record_batch(batch)
        except Exception as e:
            self._failed += len(batch)
            logger.warning(
                "activity_log_failed",
                batch_size=len(batch),
                error=str(e),
            )

    async def flush(self) -> None:
        """Write everything currently queued."""
        remaining: list[ActivityLog] = []
        while not self._queue.empty():
            try:
                remaining.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        await self._write_batch(remaining)

    # ==========================================================================
    # Status
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_length(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict[str, int | bool]:
        """Writer counters for health reporting."""
        return {
            "running": self._running,
            "queue_length": self._queue.qsize(),
            "emitted": self._emitted,
            "dropped": self._dropped,
            "written": self._written,
            "failed": self._failed,
        }
