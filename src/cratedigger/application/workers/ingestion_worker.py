# Hey future me - this is the "external poller" for label ingestion.
#
# advance_label() does exactly one unit of work, so something has to call it again and
# again. That's this worker:
# 1. Busy flag - at most ONE step in flight, process-wide (the /api/worker/process route
#    goes through the same worker instance, so a click can't overlap the loop)
# 2. Fixed short interval between steps (crawl.poll_interval_seconds, ~1.6s)
# 3. A label is looped until done, error, paused or inactive
#
# Error labels are NOT retried automatically. Someone has to requeue them
# (LabelService.requeue / requeue_errored), otherwise a broken credential would hammer
# the provider every 1.6s.
"""Background worker that crawls labels step by step."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable

from cratedigger.application.services.ingestion_service import (
    LabelIngestionService,
    StepOutcome,
    StepResult,
)
from cratedigger.config.settings import CrawlSettings
from cratedigger.domain.entities import LabelStatus
from cratedigger.infrastructure.persistence import Database, LabelRepository

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Outcomes after which the same label must not be stepped again right away
STOP_OUTCOMES = frozenset(
    {
        StepOutcome.NOT_FOUND,
        StepOutcome.INACTIVE,
        StepOutcome.PAUSED,
        StepOutcome.ERROR,
        StepOutcome.COMPLETE,
    }
)

CRAWLABLE_STATUSES = frozenset({LabelStatus.QUEUED, LabelStatus.PROCESSING})

# How long stop() waits for the step in flight before cancelling it
STOP_TIMEOUT_SECONDS = 30.0


class IngestionWorker:
    """Runs ingestion steps one at a time with a fixed pause between them."""

    def __init__(
        self,
        db: Database,
        service: LabelIngestionService,
        settings: CrawlSettings,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.db = db
        self.service = service
        self.settings = settings
        self._sleep = sleep
        self._busy = False
        self._running = False
        self._task: asyncio.Task[None] | None = None

        self._steps_completed = 0
        self._errors_total = 0
        self._start_time = time.time()

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def running(self) -> bool:
        return self._running

    @property
    def _stopping(self) -> bool:
        # stop() was called while the background loop was mid-pass
        return self._task is not None and not self._running

    async def process(self, user_id: str, label_id: int) -> StepResult:
        """Run one step unless another one is in flight."""
        if self._busy:
            return StepResult(False, "Worker busy", StepOutcome.BUSY)

        self._busy = True
        try:
            result = await self.service.advance_label(user_id, label_id)
        finally:
            self._busy = False

        self._steps_completed += 1
        if result.outcome == StepOutcome.ERROR:
            self._errors_total += 1
        return result

    async def run_label(
        self, user_id: str, label_id: int, max_steps: int | None = None
    ) -> StepResult:
        """Step one label until it stops (done, error, paused, inactive, gone).

        Args:
            user_id: Acting tenant
            label_id: Stored label id
            max_steps: Safety valve; None means no limit

        Returns:
            The last step result
        """
        steps = 0
        while True:
            result = await self.process(user_id, label_id)
            steps += 1
            if result.done or result.outcome in STOP_OUTCOMES or self._stopping:
                return result
            if max_steps is not None and steps >= max_steps:
                return result
            await self._sleep(self.settings.poll_interval_seconds)

    async def run_once(self, user_id: str) -> int:
        """Crawl every active queued/processing label of a tenant, one after another.

        Returns:
            Number of labels visited
        """
        async with self.db.session_scope() as session:
            labels = await LabelRepository(session, user_id).list_all()
        eligible = [
            label for label in labels if label.active and label.status in CRAWLABLE_STATUSES
        ]
        for label in eligible:
            if self._stopping:
                break
            result = await self.run_label(user_id, label.id)
            logger.info(f"Label {label.id} stopped: {result.outcome.value} ({result.message})")
        return len(eligible)

    async def start(self, user_id: str) -> None:
        """Start crawling a tenant's labels in the background.

        Safe to call multiple times (idempotent).
        """
        if self._running:
            logger.warning("ingestion_worker.already_running")
            return

        self._running = True
        self._start_time = time.time()
        self._task = asyncio.create_task(self._run_loop(user_id))
        logger.info(
            "worker.started",
            extra={
                "worker": "ingestion",
                "poll_interval_seconds": self.settings.poll_interval_seconds,
            },
        )

    async def stop(self) -> None:
        """Stop the background loop.

        A step in flight is allowed to finish; the loop exits before starting another.
        Only a step that hangs past STOP_TIMEOUT_SECONDS gets cancelled.
        """
        self._running = False
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                try:
                    await asyncio.wait_for(self._task, timeout=STOP_TIMEOUT_SECONDS)
                except asyncio.TimeoutError:
                    # wait_for has cancelled the task by now
                    logger.warning("ingestion_worker.stop_timeout, step cancelled")
            self._task = None

        logger.info(
            "worker.stopped",
            extra={
                "worker": "ingestion",
                "steps_completed": self._steps_completed,
                "errors_total": self._errors_total,
                "uptime_seconds": round(time.time() - self._start_time, 2),
            },
        )

    async def _run_loop(self, user_id: str) -> None:
        while self._running:
            try:
                visited = await self.run_once(user_id)
                if visited == 0:
                    logger.debug("ingestion_worker.idle")
            except Exception as e:
                self._errors_total += 1
                # Don't crash the loop on errors - log and continue
                logger.error(
                    "ingestion_worker.loop_error",
                    exc_info=True,
                    extra={"error_type": type(e).__name__},
                )

            if not self._running:
                break
            try:
                await self._sleep(self.settings.poll_interval_seconds)
            except asyncio.CancelledError:
                break

    def get_stats(self) -> dict[str, float | int | bool]:
        return {
            "running": self._running,
            "busy": self._busy,
            "steps_completed": self._steps_completed,
            "errors_total": self._errors_total,
            "uptime_seconds": round(time.time() - self._start_time, 2),
        }


__all__ = ["IngestionWorker", "STOP_OUTCOMES"]
