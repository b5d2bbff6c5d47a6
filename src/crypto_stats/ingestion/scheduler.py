"""Periodic trigger for the ingestion pipeline.

The pipeline itself owns no timers. This scheduler wraps it with an asyncio
task that runs one cycle at startup and then every ``interval_seconds``.
"""

from __future__ import annotations

import asyncio
import logging

from crypto_stats.core.config import SchedulerConfig
from crypto_stats.core.exceptions import CryptoStatsError
from crypto_stats.core.models import IngestResult
from crypto_stats.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class IngestScheduler:
    """Runs ``IngestionPipeline.ingest_once`` on a fixed interval.

    All triggers (timer ticks and manual ``run_once`` calls from the API or
    CLI) share one lock, so cycles never overlap.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        interval_seconds: float = 7200,
        run_on_startup: bool = True,
    ) -> None:
        self._pipeline = pipeline
        self._interval = interval_seconds
        self._run_on_startup = run_on_startup
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self.last_result: IngestResult | None = None
        self.last_error: str | None = None

    @classmethod
    def from_config(
        cls, config: SchedulerConfig, pipeline: IngestionPipeline
    ) -> IngestScheduler:
        return cls(
            pipeline,
            interval_seconds=config.interval_seconds,
            run_on_startup=config.run_on_startup,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> IngestResult:
        """Run one serialized ingestion cycle. Errors propagate to the caller."""
        async with self._lock:
            try:
                result = await self._pipeline.ingest_once()
            except CryptoStatsError as e:
                self.last_error = str(e)
                raise
            self.last_result = result
            self.last_error = None
            return result

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="crypto-stats-ingest")
        logger.info("Ingestion scheduler started (interval %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Ingestion scheduler stopped")

    async def _loop(self) -> None:
        if self._run_on_startup:
            await self._tick()
        while True:
            await asyncio.sleep(self._interval)
            await self._tick()

    async def _tick(self) -> None:
        logger.info("Running scheduled crypto data fetch")
        try:
            result = await self.run_once()
        except CryptoStatsError as e:
            logger.error("Scheduled ingestion failed: %s", e, extra={"context": e.context})
            return
        except Exception:
            logger.exception("Unexpected error in scheduled ingestion")
            return
        if result.skipped:
            logger.warning(
                "Scheduled ingestion skipped assets: %s",
                ", ".join(str(a) for a in result.skipped),
            )
