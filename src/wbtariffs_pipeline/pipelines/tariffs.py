"""
pipelines/tariffs.py — Wildberries box tariffs: fetch → transform → upsert.

One run walks a fixed sequence of states:

    IDLE → FETCHING → TRANSFORMING → PERSISTING → IDLE

  - FETCHING:     WildberriesSource.fetch_tariffs(); None ends the run
  - TRANSFORMING: transform_response(); no records ends the run
  - PERSISTING:   TariffsRepository.upsert_batch(); a storage fault ends the run

A failed stage short-circuits the rest. run_once() never raises: every
fault is logged and reported as False, so the scheduler job that calls it
cannot take the process down.

Usage:
    from wbtariffs_pipeline.pipelines.tariffs import TariffPipeline

    pipeline = TariffPipeline(source, repository, metrics)
    ok = await pipeline.run_once()
    removed = await pipeline.cleanup(days=30)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum

import structlog

from wbtariffs_shared.time_utils import utcnow
from wbtariffs_pipeline.loaders.tariffs import TariffsRepository
from wbtariffs_pipeline.sources.wildberries import WildberriesSource
from wbtariffs_pipeline.transforms.tariffs import transform_response
from wbtariffs_pipeline.utils.metrics import MetricsCollector

log = structlog.get_logger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    PERSISTING = "persisting"


class TariffPipeline:
    """Composes the fetcher, the transformer and the repository into one run."""

    name = "wb_tariffs"

    def __init__(
        self,
        source: WildberriesSource,
        repository: TariffsRepository,
        metrics: MetricsCollector | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._source = source
        self._repository = repository
        self._metrics = metrics or MetricsCollector()
        self._clock = clock
        self.state = PipelineState.IDLE
        self._log = log.bind(pipeline=self.name)

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self._log.debug("pipeline_state", state=state.value)

    async def run_once(self) -> bool:
        """
        Fetch today's tariffs and persist them.

        Returns:
            True when at least one record was fetched and written.
        """
        t0 = time.monotonic()
        self._log.info("pipeline_run_start")
        try:
            self._enter(PipelineState.FETCHING)
            payload = await self._source.fetch_tariffs()
            if payload is None:
                self._log.error("pipeline_fetch_failed")
                return False

            self._enter(PipelineState.TRANSFORMING)
            result = transform_response(payload, self._clock())
            if not result.records:
                self._log.warning(
                    "pipeline_no_records",
                    structural_error=result.structural_error,
                    skipped=result.skipped,
                )
                return False

            self._enter(PipelineState.PERSISTING)
            load = await self._repository.upsert_batch(result.records)
            self._metrics.record_tariffs_processed(load.records_loaded)

            self._log.info(
                "pipeline_run_complete",
                records_loaded=load.records_loaded,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            return True
        except Exception as exc:
            self._log.error(
                "pipeline_run_failed",
                state=self.state.value,
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
                exc_info=True,
            )
            return False
        finally:
            self._enter(PipelineState.IDLE)

    async def cleanup(self, days: int) -> int:
        """
        Run the retention sweep; never raises.

        Returns:
            Number of rows removed, 0 on failure.
        """
        try:
            return await self._repository.delete_older_than(days)
        except Exception as exc:
            self._log.error("retention_sweep_failed", days=days, error=str(exc), exc_info=True)
            return 0
