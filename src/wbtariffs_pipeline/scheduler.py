"""
scheduler.py — Cron jobs driving the tariffs service.

Wraps APScheduler 3.x ``AsyncIOScheduler`` so every job runs on the
service's own event loop:

  fetch_wb_data   CRON_FETCH_WB_DATA  (default hourly)     → TariffPipeline.run_once()
  update_sheets   CRON_UPDATE_SHEETS  (default every 30 m) → GoogleSheetsSync.update_all_sheets()
  cleanup         CRON_CLEANUP        (default 03:00 UTC)  → TariffPipeline.cleanup(RETENTION_DAYS)

Jobs are independent: there is no lock between them, so a sheet refresh
may interleave with a fetch at I/O boundaries. Storage upserts are
idempotent per natural key and get_latest() only ever sees committed
rows. Each job runs at most one instance at a time and missed runs are
coalesced.

On start() one fetch runs immediately, followed by one sheet refresh.

Usage:
    scheduler = TariffScheduler(pipeline, sheets, settings, metrics)
    scheduler.start()           # inside a running event loop
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from wbtariffs_shared.config import Settings, settings as default_settings
from wbtariffs_pipeline.pipelines.tariffs import TariffPipeline
from wbtariffs_pipeline.sinks.google_sheets import GoogleSheetsSync
from wbtariffs_pipeline.utils.metrics import MetricsCollector

log = structlog.get_logger(__name__)

FETCH_JOB_ID = "fetch_wb_data"
SHEETS_JOB_ID = "update_sheets"
CLEANUP_JOB_ID = "cleanup"


class TariffScheduler:
    """Owns the cron jobs and the start-up run."""

    def __init__(
        self,
        pipeline: TariffPipeline,
        sheets: GoogleSheetsSync,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        *,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._sheets = sheets
        self._settings = settings or default_settings
        self._metrics = metrics or MetricsCollector()
        self._scheduler = scheduler
        self.initial_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _add_cron_job(self, func: Any, expression: str, job_id: str) -> None:
        self._scheduler.add_job(
            func,
            CronTrigger.from_crontab(expression, timezone="UTC"),
            id=job_id,
            name=job_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def start(self, *, run_initial: bool = True) -> None:
        """Register the jobs and start the scheduler. Needs a running loop."""
        cfg = self._settings
        log.info("scheduler_starting")

        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                event_loop=asyncio.get_running_loop(), timezone="UTC"
            )

        self._add_cron_job(self.fetch_wb_data, cfg.cron_fetch_wb_data, FETCH_JOB_ID)
        self._add_cron_job(self.update_google_sheets, cfg.cron_update_sheets, SHEETS_JOB_ID)
        if cfg.retention_days > 0:
            self._add_cron_job(self.cleanup_old_tariffs, cfg.cron_cleanup, CLEANUP_JOB_ID)

        self._scheduler.start()
        log.info(
            "scheduler_started",
            fetch_cron=cfg.cron_fetch_wb_data,
            sheets_cron=cfg.cron_update_sheets,
            cleanup_cron=cfg.cron_cleanup if cfg.retention_days > 0 else None,
        )

        if run_initial:
            self.initial_task = asyncio.get_running_loop().create_task(
                self.run_initial_tasks()
            )

    async def stop(self) -> None:
        """Stop scheduling new runs and let the start-up run drain."""
        log.info("scheduler_stopping")
        if self.running:
            self._scheduler.shutdown(wait=False)
            # AsyncIOScheduler queues the shutdown onto the loop; let it run
            await asyncio.sleep(0)
        if self.initial_task is not None and not self.initial_task.done():
            await self.initial_task
        log.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and bool(self._scheduler.running)

    def get_status(self) -> dict[str, str]:
        def state(job_id: str) -> str:
            if self.running and self._scheduler.get_job(job_id) is not None:
                return "running"
            return "stopped"

        return {
            "fetch_data": state(FETCH_JOB_ID),
            "update_sheets": state(SHEETS_JOB_ID),
            "cleanup": state(CLEANUP_JOB_ID),
        }

    # ------------------------------------------------------------------
    # Jobs — none of them raise
    # ------------------------------------------------------------------

    async def run_initial_tasks(self) -> None:
        log.info("initial_tasks_start")
        await self.fetch_wb_data()
        await self.update_google_sheets()
        log.info("initial_tasks_complete")

    async def fetch_wb_data(self) -> bool:
        log.info("job_start", job=FETCH_JOB_ID)
        with self._metrics.track_task(FETCH_JOB_ID):
            ok = await self._pipeline.run_once()
        if ok:
            log.info("job_complete", job=FETCH_JOB_ID)
        else:
            log.error("job_failed", job=FETCH_JOB_ID)
        return ok

    async def update_google_sheets(self) -> bool:
        log.info("job_start", job=SHEETS_JOB_ID)
        try:
            with self._metrics.track_task(SHEETS_JOB_ID):
                result = await self._sheets.update_all_sheets()
        except Exception as exc:
            log.error("job_failed", job=SHEETS_JOB_ID, error=str(exc), exc_info=True)
            return False
        log.info(
            "job_complete",
            job=SHEETS_JOB_ID,
            successful=result.successful,
            failed=result.failed,
            skipped_reason=result.skipped_reason,
        )
        return result.failed == 0

    async def cleanup_old_tariffs(self) -> int:
        log.info("job_start", job=CLEANUP_JOB_ID)
        with self._metrics.track_task(CLEANUP_JOB_ID):
            removed = await self._pipeline.cleanup(self._settings.retention_days)
        log.info("job_complete", job=CLEANUP_JOB_ID, removed=removed)
        return removed
