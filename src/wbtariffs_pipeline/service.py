"""
service.py — Composition root: builds every long-lived component once.

The CLI and the API receive a Services bundle instead of importing
module-level singletons, so tests can assemble the same graph around
fakes.

Usage:
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    ok = await services.pipeline.run_once()
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from supabase import Client

from wbtariffs_shared.config import Settings, settings as default_settings
from wbtariffs_shared.db import create_supabase_client
from wbtariffs_pipeline.loaders.tariffs import TariffsRepository
from wbtariffs_pipeline.pipelines.tariffs import TariffPipeline
from wbtariffs_pipeline.scheduler import TariffScheduler
from wbtariffs_pipeline.sinks.google_sheets import GoogleSheetsSync
from wbtariffs_pipeline.sources.wildberries import WildberriesSource
from wbtariffs_pipeline.utils.metrics import MetricsCollector


@dataclass
class Services:
    settings: Settings
    metrics: MetricsCollector
    repository: TariffsRepository
    source: WildberriesSource
    pipeline: TariffPipeline
    sheets: GoogleSheetsSync
    scheduler: TariffScheduler
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_s(self) -> float:
        return round(time.monotonic() - self.started_at, 3)


def build_services(
    settings: Settings | None = None,
    *,
    client: Client | None = None,
    sheets_service: Any = None,
    metrics: MetricsCollector | None = None,
) -> Services:
    """
    Wire the service graph.

    Args:
        settings:       Configuration (default: global settings).
        client:         Supabase client; built from settings when omitted.
        sheets_service: Pre-built Sheets v4 client (tests).
        metrics:        Metrics collector; a fresh registry when omitted.
    """
    cfg = settings or default_settings
    metrics = metrics or MetricsCollector()
    repository = TariffsRepository(client or create_supabase_client(cfg), metrics)
    source = WildberriesSource(cfg, metrics)
    pipeline = TariffPipeline(source, repository, metrics)
    sheets = GoogleSheetsSync(repository, cfg, metrics, service=sheets_service)
    scheduler = TariffScheduler(pipeline, sheets, cfg, metrics)
    return Services(
        settings=cfg,
        metrics=metrics,
        repository=repository,
        source=source,
        pipeline=pipeline,
        sheets=sheets,
        scheduler=scheduler,
    )
