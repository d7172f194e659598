"""
wbtariffs_pipeline — Wildberries box-tariff ingestion for the tariffs service.

Architecture:
  sources/     — upstream adapter with bounded, classified retries
  transforms/  — numeric normalization and payload → draft mapping
  loaders/     — idempotent Supabase upserts and snapshot reads
  pipelines/   — the fetch → transform → persist run
  sinks/       — Google Sheets republishing of the latest snapshot
  scheduler    — APScheduler cron jobs
  service      — composition root
  utils/       — structlog configuration, retry policy, Prometheus metrics

Quick start:
    from wbtariffs_pipeline.service import build_services
    import asyncio
    services = build_services()
    ok = asyncio.run(services.pipeline.run_once())

CLI:
    wbtariffs fetch
    wbtariffs serve
    wbtariffs cleanup --days 30
"""

__version__ = "1.0.0"
