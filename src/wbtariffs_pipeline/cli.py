"""
cli.py — Click CLI entrypoint for the tariffs service.

Usage:
    wbtariffs serve
    wbtariffs fetch
    wbtariffs sync-sheets
    wbtariffs cleanup --days 30
    wbtariffs dates
    wbtariffs latest
"""

from __future__ import annotations

import asyncio
import sys

import click
import structlog

from wbtariffs_shared.config import settings

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level",
)
def main(log_level: str) -> None:
    """Wildberries box tariffs service."""
    from wbtariffs_pipeline.utils.logging import configure_logging

    configure_logging(log_level=log_level)


async def _serve() -> None:
    import uvicorn

    from wbtariffs_api.app import create_app
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    app = create_app(services)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=services.settings.api_host,
            port=services.settings.api_port,
            log_config=None,
        )
    )

    services.scheduler.start()
    log.info(
        "service_started",
        host=services.settings.api_host,
        port=services.settings.api_port,
        environment=services.settings.environment,
    )
    try:
        await server.serve()
    finally:
        await services.scheduler.stop()
        log.info("service_stopped")


@main.command()
def serve() -> None:
    """Run the scheduler and the health/metrics server until interrupted."""
    asyncio.run(_serve())


@main.command()
def fetch() -> None:
    """Fetch today's tariffs once and upsert them."""
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    ok = asyncio.run(services.pipeline.run_once())
    click.echo("Fetch complete." if ok else "Fetch failed.")
    if not ok:
        sys.exit(1)


@main.command(name="sync-sheets")
def sync_sheets() -> None:
    """Republish the latest snapshot to every configured spreadsheet."""
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    result = asyncio.run(services.sheets.update_all_sheets())
    if result.skipped_reason:
        click.echo(f"Skipped: {result.skipped_reason}")
        return
    click.echo(f"Updated {result.successful} sheet(s), {result.failed} failed, {result.rows} rows.")
    for spreadsheet_id, error in result.errors.items():
        click.echo(f"  ✗ {spreadsheet_id}: {error}", err=True)
    if result.failed:
        sys.exit(1)


@main.command()
@click.option("--days", default=None, type=int, help="Retention window in days (default: RETENTION_DAYS)")
def cleanup(days: int | None) -> None:
    """Delete tariff rows older than the retention window."""
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    window = days if days is not None else services.settings.retention_days
    removed = asyncio.run(services.repository.delete_older_than(window))
    click.echo(f"Removed {removed} row(s) older than {window} day(s).")


@main.command()
def dates() -> None:
    """List the distinct stored dates, newest first."""
    from wbtariffs_pipeline.service import build_services

    services = build_services()
    stored = asyncio.run(services.repository.get_all_dates())
    if not stored:
        click.echo("No tariffs stored.")
        return
    for day in stored:
        click.echo(day.isoformat())


@main.command()
def latest() -> None:
    """Print the latest snapshot, coefficient ascending."""
    from wbtariffs_pipeline.service import build_services
    from wbtariffs_pipeline.sinks.google_sheets import to_sheet_frame

    services = build_services()
    records = asyncio.run(services.repository.get_latest())
    if not records:
        click.echo("No tariffs stored.")
        return
    click.echo(to_sheet_frame(records))


if __name__ == "__main__":
    main()
