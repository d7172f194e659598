"""
utils/logging.py — structlog configuration for the tariffs service.

Sets up structured logging with JSON or human-readable console output
controlled by settings.log_format. Call configure_logging() once at
process startup (done automatically by the CLI).

Usage:
    import structlog
    from wbtariffs_pipeline.utils.logging import configure_logging

    configure_logging()
    log = structlog.get_logger("wbtariffs_pipeline.sources.wildberries")
    log.info("fetch_attempt", attempt=1, max_attempts=3, date="2024-05-01")

    # Bind run-wide context for all subsequent log calls:
    log = log.bind(run_id=str(run_id))
    log.info("records_transformed", count=87)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from wbtariffs_shared.config import settings

# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog for the service process.

    Should be called once at startup. Idempotent.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level = (log_level or settings.log_level).upper()
    fmt = log_format or settings.log_format
    numeric_level = getattr(logging, level, logging.INFO)

    # Standard library logging integration (uvicorn, apscheduler, httpx)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

