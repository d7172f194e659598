"""FastAPI application factory for the operational surface."""

from __future__ import annotations

import structlog
from fastapi import FastAPI

from wbtariffs_shared import __version__
from wbtariffs_pipeline.service import Services

from wbtariffs_api.middleware.logging import LoggingMiddleware
from wbtariffs_api.routers.health import router as health_router
from wbtariffs_api.routers.metrics import router as metrics_router

logger = structlog.get_logger()


def create_app(services: Services) -> FastAPI:
    app = FastAPI(
        title="WB Tariffs Service",
        description="Health, readiness and metrics for the Wildberries tariffs pipeline",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )
    app.state.services = services

    app.add_middleware(LoggingMiddleware)

    app.include_router(health_router)
    app.include_router(metrics_router)

    logger.info("app_created", environment=services.settings.environment)
    return app
