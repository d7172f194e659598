"""Health, readiness, liveness and status endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from wbtariffs_shared import __version__
from wbtariffs_shared.constants import SERVICE_NAME
from wbtariffs_pipeline.service import Services

from wbtariffs_api.dependencies import get_services
from wbtariffs_api.responses import (
    DependencyCheck,
    HealthChecks,
    HealthStatus,
    ProbeStatus,
    SchedulerCheck,
    ServiceStatus,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


async def _check_database(services: Services) -> DependencyCheck:
    try:
        latency = await services.repository.ping()
    except Exception as exc:
        logger.error("database_check_failed", error=str(exc))
        return DependencyCheck(status="unhealthy", error=str(exc))
    return DependencyCheck(status="healthy", latency_ms=latency)


def _check_scheduler(services: Services) -> SchedulerCheck:
    return SchedulerCheck(
        status="healthy" if services.scheduler.running else "unhealthy",
        tasks=services.scheduler.get_status(),
    )


@router.get("/health", response_model=HealthStatus)
async def health(services: Services = Depends(get_services)) -> JSONResponse:
    database = await _check_database(services)
    scheduler = _check_scheduler(services)
    healthy = database.status == "healthy" and scheduler.status == "healthy"
    body = HealthStatus(
        status="healthy" if healthy else "unhealthy",
        uptime_s=services.uptime_s,
        checks=HealthChecks(database=database, scheduler=scheduler),
    )
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=body.model_dump(mode="json"),
    )


@router.get("/ready", response_model=ProbeStatus)
async def ready(services: Services = Depends(get_services)) -> JSONResponse:
    database = await _check_database(services)
    if database.status != "healthy":
        body = ProbeStatus(status="not_ready", error="Service not ready")
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return JSONResponse(
        status_code=200,
        content=ProbeStatus(status="ready").model_dump(mode="json"),
    )


@router.get("/live", response_model=ProbeStatus)
async def live() -> ProbeStatus:
    return ProbeStatus(status="alive")


@router.get("/status", response_model=ServiceStatus)
async def status(services: Services = Depends(get_services)) -> ServiceStatus:
    return ServiceStatus(
        service=SERVICE_NAME,
        version=__version__,
        uptime_s=services.uptime_s,
        environment=services.settings.environment,
        scheduler=services.scheduler.get_status(),
        source=await services.source.get_metadata(),
    )
