"""Response models for the operational endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DependencyCheck(BaseModel):
    status: Literal["healthy", "unhealthy"]
    latency_ms: float | None = None
    error: str | None = None


class SchedulerCheck(BaseModel):
    status: Literal["healthy", "unhealthy"]
    tasks: dict[str, str] = Field(default_factory=dict)


class HealthChecks(BaseModel):
    database: DependencyCheck
    scheduler: SchedulerCheck


class HealthStatus(BaseModel):
    status: Literal["healthy", "unhealthy"]
    timestamp: datetime = Field(default_factory=_now)
    uptime_s: float
    checks: HealthChecks


class ProbeStatus(BaseModel):
    status: str
    timestamp: datetime = Field(default_factory=_now)
    error: str | None = None


class ServiceStatus(BaseModel):
    service: str
    version: str
    uptime_s: float
    timestamp: datetime = Field(default_factory=_now)
    environment: str
    scheduler: dict[str, str]
    source: dict[str, object]
