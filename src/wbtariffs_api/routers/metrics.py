"""Prometheus metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from wbtariffs_pipeline.service import Services

from wbtariffs_api.dependencies import get_services

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
def metrics_endpoint(services: Services = Depends(get_services)) -> Response:
    """Expose collected metrics in Prometheus text format."""
    return Response(
        content=services.metrics.render(),
        media_type=services.metrics.content_type,
    )
