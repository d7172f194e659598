"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from wbtariffs_pipeline.service import Services


def get_services(request: Request) -> Services:
    """The Services bundle the app was created with."""
    return request.app.state.services


__all__ = ["get_services"]
