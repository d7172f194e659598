"""
Request logging middleware for the operational endpoints.

Every request gets a request id (taken from X-Request-ID or generated) that
is bound into structlog's context vars, so events logged by the repository
or the source while serving a probe carry the same id. The id is echoed
back in the response header.

Orchestrator probes (/live, /metrics) are logged at debug.
"""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from wbtariffs_shared.constants import SERVICE_NAME

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/live", "/metrics"})


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            service=SERVICE_NAME,
        )
        emit = logger.debug if request.url.path in QUIET_PATHS else logger.info

        start = time.monotonic()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            emit(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            return response
        except Exception as exc:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(exc),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "service")
