"""
sources/wildberries.py — Wildberries common API box-tariffs adapter.

Endpoint:
  GET /api/v1/tariffs/box?date=YYYY-MM-DD
  Authorization: Bearer <token>   (optional)

The response shape is documented in wbtariffs_shared.models.tariffs.

Fetch policy:
  - one date parameter (today, UTC) per fetch, reused by every attempt
  - at most wb_max_attempts attempts (3), wb_retry_delay (2 s) between them
  - HTTP 4xx stops immediately; network errors, timeouts, 5xx, undecodable
    bodies and bodies without a top-level "response" object are retried
  - exhaustion or a terminal failure returns None instead of raising

Usage:
    source = WildberriesSource(settings, metrics)
    payload = await source.fetch_tariffs()      # dict | None
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx
import structlog

from wbtariffs_shared.config import Settings, settings as default_settings
from wbtariffs_shared.constants import WB_TARIFFS_BOX_PATH
from wbtariffs_shared.exceptions import InvalidResponseError
from wbtariffs_shared.time_utils import utcnow
from wbtariffs_pipeline.utils.metrics import MetricsCollector
from wbtariffs_pipeline.utils.retry import (
    RETRYABLE_ERRORS,
    AttemptState,
    SleepFn,
    classify_failure,
    error_type,
    fixed_delay_retrying,
)

log = structlog.get_logger(__name__)

_PREVIEW_CHARS = 200


class WildberriesSource:
    """Pulls the daily box-tariff snapshot from the Wildberries API."""

    name = "WB"

    def __init__(
        self,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        cfg = settings or default_settings
        self._base_url = cfg.wb_api_url
        self._token = cfg.wb_api_token
        self._timeout = cfg.wb_api_timeout
        self._max_attempts = cfg.wb_max_attempts
        self._retry_delay = cfg.wb_retry_delay
        self._metrics = metrics or MetricsCollector()
        self._sleep = sleep
        self._clock = clock
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, client: httpx.AsyncClient, date_param: str) -> dict[str, Any]:
        """One attempt: GET, status check, JSON decode, envelope check."""
        response = await client.get(WB_TARIFFS_BOX_PATH, params={"date": date_param})
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("response"):
            raise InvalidResponseError(
                "Invalid API response structure",
                payload_preview=response.text[:_PREVIEW_CHARS],
            )
        return payload

    def _record_failure(self, exc: Exception, attempt: int) -> None:
        state = classify_failure(exc)
        kind = error_type(exc)
        self._metrics.record_wb_api_error(kind)
        status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
        self._log.error(
            "fetch_attempt_failed",
            state=state.value,
            attempt=attempt,
            max_attempts=self._max_attempts,
            error_type=kind,
            status=status,
            error=str(exc),
        )
        if state is AttemptState.TERMINAL_FAILURE and status is not None:
            self._log.error("client_error_not_retrying", status=status)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def fetch_tariffs(self) -> dict[str, Any] | None:
        """
        Fetch today's box tariffs with bounded retries.

        Returns:
            The decoded payload on the first structurally valid answer,
            None when the attempt budget is spent or a 4xx is received.

        Raises:
            Only internal faults that are neither transport, status nor
            payload errors.
        """
        date_param = self._clock().date().isoformat()
        payload: dict[str, Any] | None = None
        attempt_number = 0
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers(),
            ) as client:
                async for attempt in fixed_delay_retrying(
                    self._max_attempts,
                    self._retry_delay,
                    sleep=self._sleep,
                ):
                    with attempt:
                        attempt_number = attempt.retry_state.attempt_number
                        self._log.info(
                            "fetch_attempt",
                            state=AttemptState.ATTEMPTING.value,
                            attempt=attempt_number,
                            max_attempts=self._max_attempts,
                            date=date_param,
                        )
                        try:
                            payload = await self._request(client, date_param)
                        except Exception as exc:
                            self._record_failure(exc, attempt_number)
                            raise
        except RETRYABLE_ERRORS as exc:
            self._metrics.record_wb_api_request("error")
            self._log.error(
                "fetch_failed",
                attempts=attempt_number,
                date=date_param,
                error=str(exc),
            )
            return None
        except Exception:
            self._metrics.record_wb_api_request("error")
            raise
        finally:
            self._metrics.observe_wb_api_duration(time.monotonic() - t0)

        self._metrics.record_wb_api_request("success")
        self._log.info(
            "fetch_succeeded",
            state=AttemptState.SUCCESS.value,
            attempts=attempt_number,
            date=date_param,
            preview=json.dumps(payload, ensure_ascii=False)[:_PREVIEW_CHARS],
        )
        return payload

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "base_url": self._base_url,
            "endpoint": WB_TARIFFS_BOX_PATH,
            "description": "Wildberries box tariffs: delivery / storage bases and coefficients",
            "max_attempts": self._max_attempts,
            "retry_delay_s": self._retry_delay,
        }
