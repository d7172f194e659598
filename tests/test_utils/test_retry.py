"""
tests/test_utils/test_retry.py — Tests for failure classification and the
fixed-delay retry policy.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, call

import httpx
import pytest

from wbtariffs_shared.exceptions import InvalidResponseError
from wbtariffs_pipeline.utils.retry import (
    AttemptState,
    classify_failure,
    error_type,
    fixed_delay_retrying,
    is_retryable,
)


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://wb.test/api/v1/tariffs/box")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestClassifyFailure:
    @pytest.mark.parametrize("code", [400, 401, 403, 404, 429])
    def test_client_errors_are_terminal(self, code):
        assert classify_failure(_status_error(code)) is AttemptState.TERMINAL_FAILURE

    @pytest.mark.parametrize("code", [500, 502, 503, 504])
    def test_server_errors_are_retryable(self, code):
        assert classify_failure(_status_error(code)) is AttemptState.RETRYABLE_FAILURE

    def test_network_error_is_retryable(self):
        assert is_retryable(httpx.ConnectError("refused"))

    def test_timeout_is_retryable(self):
        assert is_retryable(httpx.ReadTimeout("slow"))

    def test_invalid_envelope_is_retryable(self):
        assert is_retryable(InvalidResponseError("no response key"))

    def test_decode_error_is_retryable(self):
        assert is_retryable(json.JSONDecodeError("Expecting value", "<html>", 0))

    def test_unexpected_error_is_terminal(self):
        assert classify_failure(KeyError("x")) is AttemptState.TERMINAL_FAILURE


class TestErrorType:
    def test_status_code_label(self):
        assert error_type(_status_error(503)) == "http_503"

    def test_timeout_label(self):
        assert error_type(httpx.ConnectTimeout("slow")) == "timeout"

    def test_network_label(self):
        assert error_type(httpx.ConnectError("refused")) == "network"

    def test_invalid_response_label(self):
        assert error_type(InvalidResponseError("bad")) == "invalid_response"

    def test_unknown_label(self):
        assert error_type(ValueError("?")) == "unknown"


class TestFixedDelayRetrying:
    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        sleep = AsyncMock()
        outcomes = [httpx.ConnectError("a"), httpx.ConnectError("b"), "ok"]
        attempts = 0
        result = None

        async for attempt in fixed_delay_retrying(3, 2.0, sleep=sleep):
            with attempt:
                attempts += 1
                outcome = outcomes.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                result = outcome

        assert result == "ok"
        assert attempts == 3
        assert sleep.await_args_list == [call(2.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_reraises_last_error_when_exhausted(self):
        sleep = AsyncMock()
        attempts = 0

        with pytest.raises(httpx.ConnectError, match="down"):
            async for attempt in fixed_delay_retrying(3, 0.5, sleep=sleep):
                with attempt:
                    attempts += 1
                    raise httpx.ConnectError("down")

        assert attempts == 3
        # no wait after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_terminal_error_stops_immediately(self):
        sleep = AsyncMock()
        attempts = 0

        with pytest.raises(httpx.HTTPStatusError):
            async for attempt in fixed_delay_retrying(3, 2.0, sleep=sleep):
                with attempt:
                    attempts += 1
                    raise _status_error(404)

        assert attempts == 1
        sleep.assert_not_awaited()
