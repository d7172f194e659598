"""
utils/retry.py — Failure classification and fixed-delay retry policy for
upstream HTTP calls.

Uses tenacity under the hood. Each attempt moves through a small state
machine:

    ATTEMPTING ──ok──────────────► SUCCESS
        │
        ├──retryable failure──► RETRYABLE_FAILURE ──wait──► ATTEMPTING
        │                                 (until the attempt budget is spent)
        └──terminal failure───► TERMINAL_FAILURE

classify_failure() decides between the two failure states and is used as
the tenacity retry predicate, so the retry/terminal split can be tested
without any HTTP at all.

Usage:
    from wbtariffs_pipeline.utils.retry import fixed_delay_retrying

    retrying = fixed_delay_retrying(max_attempts=3, delay=2.0)
    async for attempt in retrying:
        with attempt:
            response = await client.get(url)
            response.raise_for_status()
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from wbtariffs_shared.exceptions import InvalidResponseError

log = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

# Failures that may succeed on a later attempt
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    InvalidResponseError,
    json.JSONDecodeError,
)


class AttemptState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


def classify_failure(exc: BaseException) -> AttemptState:
    """
    Map an attempt failure to its next state.

    HTTP 4xx answers are terminal: the request itself is wrong and repeating
    it cannot help. Network errors, timeouts, 5xx answers, undecodable
    bodies and bodies without the expected envelope are retryable. Anything
    else is an internal fault and is terminal too.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        if 400 <= exc.response.status_code < 500:
            return AttemptState.TERMINAL_FAILURE
        return AttemptState.RETRYABLE_FAILURE
    if isinstance(exc, RETRYABLE_ERRORS):
        return AttemptState.RETRYABLE_FAILURE
    return AttemptState.TERMINAL_FAILURE


def is_retryable(exc: BaseException) -> bool:
    return classify_failure(exc) is AttemptState.RETRYABLE_FAILURE


def error_type(exc: BaseException) -> str:
    """Metric label for a failed attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"http_{exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.HTTPError):
        return "network"
    if isinstance(exc, (InvalidResponseError, json.JSONDecodeError)):
        return "invalid_response"
    return "unknown"


def _log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    log.info(
        "retry_scheduled",
        attempt=retry_state.attempt_number,
        delay_s=retry_state.next_action.sleep if retry_state.next_action else None,
        last_error=str(outcome.exception()) if outcome and outcome.failed else None,
    )


def fixed_delay_retrying(
    max_attempts: int = 3,
    delay: float = 2.0,
    *,
    retry_if: Callable[[BaseException], bool] = is_retryable,
    sleep: SleepFn = asyncio.sleep,
) -> AsyncRetrying:
    """
    Build a tenacity AsyncRetrying with a fixed wait between attempts.

    No wait happens after the final attempt. With reraise=True the last
    exception surfaces unchanged once the budget is spent or a failure is
    classified as terminal.

    Args:
        max_attempts: Total attempts, first one included.
        delay:        Seconds to wait before each retry.
        retry_if:     Predicate deciding whether a failure is retried.
        sleep:        Awaitable sleep; injected by tests to skip real waits.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception(retry_if),
        before_sleep=_log_before_sleep,
        sleep=sleep,
        reraise=True,
    )
