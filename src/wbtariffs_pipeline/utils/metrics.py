"""Prometheus metrics for the tariffs service."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

Outcome = Literal["success", "error"]


class MetricsCollector:
    """Collects fetch, sheet-sync and storage metrics on a private registry."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.wb_api_requests_total = Counter(
            "wb_api_requests_total",
            "Total number of tariff fetches from the WB API, by final outcome.",
            ("status",),
            registry=self.registry,
        )
        self.wb_api_errors_total = Counter(
            "wb_api_errors_total",
            "Total number of failed WB API attempts, by error class.",
            ("error_type",),
            registry=self.registry,
        )
        self.wb_api_duration_seconds = Histogram(
            "wb_api_duration_seconds",
            "Duration of WB API fetches (all attempts) in seconds.",
            buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120),
            registry=self.registry,
        )
        self.last_successful_fetch_timestamp = Gauge(
            "last_successful_fetch_timestamp",
            "Unix timestamp of the last successful WB API fetch.",
            registry=self.registry,
        )
        self.sheets_update_total = Counter(
            "sheets_update_total",
            "Total number of Google Sheets updates, by outcome.",
            ("status",),
            registry=self.registry,
        )
        self.sheets_update_errors_total = Counter(
            "sheets_update_errors_total",
            "Total number of Google Sheets update errors.",
            registry=self.registry,
        )
        self.sheets_update_duration_seconds = Histogram(
            "sheets_update_duration_seconds",
            "Duration of Google Sheets updates in seconds.",
            buckets=(0.5, 1, 2, 5, 10, 30),
            registry=self.registry,
        )
        self.last_successful_sheets_update_timestamp = Gauge(
            "last_successful_sheets_update_timestamp",
            "Unix timestamp of the last successful Google Sheets update.",
            registry=self.registry,
        )
        self.tariffs_processed_total = Counter(
            "tariffs_processed_total",
            "Total number of tariff records persisted.",
            registry=self.registry,
        )
        self.active_tasks = Gauge(
            "active_tasks",
            "Number of currently running scheduled tasks.",
            ("task_type",),
            registry=self.registry,
        )
        self.db_operation_duration_seconds = Histogram(
            "db_operation_duration_seconds",
            "Duration of tariffs table operations in seconds.",
            ("operation",),
            buckets=(0.01, 0.05, 0.1, 0.5, 1, 2),
            registry=self.registry,
        )

    # ------------------------------------------------------------------
    # WB API
    # ------------------------------------------------------------------

    def record_wb_api_request(self, status: Outcome) -> None:
        self.wb_api_requests_total.labels(status=status).inc()
        if status == "success":
            self.last_successful_fetch_timestamp.set_to_current_time()

    def record_wb_api_error(self, error_type: str) -> None:
        self.wb_api_errors_total.labels(error_type=error_type).inc()

    def observe_wb_api_duration(self, seconds: float) -> None:
        self.wb_api_duration_seconds.observe(seconds)

    # ------------------------------------------------------------------
    # Google Sheets
    # ------------------------------------------------------------------

    def record_sheets_update(self, status: Outcome) -> None:
        self.sheets_update_total.labels(status=status).inc()
        if status == "success":
            self.last_successful_sheets_update_timestamp.set_to_current_time()
        else:
            self.sheets_update_errors_total.inc()

    def observe_sheets_update_duration(self, seconds: float) -> None:
        self.sheets_update_duration_seconds.observe(seconds)

    # ------------------------------------------------------------------
    # Pipeline / storage
    # ------------------------------------------------------------------

    def record_tariffs_processed(self, count: int) -> None:
        self.tariffs_processed_total.inc(count)

    @contextmanager
    def track_task(self, task_type: str) -> Iterator[None]:
        gauge = self.active_tasks.labels(task_type=task_type)
        gauge.inc()
        try:
            yield
        finally:
            gauge.dec()

    @contextmanager
    def time_db_operation(self, operation: str) -> Iterator[None]:
        t0 = time.monotonic()
        try:
            yield
        finally:
            self.db_operation_duration_seconds.labels(operation=operation).observe(
                time.monotonic() - t0
            )

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)
