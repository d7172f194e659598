"""
tests/conftest.py — Shared pytest fixtures for the wbtariffs test suite.

Provides:
  fixture_path()         — resolves paths to tests/fixtures/
  wb_payload()           — decoded sample of the box-tariffs endpoint
  test_settings()        — Settings isolated from the developer's .env
  metrics()              — MetricsCollector on a private registry
  fake_supabase()        — in-memory Supabase double (see tests/fakes.py)
  mock_supabase_client() — MagicMock of the Supabase client for call checks
  make_clock()           — factory for a controllable UTC clock
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fakes import FakeSupabase

from wbtariffs_shared.config import Settings
from wbtariffs_pipeline.utils.metrics import MetricsCollector

FIXTURES_DIR = Path(__file__).parent / "fixtures"

WB_TEST_URL = "https://wb.test"


class StepClock:
    """Returns `start`, then advances by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def wb_payload() -> dict:
    return json.loads((FIXTURES_DIR / "wb_tariffs_box_sample.json").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Configuration / metrics
# ---------------------------------------------------------------------------

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        supabase_url="http://localhost:54321",
        supabase_service_key="service-key",
        wb_api_url=WB_TEST_URL,
        wb_api_token="wb-token",
        wb_api_timeout=5,
        wb_max_attempts=3,
        wb_retry_delay=2.0,
        google_service_account_email="",
        google_private_key="",
        google_sheet_ids="sheet-a,sheet-b",
        google_sheet_name="stocks_coefs",
        retention_days=30,
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


# ---------------------------------------------------------------------------
# Supabase doubles
# ---------------------------------------------------------------------------

@pytest.fixture
def make_clock():
    def _make(start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> StepClock:
        return StepClock(start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc), step)

    return _make


@pytest.fixture
def fake_supabase(make_clock) -> FakeSupabase:
    return FakeSupabase(clock=make_clock(datetime(2024, 5, 1, 0, 0, tzinfo=timezone.utc)))


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    The .table().upsert().execute() chain returns empty data by default.
    """
    client = MagicMock()
    default_result = MagicMock()
    default_result.data = []
    default_result.count = 0

    client.table.return_value.upsert.return_value.execute.return_value = default_result
    client.table.return_value.select.return_value.execute.return_value = default_result
    return client
