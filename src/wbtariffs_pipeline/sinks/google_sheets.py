"""
sinks/google_sheets.py — Republish the latest tariffs snapshot to Google Sheets.

Every configured spreadsheet gets the same treatment:
  1. clear <sheet>!A:Z
  2. write the header plus one row per record at <sheet>!A1 (RAW input)

Rows come from TariffsRepository.get_latest(), already ordered by
coefficient ascending. The six-column projection is:

    warehouse | box type | coefficient | date | next-box date | till-max date

Authentication uses a service account (GOOGLE_SERVICE_ACCOUNT_EMAIL +
GOOGLE_PRIVATE_KEY). Without credentials the sync logs a warning and
skips every update.

The googleapiclient calls block, so each one runs in a worker thread via
asyncio.to_thread. Sheets are still written one at a time; the client
object is never used from two threads at once.

Usage:
    sync = GoogleSheetsSync(repository, settings, metrics)
    result = await sync.update_all_sheets()
    print(result.successful, result.failed)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import polars as pl
import structlog
from google.oauth2 import service_account
from googleapiclient.discovery import build

from wbtariffs_shared.config import Settings, settings as default_settings
from wbtariffs_shared.constants import SHEET_HEADER
from wbtariffs_shared.exceptions import SheetsNotConfiguredError
from wbtariffs_shared.models.tariffs import TariffRecord
from wbtariffs_shared.time_utils import format_date
from wbtariffs_pipeline.loaders.tariffs import TariffsRepository
from wbtariffs_pipeline.utils.metrics import MetricsCollector

log = structlog.get_logger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
TOKEN_URI = "https://oauth2.googleapis.com/token"

_SHEET_COLUMNS = (
    "warehouse_name",
    "box_type",
    "coefficient",
    "date",
    "dt_next_box",
    "dt_till_max",
)


@dataclass
class SheetsUpdateResult:
    successful: int = 0
    failed: int = 0
    rows: int = 0
    skipped_reason: str | None = None
    errors: dict[str, str] = field(default_factory=dict)


def build_sheets_service(settings: Settings) -> Any:
    """Sheets v4 client authenticated with the configured service account."""
    credentials = service_account.Credentials.from_service_account_info(
        {
            "type": "service_account",
            "client_email": settings.google_service_account_email,
            "private_key": settings.google_private_key,
            "token_uri": TOKEN_URI,
        },
        scopes=[SHEETS_SCOPE],
    )
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def format_coefficient(value: Decimal) -> str:
    """1.50 → "1.5", 2.00 → "2", 160 → "160"."""
    return format(value.normalize(), "f")


def to_sheet_frame(records: list[TariffRecord]) -> pl.DataFrame:
    """Six-column string projection of a snapshot, order preserved."""
    return pl.DataFrame(
        {
            "warehouse_name": [r.warehouse_name for r in records],
            "box_type": [r.box_type for r in records],
            "coefficient": [format_coefficient(r.coefficient) for r in records],
            "date": [format_date(r.date) for r in records],
            "dt_next_box": [format_date(r.dt_next_box) for r in records],
            "dt_till_max": [format_date(r.dt_till_max) for r in records],
        },
        schema={name: pl.String for name in _SHEET_COLUMNS},
    )


def prepare_sheet_data(records: list[TariffRecord]) -> list[list[str]]:
    """Header row followed by one row per record."""
    frame = to_sheet_frame(records)
    return [list(SHEET_HEADER), *(list(row) for row in frame.rows())]


class GoogleSheetsSync:
    """Writes the latest tariffs snapshot into every configured spreadsheet."""

    def __init__(
        self,
        repository: TariffsRepository,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        *,
        service: Any = None,
    ) -> None:
        cfg = settings or default_settings
        self._repository = repository
        self._metrics = metrics or MetricsCollector()
        self._sheet_ids = cfg.google_sheet_ids_list
        self._sheet_name = cfg.google_sheet_name
        self._service = service if service is not None else self._init_service(cfg)

    @staticmethod
    def _init_service(cfg: Settings) -> Any:
        if not cfg.google_credentials_configured:
            log.warning("sheets_credentials_missing")
            return None
        try:
            service = build_sheets_service(cfg)
        except Exception as exc:
            # Sheets stay disabled; fetch and cleanup jobs still run
            log.error("sheets_init_failed", error=str(exc))
            return None
        log.info("sheets_client_initialized")
        return service

    @property
    def configured(self) -> bool:
        return self._service is not None

    def _require_service(self) -> Any:
        if self._service is None:
            raise SheetsNotConfiguredError("Google Sheets API not initialized")
        return self._service

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def update_all_sheets(self) -> SheetsUpdateResult:
        """
        Push the latest snapshot to every configured spreadsheet.

        A failing spreadsheet is counted and logged; the others still run.
        Storage faults while loading the snapshot propagate.
        """
        result = SheetsUpdateResult()
        if self._service is None:
            log.warning("sheets_update_skipped", reason="not_initialized")
            result.skipped_reason = "not_initialized"
            return result
        if not self._sheet_ids:
            log.warning("sheets_update_skipped", reason="no_sheet_ids")
            result.skipped_reason = "no_sheet_ids"
            return result

        records = await self._repository.get_latest()
        if not records:
            log.warning("sheets_update_skipped", reason="no_tariffs")
            result.skipped_reason = "no_tariffs"
            return result

        values = prepare_sheet_data(records)
        result.rows = len(records)
        log.info("sheets_update_start", sheets=len(self._sheet_ids), rows=len(records))

        t0 = time.monotonic()
        for spreadsheet_id in self._sheet_ids:
            try:
                await self.update_sheet(spreadsheet_id, values)
            except Exception as exc:
                result.failed += 1
                result.errors[spreadsheet_id] = str(exc)
                self._metrics.record_sheets_update("error")
            else:
                result.successful += 1
                self._metrics.record_sheets_update("success")
        self._metrics.observe_sheets_update_duration(time.monotonic() - t0)

        log.info(
            "sheets_update_complete",
            successful=result.successful,
            failed=result.failed,
        )
        return result

    async def update_sheet(self, spreadsheet_id: str, values: list[list[str]]) -> None:
        """Clear the sheet, then write `values` from A1."""
        service = self._require_service()
        try:
            await self.clear_sheet(spreadsheet_id)
            request = service.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=f"{self._sheet_name}!A1",
                valueInputOption="RAW",
                body={"values": values},
            )
            await asyncio.to_thread(request.execute)
        except Exception as exc:
            log.error("sheet_update_failed", spreadsheet_id=spreadsheet_id, error=str(exc))
            raise
        log.info("sheet_updated", spreadsheet_id=spreadsheet_id, rows=len(values) - 1)

    async def clear_sheet(self, spreadsheet_id: str) -> None:
        service = self._require_service()
        request = service.spreadsheets().values().clear(
            spreadsheetId=spreadsheet_id,
            range=f"{self._sheet_name}!A:Z",
            body={},
        )
        await asyncio.to_thread(request.execute)
        log.debug("sheet_cleared", spreadsheet_id=spreadsheet_id)

    async def test_connection(self, spreadsheet_id: str) -> bool:
        """Check that the spreadsheet is reachable with the configured account."""
        if self._service is None:
            log.error("sheets_not_initialized")
            return False
        try:
            request = self._service.spreadsheets().get(spreadsheetId=spreadsheet_id)
            response = await asyncio.to_thread(request.execute)
        except Exception as exc:
            log.error("sheet_connection_failed", spreadsheet_id=spreadsheet_id, error=str(exc))
            return False
        title = (response.get("properties") or {}).get("title")
        log.info("sheet_connection_ok", spreadsheet_id=spreadsheet_id, title=title)
        return True
