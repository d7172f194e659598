"""
loaders/tariffs.py — Idempotent upsert and read-back for the tariffs table.

All writes of tariff drafts and all snapshot reads go through this module.
The repository:
  - Collapses drafts sharing a natural key (date, warehouse_name, box_type)
  - Batches rows to respect Supabase payload limits (~500 rows / request)
  - Performs upsert (INSERT … ON CONFLICT DO UPDATE) on the natural key,
    sending only the key and the merge columns so id / created_at survive
  - Stamps updated_at from an injectable clock on every touch
  - Reads snapshots ordered by coefficient ascending
  - Deletes rows older than a retention window

Storage faults are logged and re-raised; the pipeline decides what a
failure means. The only designed empty result is get_latest() on an empty
table.

Usage:
    from wbtariffs_pipeline.loaders.tariffs import TariffsRepository

    repo = TariffsRepository(create_supabase_client(), metrics)
    result = await repo.upsert_batch(drafts)
    latest = await repo.get_latest()
    removed = await repo.delete_older_than(30)
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import structlog
from supabase import Client

from wbtariffs_shared.constants import NATURAL_KEY, TARIFF_DATES_VIEW, TARIFFS_TABLE
from wbtariffs_shared.models.tariffs import TariffRecord, TariffRecordDraft
from wbtariffs_shared.time_utils import retention_cutoff, utcnow
from wbtariffs_pipeline.transforms.tariffs import deduplicate_drafts
from wbtariffs_pipeline.utils.metrics import MetricsCollector

log = structlog.get_logger(__name__)

BATCH_SIZE = 500     # rows per Supabase request
DEFAULT_RETENTION_DAYS = 30


@dataclass
class LoadResult:
    """Summary of an upsert_batch() call."""

    table: str
    records_loaded: int = 0
    batches_total: int = 0
    duplicates_dropped: int = 0
    duration_ms: int = 0


class TariffsRepository:
    """
    Reads and writes the tariffs table through a Supabase client.

    The client should use the service role key so RLS does not apply.
    """

    def __init__(
        self,
        client: Client,
        metrics: MetricsCollector | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        self._client = client
        self._metrics = metrics or MetricsCollector()
        self._clock = clock
        self._batch_size = batch_size

    def _table(self, name: str = TARIFFS_TABLE) -> Any:
        return self._client.table(name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_batch(self, drafts: Sequence[TariffRecordDraft]) -> LoadResult:
        """
        Insert new natural keys and merge existing ones.

        Repeating the call with the same drafts converges to the same rows
        (no duplicates); only updated_at moves forward.

        Args:
            drafts: Transformed records; order does not affect the end state.

        Returns:
            LoadResult with row and batch counts.

        Raises:
            Any storage error, after logging it.
        """
        result = LoadResult(table=TARIFFS_TABLE)
        t0 = time.monotonic()

        if not drafts:
            log.warning("upsert_empty_batch", table=TARIFFS_TABLE)
            return result

        unique = deduplicate_drafts(list(drafts))
        result.duplicates_dropped = len(drafts) - len(unique)

        updated_at = self._clock()
        rows = [draft.to_upsert_dict(updated_at) for draft in unique]

        n_batches = math.ceil(len(rows) / self._batch_size)
        result.batches_total = n_batches
        loader_log = log.bind(table=TARIFFS_TABLE, total_rows=len(rows), n_batches=n_batches)
        loader_log.info("upsert_start")

        with self._metrics.time_db_operation("upsert"):
            for batch_idx in range(n_batches):
                start = batch_idx * self._batch_size
                batch = rows[start : start + self._batch_size]
                try:
                    self._table().upsert(
                        batch,
                        on_conflict=",".join(NATURAL_KEY),
                    ).execute()
                except Exception as exc:
                    loader_log.error(
                        "batch_failed",
                        batch=batch_idx + 1,
                        records_loaded=result.records_loaded,
                        error=str(exc),
                    )
                    raise
                result.records_loaded += len(batch)
                loader_log.debug(
                    "batch_loaded",
                    batch=batch_idx + 1,
                    batch_size=len(batch),
                )

        result.duration_ms = int((time.monotonic() - t0) * 1000)
        loader_log.info(
            "upsert_complete",
            records_loaded=result.records_loaded,
            duplicates_dropped=result.duplicates_dropped,
            duration_ms=result.duration_ms,
        )
        return result

    async def delete_older_than(self, days: int = DEFAULT_RETENTION_DAYS) -> int:
        """
        Delete rows whose date is strictly before today - days.

        Returns:
            Number of rows removed (0 is a normal outcome).
        """
        cutoff = retention_cutoff(days, self._clock().date())
        try:
            with self._metrics.time_db_operation("delete_older_than"):
                response = (
                    self._table()
                    .delete(count="exact")
                    .lt("date", cutoff.isoformat())
                    .execute()
                )
        except Exception as exc:
            log.error("delete_old_tariffs_failed", days=days, error=str(exc))
            raise

        deleted = response.count if response.count is not None else len(response.data or [])
        log.info(
            "old_tariffs_deleted",
            deleted=deleted,
            days=days,
            cutoff=cutoff.isoformat(),
        )
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_date(self, day: date) -> list[TariffRecord]:
        """All rows of one calendar day, coefficient ascending."""
        try:
            with self._metrics.time_db_operation("get_by_date"):
                response = (
                    self._table()
                    .select("*")
                    .eq("date", day.isoformat())
                    .order("coefficient")
                    .execute()
                )
        except Exception as exc:
            log.error("get_tariffs_by_date_failed", date=day.isoformat(), error=str(exc))
            raise

        records = [TariffRecord.from_db_row(row) for row in (response.data or [])]
        log.info("tariffs_retrieved", date=day.isoformat(), count=len(records))
        return records

    async def get_latest_date(self) -> date | None:
        try:
            with self._metrics.time_db_operation("get_latest_date"):
                response = (
                    self._table()
                    .select("date")
                    .order("date", desc=True)
                    .limit(1)
                    .execute()
                )
        except Exception as exc:
            log.error("get_latest_date_failed", error=str(exc))
            raise

        rows = response.data or []
        if not rows or not rows[0].get("date"):
            return None
        return date.fromisoformat(str(rows[0]["date"])[:10])

    async def get_latest(self) -> list[TariffRecord]:
        """
        The snapshot: every row of the most recent date, coefficient ascending.

        Returns an empty list when the table holds no rows.
        """
        latest = await self.get_latest_date()
        if latest is None:
            log.info("no_tariffs_found")
            return []
        return await self.get_by_date(latest)

    async def get_all_dates(self) -> list[date]:
        """Distinct stored dates, newest first."""
        try:
            with self._metrics.time_db_operation("get_all_dates"):
                response = (
                    self._table(TARIFF_DATES_VIEW)
                    .select("date")
                    .order("date", desc=True)
                    .execute()
                )
        except Exception as exc:
            log.error("get_all_dates_failed", error=str(exc))
            raise

        seen: set[date] = set()
        dates: list[date] = []
        for row in response.data or []:
            day = date.fromisoformat(str(row["date"])[:10])
            if day not in seen:
                seen.add(day)
                dates.append(day)
        return sorted(dates, reverse=True)

    async def ping(self) -> float:
        """
        Issue a trivial query and return its latency in milliseconds.

        Raises on connectivity loss; health checks turn that into 503.
        """
        t0 = time.monotonic()
        with self._metrics.time_db_operation("ping"):
            self._table().select("id").limit(1).execute()
        return round((time.monotonic() - t0) * 1000, 2)
