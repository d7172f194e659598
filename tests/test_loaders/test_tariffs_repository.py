"""
tests/test_loaders/test_tariffs_repository.py — Tests for TariffsRepository.

Uses the in-memory FakeSupabase so upsert merge semantics, ordering and
retention can be checked end to end without a database.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fakes import FakeStorageError

from wbtariffs_shared.constants import MERGE_COLUMNS, NATURAL_KEY
from wbtariffs_shared.models.tariffs import TariffRecordDraft
from wbtariffs_pipeline.loaders.tariffs import TariffsRepository

DAY = date(2024, 5, 1)
START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _draft(name: str, coefficient: str, *, day: date = DAY, box: str = "Короб") -> TariffRecordDraft:
    return TariffRecordDraft(
        date=day,
        warehouse_name=name,
        box_type=box,
        coefficient=Decimal(coefficient),
        delivery_base="48",
        raw_data={"warehouseName": name},
    )


@pytest.fixture
def repo(fake_supabase, metrics, make_clock) -> TariffsRepository:
    return TariffsRepository(fake_supabase, metrics, clock=make_clock(START, timedelta(minutes=5)))


# ---------------------------------------------------------------------------
# upsert_batch
# ---------------------------------------------------------------------------

class TestUpsertBatch:
    @pytest.mark.asyncio
    async def test_inserts_new_rows(self, repo, fake_supabase):
        result = await repo.upsert_batch([_draft("A", "1.5"), _draft("B", "2.0")])

        assert result.records_loaded == 2
        assert result.batches_total == 1
        assert len(fake_supabase.tables["tariffs"]) == 2

    @pytest.mark.asyncio
    async def test_repeat_is_idempotent(self, repo, fake_supabase):
        drafts = [_draft("A", "1.5"), _draft("B", "2.0")]
        await repo.upsert_batch(drafts)
        await repo.upsert_batch(drafts)

        rows = fake_supabase.tables["tariffs"]
        assert len(rows) == 2
        assert sorted(r["id"] for r in rows) == [1, 2]

    @pytest.mark.asyncio
    async def test_changed_coefficient_merges(self, repo, fake_supabase):
        await repo.upsert_batch([_draft("A", "1.5")])
        before = dict(fake_supabase.tables["tariffs"][0])

        await repo.upsert_batch([_draft("A", "3.25")])
        after = fake_supabase.tables["tariffs"][0]

        assert after["coefficient"] == 3.25
        assert after["id"] == before["id"]
        assert after["created_at"] == before["created_at"]
        assert after["updated_at"] > before["updated_at"]

    @pytest.mark.asyncio
    async def test_id_and_created_at_never_sent(self, mock_supabase_client, metrics):
        repo = TariffsRepository(mock_supabase_client, metrics)
        await repo.upsert_batch([_draft("A", "1.5")])

        upsert = mock_supabase_client.table.return_value.upsert
        rows = upsert.call_args.args[0]
        assert "id" not in rows[0]
        assert "created_at" not in rows[0]
        assert set(rows[0]) == set(NATURAL_KEY) | set(MERGE_COLUMNS)
        assert upsert.call_args.kwargs["on_conflict"] == "date,warehouse_name,box_type"

    @pytest.mark.asyncio
    async def test_same_warehouse_other_box_type_is_new_row(self, repo, fake_supabase):
        await repo.upsert_batch([_draft("A", "1"), _draft("A", "1", box="Монопаллета")])
        assert len(fake_supabase.tables["tariffs"]) == 2

    @pytest.mark.asyncio
    async def test_in_batch_duplicates_collapse(self, repo, fake_supabase):
        result = await repo.upsert_batch([_draft("A", "1"), _draft("A", "4")])

        assert result.duplicates_dropped == 1
        rows = fake_supabase.tables["tariffs"]
        assert len(rows) == 1
        assert rows[0]["coefficient"] == 4.0

    @pytest.mark.asyncio
    async def test_batches_split(self, fake_supabase, metrics):
        repo = TariffsRepository(fake_supabase, metrics, batch_size=2)
        result = await repo.upsert_batch([_draft(f"W{i}", "1") for i in range(5)])

        assert result.batches_total == 3
        assert result.records_loaded == 5
        assert fake_supabase.calls.count(("tariffs", "upsert")) == 3

    @pytest.mark.asyncio
    async def test_empty_input_writes_nothing(self, repo, fake_supabase):
        result = await repo.upsert_batch([])
        assert result.records_loaded == 0
        assert fake_supabase.calls == []

    @pytest.mark.asyncio
    async def test_storage_fault_propagates(self, repo, fake_supabase):
        fake_supabase.fail_with = FakeStorageError("connection reset")
        with pytest.raises(FakeStorageError):
            await repo.upsert_batch([_draft("A", "1")])

    @pytest.mark.asyncio
    async def test_upsert_is_timed(self, repo, metrics):
        await repo.upsert_batch([_draft("A", "1")])
        count = metrics.registry.get_sample_value(
            "db_operation_duration_seconds_count", {"operation": "upsert"}
        )
        assert count == 1.0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    @pytest.mark.asyncio
    async def test_get_latest_empty_table(self, repo):
        assert await repo.get_latest() == []
        assert await repo.get_latest_date() is None

    @pytest.mark.asyncio
    async def test_get_latest_orders_by_coefficient(self, repo):
        await repo.upsert_batch([_draft("B", "2.0"), _draft("A", "1.5"), _draft("C", "0.5")])

        latest = await repo.get_latest()
        assert [r.coefficient for r in latest] == [Decimal("0.5"), Decimal("1.5"), Decimal("2.0")]
        assert [r.warehouse_name for r in latest] == ["C", "A", "B"]

    @pytest.mark.asyncio
    async def test_get_latest_returns_most_recent_day_only(self, repo):
        await repo.upsert_batch([_draft("A", "1", day=date(2024, 4, 30))])
        await repo.upsert_batch([_draft("B", "2", day=DAY), _draft("C", "1", day=DAY)])

        latest = await repo.get_latest()
        assert {r.date for r in latest} == {DAY}
        assert len(latest) == 2

    @pytest.mark.asyncio
    async def test_records_are_typed(self, repo):
        await repo.upsert_batch([_draft("A", "1.1")])
        record = (await repo.get_by_date(DAY))[0]

        assert record.id == 1
        assert record.coefficient == Decimal("1.1")
        assert record.created_at is not None
        assert record.raw_data == {"warehouseName": "A"}

    @pytest.mark.asyncio
    async def test_get_by_date_other_day_empty(self, repo):
        await repo.upsert_batch([_draft("A", "1")])
        assert await repo.get_by_date(date(2023, 1, 1)) == []

    @pytest.mark.asyncio
    async def test_get_all_dates_descending(self, repo):
        for day in (date(2024, 4, 29), date(2024, 5, 1), date(2024, 4, 30)):
            await repo.upsert_batch([_draft("A", "1", day=day), _draft("B", "1", day=day)])

        assert await repo.get_all_dates() == [date(2024, 5, 1), date(2024, 4, 30), date(2024, 4, 29)]

    @pytest.mark.asyncio
    async def test_read_fault_propagates(self, repo, fake_supabase):
        fake_supabase.fail_with = FakeStorageError("timeout")
        with pytest.raises(FakeStorageError):
            await repo.get_latest()

    @pytest.mark.asyncio
    async def test_ping_returns_latency(self, repo):
        assert await repo.ping() >= 0


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------

class TestDeleteOlderThan:
    @pytest.mark.asyncio
    async def test_boundary_day_survives(self, repo, fake_supabase):
        # clock starts on 2024-05-01, so the cutoff for 30 days is 2024-04-01
        await repo.upsert_batch(
            [
                _draft("old", "1", day=date(2024, 3, 31)),
                _draft("edge", "1", day=date(2024, 4, 1)),
                _draft("new", "1", day=date(2024, 4, 30)),
            ]
        )

        removed = await repo.delete_older_than(30)

        assert removed == 1
        names = {r["warehouse_name"] for r in fake_supabase.tables["tariffs"]}
        assert names == {"edge", "new"}

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, repo):
        await repo.upsert_batch([_draft("A", "1")])
        assert await repo.delete_older_than(30) == 0

    @pytest.mark.asyncio
    async def test_delete_fault_propagates(self, repo, fake_supabase):
        fake_supabase.fail_with = FakeStorageError("permission denied")
        with pytest.raises(FakeStorageError):
            await repo.delete_older_than(30)
