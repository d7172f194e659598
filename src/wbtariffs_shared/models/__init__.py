"""
wbtariffs_shared.models — Pydantic models for the upstream payload and the
tariffs table.

Table models provide:
  .from_db_row(row: dict) -> Model
  .to_upsert_dict(updated_at) -> dict
"""

from wbtariffs_shared.models.tariffs import (
    TariffBoxResponse,
    TariffData,
    TariffEnvelope,
    TariffRecord,
    TariffRecordDraft,
    WarehouseTariff,
)

__all__ = [
    "TariffBoxResponse",
    "TariffEnvelope",
    "TariffData",
    "WarehouseTariff",
    "TariffRecordDraft",
    "TariffRecord",
]
