"""
models/tariffs.py — Pydantic models for the Wildberries box-tariff payload
and the tariffs table.

Upstream payload (GET /api/v1/tariffs/box?date=YYYY-MM-DD):

    {
      "response": {
        "data": {
          "dtNextBox": "2024-05-02",
          "dtTillMax": "2024-05-31",
          "warehouseList": [
            {
              "warehouseName": "Коледино",
              "boxTypeName": "Короб",
              "boxDeliveryBase": "48",
              "boxDeliveryLiter": "11,2",
              "boxStorageBase": "0,14",
              "boxStorageLiter": "0,07",
              "boxDeliveryCoefExpr": "160",
              "boxStorageCoefExpr": "115"
            }
          ]
        }
      }
    }

The upstream models keep unknown keys (extra="allow") so nothing is lost
when Wildberries adds fields; raw_data stores the original dict anyway.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _stringify(v: Any) -> Any:
    # Numeric expressions occasionally arrive as JSON numbers
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


# ---------------------------------------------------------------------------
# Upstream payload
# ---------------------------------------------------------------------------


class WarehouseTariff(BaseModel):
    """One entry of response.data.warehouseList."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    warehouse_name: str | None = Field(default=None, alias="warehouseName")
    box_type_name: str | None = Field(default=None, alias="boxTypeName")
    geo_name: str | None = Field(default=None, alias="geoName")
    box_delivery_base: str | None = Field(default=None, alias="boxDeliveryBase")
    box_delivery_liter: str | None = Field(default=None, alias="boxDeliveryLiter")
    box_storage_base: str | None = Field(default=None, alias="boxStorageBase")
    box_storage_liter: str | None = Field(default=None, alias="boxStorageLiter")
    box_delivery_coef_expr: str | None = Field(default=None, alias="boxDeliveryCoefExpr")
    box_storage_coef_expr: str | None = Field(default=None, alias="boxStorageCoefExpr")

    @field_validator(
        "warehouse_name",
        "box_type_name",
        "box_delivery_base",
        "box_delivery_liter",
        "box_storage_base",
        "box_storage_liter",
        "box_delivery_coef_expr",
        "box_storage_coef_expr",
        mode="before",
    )
    @classmethod
    def numbers_to_str(cls, v: Any) -> Any:
        return _stringify(v)


class TariffData(BaseModel):
    """response.data — the shared validity window plus the warehouse list."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    dt_next_box: str | None = Field(default=None, alias="dtNextBox")
    dt_till_max: str | None = Field(default=None, alias="dtTillMax")
    # Entries are validated one by one so a single bad entry does not sink the batch
    warehouse_list: list[Any] = Field(alias="warehouseList")


class TariffEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: TariffData


class TariffBoxResponse(BaseModel):
    """Top-level body of the box-tariffs endpoint."""

    model_config = ConfigDict(extra="allow")

    response: TariffEnvelope


# ---------------------------------------------------------------------------
# tariffs table
# ---------------------------------------------------------------------------


class TariffRecordDraft(BaseModel):
    """
    A tariffs row before the store assigns id / created_at / updated_at.

    Natural key is (date, warehouse_name, box_type).
    """

    date: dt.date
    warehouse_name: str
    box_type: str
    coefficient: Decimal
    dt_next_box: dt.datetime | None = None
    dt_till_max: dt.datetime | None = None
    delivery_base: str = "0"
    delivery_liter: str = "0"
    storage_base: str = "0"
    storage_liter: str = "0"
    raw_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("coefficient", mode="before")
    @classmethod
    def float_via_str(cls, v: Any) -> Any:
        # numeric columns come back from PostgREST as JSON floats; 1.1 must stay 1.1
        if isinstance(v, float):
            return str(v)
        return v

    @property
    def natural_key(self) -> tuple[dt.date, str, str]:
        return (self.date, self.warehouse_name, self.box_type)

    def to_upsert_dict(self, updated_at: dt.datetime) -> dict[str, Any]:
        """
        JSON-ready row for the Supabase upsert.

        Carries the natural key plus the merge columns only; id and
        created_at are left to the database.
        """
        return {
            "date": self.date.isoformat(),
            "warehouse_name": self.warehouse_name,
            "box_type": self.box_type,
            "coefficient": float(self.coefficient),
            "dt_next_box": self.dt_next_box.isoformat() if self.dt_next_box else None,
            "dt_till_max": self.dt_till_max.isoformat() if self.dt_till_max else None,
            "delivery_base": self.delivery_base,
            "delivery_liter": self.delivery_liter,
            "storage_base": self.storage_base,
            "storage_liter": self.storage_liter,
            "raw_data": self.raw_data,
            "updated_at": updated_at.isoformat(),
        }


class TariffRecord(TariffRecordDraft):
    """Matches the tariffs table row."""

    id: int
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "TariffRecord":
        return cls(**{**row, "raw_data": row.get("raw_data") or {}})
