"""
constants.py — shared constants used across the pipeline and API.

Table names, the natural key of the tariffs table and the upstream
endpoint path live here so the loader, the migration and the tests
agree on them.
"""

from __future__ import annotations

from typing import Final

SERVICE_NAME: Final[str] = "wb-tariffs-service"

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
TARIFFS_TABLE: Final[str] = "tariffs"
TARIFF_DATES_VIEW: Final[str] = "tariff_dates"

# At most one row per warehouse / box type per calendar day
NATURAL_KEY: Final[tuple[str, str, str]] = ("date", "warehouse_name", "box_type")

# Columns rewritten when an upsert hits an existing natural key
MERGE_COLUMNS: Final[tuple[str, ...]] = (
    "coefficient",
    "dt_next_box",
    "dt_till_max",
    "delivery_base",
    "delivery_liter",
    "storage_base",
    "storage_liter",
    "raw_data",
    "updated_at",
)

# ---------------------------------------------------------------------------
# Upstream (Wildberries common API)
# ---------------------------------------------------------------------------
WB_TARIFFS_BOX_PATH: Final[str] = "/api/v1/tariffs/box"

DEFAULT_BOX_TYPE: Final[str] = "standard"

# ---------------------------------------------------------------------------
# Spreadsheet projection
# ---------------------------------------------------------------------------
SHEET_HEADER: Final[tuple[str, ...]] = (
    "Склад",
    "Тип коробки",
    "Коэффициент",
    "Дата обновления",
    "Дата следующей коробки",
    "Дата до максимума",
)
