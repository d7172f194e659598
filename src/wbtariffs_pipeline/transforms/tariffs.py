"""
transforms/tariffs.py — Wildberries box-tariff payload → tariffs table drafts.

Pure functions, no I/O. The transformer:
  - validates the payload shape once (validate_response) and reports an
    invalid shape as a value, never as an exception
  - stamps every draft with the same calendar day and validity window
  - derives coefficient = max(delivery coefficient, storage coefficient)
  - normalizes the four tariff fields (comma decimals, blanks, dashes)
  - keeps the untouched warehouse object as raw_data
  - preserves upstream order

Usage:
    from wbtariffs_pipeline.transforms.tariffs import transform_response

    result = transform_response(payload, as_of=datetime.now(timezone.utc))
    if result.structural_error:
        ...                      # nothing usable in this payload
    drafts = result.records
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import structlog
from pydantic import ValidationError

from wbtariffs_shared.constants import DEFAULT_BOX_TYPE
from wbtariffs_shared.models.tariffs import (
    TariffBoxResponse,
    TariffData,
    TariffRecordDraft,
    WarehouseTariff,
)
from wbtariffs_shared.time_utils import parse_timestamp, start_of_day
from wbtariffs_pipeline.transforms.normalize import normalize_decimal, parse_coefficient

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InvalidShape:
    """Outcome of validate_response() when the payload is unusable."""

    reason: str


@dataclass
class TransformResult:
    records: list[TariffRecordDraft] = field(default_factory=list)
    structural_error: str | None = None
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.structural_error is None


def validate_response(payload: Any) -> TariffData | InvalidShape:
    """
    Check that the payload carries response.data.warehouseList.

    Returns the typed data block, or InvalidShape naming the first problem.
    """
    if not isinstance(payload, dict):
        return InvalidShape(f"payload is {type(payload).__name__}, expected object")
    try:
        parsed = TariffBoxResponse.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        return InvalidShape(f"{loc}: {first['msg']}")
    return parsed.response.data


def _box_type(entry: WarehouseTariff) -> str:
    name = (entry.box_type_name or "").strip()
    return name or DEFAULT_BOX_TYPE


def build_draft(
    raw: dict[str, Any],
    *,
    day: date,
    dt_next_box: datetime | None,
    dt_till_max: datetime | None,
) -> TariffRecordDraft | None:
    """
    Turn one warehouseList entry into a draft.

    Returns None when the entry has no usable warehouse name.
    """
    try:
        entry = WarehouseTariff.model_validate(raw)
    except ValidationError:
        return None
    warehouse_name = (entry.warehouse_name or "").strip()
    if not warehouse_name:
        return None

    coefficient = max(
        parse_coefficient(entry.box_delivery_coef_expr),
        parse_coefficient(entry.box_storage_coef_expr),
    )
    return TariffRecordDraft(
        date=day,
        warehouse_name=warehouse_name,
        box_type=_box_type(entry),
        coefficient=coefficient,
        dt_next_box=dt_next_box,
        dt_till_max=dt_till_max,
        delivery_base=normalize_decimal(entry.box_delivery_base),
        delivery_liter=normalize_decimal(entry.box_delivery_liter),
        storage_base=normalize_decimal(entry.box_storage_base),
        storage_liter=normalize_decimal(entry.box_storage_liter),
        raw_data=raw,
    )


def transform_response(payload: Any, as_of: date | datetime) -> TransformResult:
    """
    Map one box-tariffs payload to tariffs drafts.

    Args:
        payload: Decoded JSON body returned by the fetcher.
        as_of:   Run timestamp; truncated to a calendar day for every draft.

    Returns:
        TransformResult. An invalid payload yields no records and a
        structural_error message instead of raising.
    """
    data = validate_response(payload)
    if isinstance(data, InvalidShape):
        log.error("invalid_response_structure", reason=data.reason)
        return TransformResult(structural_error=data.reason)

    day = start_of_day(as_of)
    dt_next_box = parse_timestamp(data.dt_next_box)
    dt_till_max = parse_timestamp(data.dt_till_max)

    result = TransformResult()
    for position, raw in enumerate(data.warehouse_list):
        draft = (
            build_draft(raw, day=day, dt_next_box=dt_next_box, dt_till_max=dt_till_max)
            if isinstance(raw, dict)
            else None
        )
        if draft is None:
            result.skipped += 1
            log.warning("warehouse_entry_skipped", position=position)
            continue
        result.records.append(draft)

    log.info(
        "records_transformed",
        date=day.isoformat(),
        count=len(result.records),
        skipped=result.skipped,
    )
    return result


def deduplicate_drafts(drafts: list[TariffRecordDraft]) -> list[TariffRecordDraft]:
    """
    Collapse drafts sharing a natural key, keeping the last occurrence.

    A single upsert statement may not touch the same row twice, so a
    payload listing one warehouse / box type twice must be reduced first.
    The surviving draft takes the position of the first occurrence.
    """
    by_key: dict[tuple[date, str, str], TariffRecordDraft] = {}
    for draft in drafts:
        by_key[draft.natural_key] = draft
    if len(by_key) < len(drafts):
        log.warning("duplicate_natural_keys", dropped=len(drafts) - len(by_key))
    return list(by_key.values())
