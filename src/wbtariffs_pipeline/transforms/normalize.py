"""
transforms/normalize.py — Numeric normalization for upstream tariff fields.

Wildberries sends every tariff number as free text: "48", "11,2" (comma
decimal separator), "-" or "" when a value does not apply. These helpers
turn that text into canonical forms. Both are total: they never raise.

Unparseable input is coerced to zero on purpose. Callers must treat 0 as
a valid "could not parse" value; a sudden run of zero coefficients is the
sign of an upstream format change.

Usage:
    from wbtariffs_pipeline.transforms.normalize import normalize_decimal, parse_number

    normalize_decimal(" 11,2 ")   # "11.2"
    normalize_decimal("-")        # "0"
    parse_number("1,5")           # Decimal("1.5")
    parse_number("n/a")           # Decimal("0")
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

# Values meaning "no number here"
_BLANK_MARKERS = {"", "-"}


def normalize_decimal(raw: Any) -> str:
    """
    Canonical decimal string for a free-text upstream number.

    None, empty, whitespace-only and a lone "-" give "0". Otherwise commas
    become periods and surrounding whitespace is stripped; the magnitude is
    not validated (the database rejects malformed decimals).
    """
    if raw is None:
        return "0"
    text = str(raw).strip()
    if text in _BLANK_MARKERS:
        return "0"
    return text.replace(",", ".")


def parse_number(raw: Any) -> Decimal:
    """Parse a free-text upstream number; anything unparseable is 0."""
    text = normalize_decimal(raw)
    try:
        value = Decimal(text)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return value


def parse_coefficient(expr: Any) -> Decimal:
    """Parse a delivery / storage coefficient expression such as "160" or "1,5"."""
    return parse_number(expr)
