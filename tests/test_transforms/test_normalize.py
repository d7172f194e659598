"""
tests/test_transforms/test_normalize.py — Tests for numeric normalization.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from wbtariffs_pipeline.transforms.normalize import (
    normalize_decimal,
    parse_coefficient,
    parse_number,
)


class TestNormalizeDecimal:
    def test_comma_becomes_period(self):
        assert normalize_decimal("11,2") == "11.2"

    def test_whitespace_is_stripped(self):
        assert normalize_decimal("  0,14 ") == "0.14"

    @pytest.mark.parametrize("raw", [None, "", "   ", "-", " - "])
    def test_blank_markers_give_zero(self, raw):
        assert normalize_decimal(raw) == "0"

    def test_plain_integer_passes_through(self):
        assert normalize_decimal("48") == "48"

    def test_numbers_are_stringified(self):
        assert normalize_decimal(1.5) == "1.5"

    def test_magnitude_is_not_validated(self):
        assert normalize_decimal("abc") == "abc"


class TestParseNumber:
    def test_comma_decimal(self):
        assert parse_number("1,5") == Decimal("1.5")

    def test_period_decimal(self):
        assert parse_number("2.75") == Decimal("2.75")

    def test_integer_text(self):
        assert parse_number("160") == Decimal("160")

    @pytest.mark.parametrize("raw", ["n/a", "1,2,3", "NaN", "Infinity", "-", "", None])
    def test_unparseable_is_zero(self, raw):
        assert parse_number(raw) == Decimal("0")

    def test_never_raises_on_odd_types(self):
        assert parse_number(object()) == Decimal("0")


class TestParseCoefficient:
    def test_expression_is_parsed(self):
        assert parse_coefficient("0,8") == Decimal("0.8")

    def test_missing_expression_is_zero(self):
        assert parse_coefficient(None) == Decimal("0")
