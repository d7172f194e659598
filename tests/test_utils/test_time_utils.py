"""
tests/test_utils/test_time_utils.py — Tests for shared date helpers.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from wbtariffs_shared.time_utils import (
    format_date,
    parse_timestamp,
    retention_cutoff,
    start_of_day,
)


class TestParseTimestamp:
    def test_iso_date(self):
        assert parse_timestamp("2024-05-01") == datetime(2024, 5, 1)

    def test_iso_datetime_with_offset(self):
        parsed = parse_timestamp("2024-05-01T10:30:00+03:00")
        assert parsed.utcoffset() == timedelta(hours=3)

    @pytest.mark.parametrize("raw", [None, "", "   ", "not a date", 42])
    def test_unusable_values_are_none(self, raw):
        assert parse_timestamp(raw) is None

    def test_date_object_promoted(self):
        assert parse_timestamp(date(2024, 5, 1)) == datetime(2024, 5, 1)


class TestDayHelpers:
    def test_start_of_day_truncates(self):
        assert start_of_day(datetime(2024, 5, 1, 23, 59, tzinfo=timezone.utc)) == date(2024, 5, 1)

    def test_format_date_none(self):
        assert format_date(None) == ""

    def test_format_date_datetime(self):
        assert format_date(datetime(2024, 5, 2, 8, 0)) == "2024-05-02"

    def test_retention_cutoff(self):
        assert retention_cutoff(30, date(2024, 5, 31)) == date(2024, 5, 1)

    def test_retention_cutoff_crosses_month(self):
        assert retention_cutoff(1, date(2024, 3, 1)) == date(2024, 2, 29)
