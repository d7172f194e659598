"""
time_utils.py — Date helpers shared by the fetcher, transformer and loader.

Wildberries publishes timestamps in a few shapes:
- ISO date: "2024-05-01"
- ISO datetime: "2024-05-01T00:00:00", "2024-05-01T10:30:00+03:00"
- Empty string / null when a validity window is not set

All "today" computations use UTC so the fetch date parameter, the
record date and the retention cutoff agree with each other.

Usage:
    from wbtariffs_shared.time_utils import parse_timestamp, start_of_day, utcnow

    parse_timestamp("2024-05-01")           # datetime(2024, 5, 1, 0, 0)
    parse_timestamp("")                     # None
    start_of_day(datetime(2024, 5, 1, 13))  # date(2024, 5, 1)
    retention_cutoff(30, date(2024, 5, 31)) # date(2024, 5, 1)
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return utcnow().date()


def start_of_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def format_date(value: date | datetime | None) -> str:
    """Render a date as YYYY-MM-DD, or "" for None."""
    if value is None:
        return ""
    return start_of_day(value).isoformat()


def parse_timestamp(raw: Any) -> datetime | None:
    """
    Parse an upstream timestamp string.

    Returns None for missing, blank or unparseable values; never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return isoparse(raw.strip())
    except (ValueError, OverflowError):
        return None


def retention_cutoff(days: int, today: date | None = None) -> date:
    """First calendar day that survives a retention sweep of `days` days."""
    return (today or today_utc()) - relativedelta(days=days)
