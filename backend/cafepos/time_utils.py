from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD calendar date. Raises ValueError when malformed."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    Half-open UTC window [D 00:00:00, D+1 00:00:00) for a calendar day.

    Includes D 23:59:59.999 and excludes the first instant of the next day.
    """
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def month_bounds(value: str) -> tuple[datetime, datetime]:
    """
    Half-open UTC window for a YYYY-MM month. Raises ValueError when malformed.
    """
    start = datetime.strptime(value.strip(), "%Y-%m")
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with millisecond precision and trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
