"""Datetime utilities for timezone-aware UTC timestamps and report windows.

Usage:
    from src.utils.datetime_utils import utc_now

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form SQLite returns it in."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """
    Convert an inclusive date range into a half-open datetime window.

    Returns:
        (start of ``start``, start of the day after ``end``)
    """
    return (
        datetime.combine(start, time.min),
        datetime.combine(end + timedelta(days=1), time.min),
    )
