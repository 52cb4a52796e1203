"""Centralized datetime utilities for consistent timezone handling.

All functions return naive UTC datetimes for database compatibility
(SQLAlchemy models store naive UTC).

Usage:
    from teamcron.core.datetime_utils import utc_now, get_cutoff

    cutoff = get_cutoff(hours=24)
    items = query.filter(Notification.created_at >= cutoff)
"""

from datetime import UTC, date, datetime, timedelta


def utc_now() -> datetime:
    """Get current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def get_cutoff(hours: int = 0, days: int = 0, now: datetime | None = None) -> datetime:
    """Get cutoff datetime for filtering queries.

    Args:
        hours: Hours to subtract from now
        days: Days to subtract from now
        now: Reference point, defaults to the current UTC time

    Returns:
        Naive UTC datetime representing the cutoff point
    """
    delta = timedelta(hours=hours, days=days)
    return (now or utc_now()) - delta


def to_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC.

    Args:
        dt: Datetime to convert (can be aware or naive)

    Returns:
        Naive UTC datetime for database compatibility
    """
    if dt.tzinfo is None:
        # Already naive, assume it's UTC
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def start_of_day(dt: datetime) -> datetime:
    """Truncate a datetime to midnight of the same day."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _anniversary_in_year(month: int, day: int, year: int) -> date:
    try:
        return date(year, month, day)
    except ValueError:
        # Feb 29 in a non-leap year is celebrated on Feb 28
        return date(year, month, day - 1)


def next_anniversary(born: date, today: date) -> date:
    """Next occurrence of a yearly date on or after ``today``.

    Handles year rollover (a December birthday seen from January of the
    following year) and Feb 29 birthdays.
    """
    this_year = _anniversary_in_year(born.month, born.day, today.year)
    if this_year < today:
        return _anniversary_in_year(born.month, born.day, today.year + 1)
    return this_year


def days_until_anniversary(born: date, today: date) -> int:
    """Whole days from ``today`` until the next anniversary of ``born`` (0 = today)."""
    return (next_anniversary(born, today) - today).days
