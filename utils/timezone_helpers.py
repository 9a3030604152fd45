"""
Timezone utilities for turning reporting periods (today, this week, ...) into
UTC instants.

All period boundaries are half-open ``[start, end)``: the start instant is
included, the end instant belongs to the next period.
"""

from datetime import date, datetime
from datetime import time as datetime_time
from datetime import timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

UtcRange = Tuple[datetime, datetime]


def from_utc_to_local(utc_dt: datetime, tz: str) -> datetime:
    """
    Convert UTC datetime to local datetime in the specified timezone.

    Args:
        utc_dt: UTC datetime (naive values are treated as UTC)
        tz: IANA timezone string (e.g., 'Europe/Dublin')

    Returns:
        datetime: Local datetime in the specified timezone
    """
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)

    return utc_dt.astimezone(ZoneInfo(tz))


def local_date_of(utc_dt: datetime, tz: str) -> date:
    """Calendar date of an instant as seen in the given timezone."""
    return from_utc_to_local(utc_dt, tz).date()


def local_start_of_day(date_or_dt, tz: str) -> datetime:
    """
    Get the start of day (00:00:00) in the specified timezone.

    Args:
        date_or_dt: date or datetime object
        tz: IANA timezone string

    Returns:
        datetime: Start of day in UTC
    """
    if isinstance(date_or_dt, datetime):
        local_date = date_or_dt.date()
    else:
        local_date = date_or_dt

    local_start = datetime.combine(local_date, datetime_time.min, tzinfo=ZoneInfo(tz))
    return local_start.astimezone(timezone.utc)


def day_range(local_date: date, tz: str) -> UtcRange:
    return (
        local_start_of_day(local_date, tz),
        local_start_of_day(local_date + timedelta(days=1), tz),
    )


def get_week_range(utc_ref: datetime, tz: str) -> UtcRange:
    """
    Week containing ``utc_ref`` (Monday 00:00 to the following Monday 00:00)
    in the specified timezone, as UTC instants.
    """
    local_date = local_date_of(utc_ref, tz)

    # weekday() returns 0=Monday, 6=Sunday
    week_start_date = local_date - timedelta(days=local_date.weekday())
    return (
        local_start_of_day(week_start_date, tz),
        local_start_of_day(week_start_date + timedelta(days=7), tz),
    )


def get_month_range(utc_ref: datetime, tz: str) -> UtcRange:
    local_date = local_date_of(utc_ref, tz)
    first = local_date.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return local_start_of_day(first, tz), local_start_of_day(next_first, tz)


def get_year_range(utc_ref: datetime, tz: str) -> UtcRange:
    local_date = local_date_of(utc_ref, tz)
    return (
        local_start_of_day(date(local_date.year, 1, 1), tz),
        local_start_of_day(date(local_date.year + 1, 1, 1), tz),
    )


def get_custom_range(start_date: date, end_date: date, tz: str) -> UtcRange:
    """
    Inclusive calendar range ``[start_date, end_date]`` converted to the
    half-open UTC range covering both whole days.
    """
    return (
        local_start_of_day(start_date, tz),
        local_start_of_day(end_date + timedelta(days=1), tz),
    )


def validate_timezone(tz: str) -> bool:
    """
    Validate if the timezone string is a valid IANA timezone.

    Args:
        tz: IANA timezone string to validate

    Returns:
        bool: True if valid, False otherwise
    """
    try:
        ZoneInfo(tz)
        return True
    except Exception:
        return False
