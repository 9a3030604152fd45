from datetime import datetime, timedelta, timezone
from typing import Optional

ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Timezone-aware current instant in UTC. Default clock for the shift services."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to an aware UTC value.

    SQLite hands back naive datetimes even for tz-aware columns, so anything
    read from the record store goes through here before arithmetic.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def ms_between(start: datetime, end: datetime) -> int:
    """Signed whole milliseconds from start to end (floor)."""
    return (ensure_utc(end) - ensure_utc(start)) // ONE_MS


def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime object to an ISO 8601 string with 'Z' suffix.

    If the datetime is naive, it is assumed to be in UTC and is made aware.
    If it is timezone-aware, it is converted to UTC.

    Args:
        dt: A datetime object or None

    Returns:
        An ISO 8601 formatted string with 'Z' suffix, or None if the input is None.
    """
    if dt is None:
        return None

    dt = ensure_utc(dt)

    # Format to ISO string and replace the +00:00 suffix with 'Z'.
    iso_string = dt.isoformat()

    if iso_string.endswith("+00:00"):
        return iso_string.replace("+00:00", "Z")

    return iso_string


def parse_utc_datetime(value: str) -> datetime:
    """Parse an ISO 8601 string (with or without 'Z') into an aware UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def format_clock(ms: int) -> str:
    """HH:MM:SS rendering of a millisecond span, used by the live shift timer."""
    seconds = max(ms, 0) // 1000
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
