"""
Worked-hours aggregation for charts and payroll-style reports.

Only ended shifts count towards completed hours. Each record contributes
``end - start - accumulated pause`` clamped at zero, attributed in full to
the calendar day (in the reporting timezone) its shift started on. Overnight
shifts are not split across days. Shifts still running are reported
separately as active entries.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from core.errors import PermissionDenied, ValidationError
from models.shift_record import ShiftRecord
from services.shift_session import elapsed_time
from utils.datetime_helpers import ensure_utc, ms_between
from utils.timezone_helpers import (
    day_range,
    get_custom_range,
    get_month_range,
    get_week_range,
    get_year_range,
    local_date_of,
)

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000

ALL_WORKERS = "all"


class ReportPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


def resolve_period(
    period: ReportPeriod,
    now: datetime,
    tz: str = "UTC",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[datetime, datetime]:
    """Half-open UTC range ``[start, end)`` for a preset or an inclusive custom date range."""
    if period == ReportPeriod.TODAY:
        return day_range(local_date_of(now, tz), tz)
    if period == ReportPeriod.WEEK:
        return get_week_range(now, tz)
    if period == ReportPeriod.MONTH:
        return get_month_range(now, tz)
    if period == ReportPeriod.YEAR:
        return get_year_range(now, tz)

    if start_date is None or end_date is None:
        raise ValidationError("A custom period needs both a start date and an end date.")
    if end_date < start_date:
        raise ValidationError("The end date must not be before the start date.")
    return get_custom_range(start_date, end_date, tz)


def resolve_worker_scope(is_admin: bool, requester_id: str, requested: Optional[str]) -> Optional[str]:
    """
    Which worker's records a caller may aggregate. ``None`` means every worker.

    Non-admins are always pinned to themselves, whatever they asked for.
    """
    if not is_admin:
        return requester_id
    if requested is None or requested == ALL_WORKERS:
        return None
    return requested


def check_record_access(is_admin: bool, requester_id: str, record: ShiftRecord) -> None:
    if not is_admin and record.worker_id != requester_id:
        raise PermissionDenied("You can only view your own shifts.")


def completed_duration_ms(record: ShiftRecord) -> Optional[int]:
    """Net bookable duration of an ended record, clamped at zero; None while the shift is open."""
    if record.end_timestamp is None:
        return None
    raw = ms_between(record.start_utc, record.end_utc) - (record.accumulated_pause_ms or 0)
    if raw < 0:
        logger.warning(f"[REPORT] Record {record.id} has negative net duration ({raw} ms); counting 0")
        return 0
    return raw


def format_duration(ms: int) -> str:
    """``Xh Ymin`` with truncated minutes, so per-record strings never round up."""
    ms = max(ms, 0)
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    return f"{hours}h {minutes}min"


def in_period(record: ShiftRecord, start: datetime, end: datetime) -> bool:
    return ensure_utc(start) <= record.start_utc < ensure_utc(end)


@dataclass
class DayBucket:
    day: date
    total_ms: int = 0
    record_count: int = 0

    @property
    def formatted(self) -> str:
        return format_duration(self.total_ms)

    @property
    def hours(self) -> float:
        return round(self.total_ms / MS_PER_HOUR, 2)


@dataclass
class ActiveEntry:
    record: ShiftRecord
    elapsed_ms: int


@dataclass
class AggregationResult:
    period_start: datetime
    period_end: datetime
    buckets: List[DayBucket] = field(default_factory=list)
    total_ms: int = 0
    completed: List[ShiftRecord] = field(default_factory=list)
    active: List[ActiveEntry] = field(default_factory=list)

    @property
    def formatted_total(self) -> str:
        return format_duration(self.total_ms)

    def bucket_for(self, day: date) -> Optional[DayBucket]:
        for bucket in self.buckets:
            if bucket.day == day:
                return bucket
        return None


def aggregate(
    records: Iterable[ShiftRecord],
    period_start: datetime,
    period_end: datetime,
    tz: str = "UTC",
    now: Optional[datetime] = None,
) -> AggregationResult:
    """
    Bucket net worked time per start day for records starting in ``[period_start, period_end)``.

    ``now`` is only used for the elapsed time of active entries.
    """
    now = ensure_utc(now) if now is not None else period_end
    result = AggregationResult(period_start=period_start, period_end=period_end)
    buckets: Dict[date, DayBucket] = {}

    for record in records:
        if not in_period(record, period_start, period_end):
            continue

        duration = completed_duration_ms(record)
        if duration is None:
            result.active.append(ActiveEntry(record=record, elapsed_ms=elapsed_time(record, now).net_ms))
            continue

        day = local_date_of(record.start_utc, tz)
        bucket = buckets.setdefault(day, DayBucket(day=day))
        bucket.total_ms += duration
        bucket.record_count += 1
        result.completed.append(record)

    result.buckets = sorted(buckets.values(), key=lambda b: b.day)
    result.total_ms = sum(bucket.total_ms for bucket in result.buckets)
    result.completed.sort(key=lambda r: r.start_utc, reverse=True)
    result.active.sort(key=lambda entry: entry.record.start_utc)
    return result


def weekly_chart(records: Iterable[ShiftRecord], now: datetime, tz: str = "UTC") -> List[dict]:
    """Current Monday-to-Sunday week, one entry per weekday that has completed hours."""
    week_start, week_end = get_week_range(now, tz)
    result = aggregate(records, week_start, week_end, tz=tz, now=now)
    return [
        {"name": bucket.day.strftime("%A"), "date": bucket.day.isoformat(), "hours": bucket.hours}
        for bucket in result.buckets
    ]
