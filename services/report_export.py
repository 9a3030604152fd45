from datetime import datetime
from typing import Iterable, List, Optional

from models.shift_record import GeoPoint, ShiftRecord
from services.shift_session import elapsed_time
from services.time_aggregation import completed_duration_ms, format_duration
from utils.timezone_helpers import from_utc_to_local

EXPORT_COLUMNS = [
    "Date",
    "Site",
    "Shift",
    "Safety Items Checked",
    "GPS In",
    "GPS Out",
    "Status",
    "Worked",
]


def format_gps(point: Optional[GeoPoint]) -> str:
    if point is None:
        return "Not recorded"
    return f"{point.lat:.4f}, {point.lng:.4f}"


def safety_summary(record: ShiftRecord) -> str:
    if not record.checklist:
        return "No data"
    labels = record.safety_checklist.checked_labels()
    return ", ".join(labels) if labels else "None selected"


def export_row(record: ShiftRecord, tz: str, now: datetime) -> List[str]:
    start_local = from_utc_to_local(record.start_utc, tz)
    start = start_local.strftime("%H:%M")

    if record.end_timestamp is None:
        end = "Active"
        status = "In Work"
        worked = format_duration(elapsed_time(record, now).net_ms)
    else:
        end = from_utc_to_local(record.end_utc, tz).strftime("%H:%M")
        status = "Done"
        worked = format_duration(completed_duration_ms(record))

    return [
        start_local.strftime("%d/%m/%Y"),
        record.site_label,
        f"{start} - {end}",
        safety_summary(record),
        format_gps(record.start_location),
        format_gps(record.end_location),
        status,
        worked,
    ]


def export_rows(records: Iterable[ShiftRecord], tz: str, now: datetime) -> List[List[str]]:
    """Table body for exported reports, newest shift first."""
    ordered = sorted(records, key=lambda r: r.start_utc, reverse=True)
    return [export_row(record, tz, now) for record in ordered]
