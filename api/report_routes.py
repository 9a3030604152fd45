from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from core.context import AppContext, get_context
from core.deps import get_current_user
from services.report_export import EXPORT_COLUMNS, export_rows
from services.shift_session import elapsed_time
from services.time_aggregation import (
    ReportPeriod,
    aggregate,
    resolve_period,
    resolve_worker_scope,
    weekly_chart,
)
from utils.datetime_helpers import format_utc_datetime

router = APIRouter()


def _scoped_records(context: AppContext, user: dict, worker: Optional[str], start, end):
    # Authorization lives here, at the query: non-admins only ever see their own shifts.
    scope = resolve_worker_scope(user["is_admin"], user["uid"], worker)
    return context.repository.list_started_between(start, end, worker_id=scope), scope


@router.get("/summary")
def get_summary(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    period: ReportPeriod = ReportPeriod.WEEK,
    start: Optional[date] = None,
    end: Optional[date] = None,
    worker: Annotated[Optional[str], Query(description="'all' or a worker id (admins only)")] = None,
):
    tz = context.settings.report_timezone
    now = context.clock()
    period_start, period_end = resolve_period(period, now, tz, start, end)
    records, scope = _scoped_records(context, user, worker, period_start, period_end)

    result = aggregate(records, period_start, period_end, tz=tz, now=now)

    return {
        "status": "success",
        "data": {
            "period": period.value,
            "worker": scope or "all",
            "period_start": format_utc_datetime(result.period_start),
            "period_end": format_utc_datetime(result.period_end),
            "timezone": tz,
            "buckets": [
                {
                    "date": bucket.day.isoformat(),
                    "total_ms": bucket.total_ms,
                    "total": bucket.formatted,
                    "hours": bucket.hours,
                    "record_count": bucket.record_count,
                }
                for bucket in result.buckets
            ],
            "total_ms": result.total_ms,
            "total": result.formatted_total,
            "active": [
                {
                    "record": entry.record,
                    "elapsed_ms": entry.elapsed_ms,
                    "elapsed": elapsed_time(entry.record, now).formatted,
                }
                for entry in result.active
            ],
            "records": result.completed,
        },
    }


@router.get("/weekly-chart")
def get_weekly_chart(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    worker: Optional[str] = None,
):
    tz = context.settings.report_timezone
    now = context.clock()
    week_start, week_end = resolve_period(ReportPeriod.WEEK, now, tz)
    records, _ = _scoped_records(context, user, worker, week_start, week_end)
    return {"status": "success", "data": weekly_chart(records, now, tz)}


@router.get("/export")
def get_export(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    period: ReportPeriod = ReportPeriod.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None,
    worker: Optional[str] = None,
):
    tz = context.settings.report_timezone
    now = context.clock()
    period_start, period_end = resolve_period(period, now, tz, start, end)
    records, scope = _scoped_records(context, user, worker, period_start, period_end)
    result = aggregate(records, period_start, period_end, tz=tz, now=now)

    return {
        "status": "success",
        "data": {
            "worker": scope or "all",
            "generated_at": format_utc_datetime(now),
            "columns": EXPORT_COLUMNS,
            "rows": export_rows(records, tz, now),
            "total": result.formatted_total,
        },
    }
