from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from callsync.api.calls import assistant_calls_query, parse_bound
from callsync.core.database import get_db
from callsync.core.errors import ValidationError
from callsync.models import CallLog
from callsync.schemas import DashboardSummary, HourlyPoint

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

HOUR_LABELS = [f"{(hour % 12) or 12}{'am' if hour < 12 else 'pm'}" for hour in range(24)]
ONE_TICK = timedelta(microseconds=1)


def _month_start(year: int, month: int) -> datetime:
    # month may run past either end of the year
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def range_to_dates(range_value: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    if range_value == "today":
        start = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
        return start, start + timedelta(days=1) - ONE_TICK
    if range_value == "last_month":
        return _month_start(now.year, now.month - 1), _month_start(now.year, now.month) - ONE_TICK
    if range_value == "last_3_months":
        return _month_start(now.year, now.month - 2), _month_start(now.year, now.month + 1) - ONE_TICK
    if range_value == "this_year":
        return (
            datetime(now.year, 1, 1, tzinfo=timezone.utc),
            datetime(now.year + 1, 1, 1, tzinfo=timezone.utc) - ONE_TICK,
        )
    return _month_start(now.year, now.month), _month_start(now.year, now.month + 1) - ONE_TICK


def custom_range(start: str, end: str) -> tuple[datetime, datetime]:
    range_start = parse_bound("start", start)
    range_end = parse_bound("end", end)
    if len(end) == 10:
        range_end = range_end + timedelta(days=1) - ONE_TICK
    if range_end < range_start:
        raise ValidationError("end must not be before start")
    return range_start, range_end


@router.get("/summary", response_model=DashboardSummary)
def summary(
    assistant_id: Optional[str] = Query(default=None, alias="assistantId"),
    range_value: str = Query("this_month", alias="range", pattern="^(today|this_month|last_month|last_3_months|this_year)$"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if not assistant_id:
        raise ValidationError("assistantId required")
    if start and end:
        range_start, range_end = custom_range(start, end)
    elif start or end:
        raise ValidationError("start and end must be given together")
    else:
        range_start, range_end = range_to_dates(range_value)

    rows = (
        assistant_calls_query(db, assistant_id, range_start, range_end)
        .with_entities(CallLog.start_time, CallLog.duration_seconds)
        .all()
    )
    buckets = [0] * 24
    total_seconds = 0
    for start_time, duration_seconds in rows:
        total_seconds += duration_seconds or 0
        if start_time is not None:
            if start_time.tzinfo is not None:
                start_time = start_time.astimezone(timezone.utc)
            buckets[start_time.hour] += 1
    total_calls = len(rows)
    total_minutes = total_seconds / 60
    return DashboardSummary(
        assistant_id=assistant_id,
        range_start=range_start,
        range_end=range_end,
        total_calls=total_calls,
        total_minutes=round(total_minutes, 2),
        avg_minutes=round(total_minutes / total_calls, 2) if total_calls else 0.0,
        hourly=[
            HourlyPoint(hour=hour, label=HOUR_LABELS[hour], calls=count)
            for hour, count in enumerate(buckets)
        ],
    )
