from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Query as OrmQuery, Session

from callsync.core.database import get_db
from callsync.core.errors import ValidationError
from callsync.models import CallLog
from callsync.schemas import CallLogDetail, CallLogOut
from callsync.services.normalizer import parse_timestamp

router = APIRouter(prefix="/calls", tags=["calls"])


def parse_bound(name: str, value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 timestamp")
    return parsed


def assistant_calls_query(
    db: Session,
    assistant_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> OrmQuery:
    query = db.query(CallLog).filter(CallLog.assistant_id == assistant_id)
    if start:
        query = query.filter(CallLog.start_time >= start)
    if end:
        query = query.filter(CallLog.start_time <= end)
    return query


@router.get("", response_model=List[CallLogOut])
def list_calls(
    assistant_id: Optional[str] = Query(default=None, alias="assistantId"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    if not assistant_id:
        raise ValidationError("assistantId required")
    query = assistant_calls_query(db, assistant_id, parse_bound("start", start), parse_bound("end", end))
    return query.order_by(CallLog.start_time.desc()).limit(limit).all()


@router.get("/{call_id}", response_model=CallLogDetail)
def get_call(call_id: str, db: Session = Depends(get_db)):
    call = db.get(CallLog, call_id)
    if call is None:
        raise HTTPException(status_code=404, detail="Call not found")
    return call
