import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PayloadVariant(str, enum.Enum):
    LOG = "log"
    CALL = "call"


class CanonicalCallRecord(CamelModel):
    id: Optional[str] = None
    assistant_id: str
    type: Optional[str] = None
    status: Optional[str] = None
    ended_reason: Optional[str] = None
    from_number: Optional[str] = Field(default=None, alias="from")
    to_number: Optional[str] = Field(default=None, alias="to")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    call_date: Optional[datetime] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    recording_url: Optional[str] = None
    transcript: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "call_date", "created_at", "updated_at")
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class NormalizationResult(BaseModel):
    record: CanonicalCallRecord
    variant: PayloadVariant
    missing_fields: List[str] = []


class SyncResponse(BaseModel):
    upserted: int


class WebhookAck(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


class CallLogOut(CamelModel):
    id: str
    assistant_id: str
    type: Optional[str] = None
    status: Optional[str] = None
    ended_reason: Optional[str] = None
    from_number: Optional[str] = Field(default=None, alias="from")
    to_number: Optional[str] = Field(default=None, alias="to")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    call_date: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    recording_url: Optional[str] = None
    transcript: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("start_time", "end_time", "call_date", "created_at", "updated_at")
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class CallLogDetail(CallLogOut):
    raw: Dict[str, Any]


class HourlyPoint(CamelModel):
    hour: int
    label: str
    calls: int


class DashboardSummary(CamelModel):
    assistant_id: str
    range_start: datetime
    range_end: datetime
    total_calls: int
    total_minutes: float
    avg_minutes: float
    hourly: List[HourlyPoint]
