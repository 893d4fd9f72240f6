import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from callsync.core.errors import AuthError, ValidationError
from callsync.services.normalizer import normalize_payload, parse_timestamp
from callsync.services.reconciler import SourceReconciler
from callsync.services.vapi_client import VapiClient
from callsync.services.writer import CallLogWriter, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    upserted: int
    source: Optional[str]


def validate_window(start: Optional[str], end: Optional[str]) -> None:
    for name, value in (("start", start), ("end", end)):
        if value and parse_timestamp(value) is None:
            raise ValidationError(f"{name} must be an ISO-8601 timestamp")


def sync_assistant_calls(
    db: Session,
    client: VapiClient,
    assistant_id: Optional[str],
    start: Optional[str] = None,
    end: Optional[str] = None,
    page_limit: int = 200,
    clock: Callable[[], datetime] = utcnow,
) -> SyncResult:
    validate_window(start, end)
    batch = SourceReconciler(client, page_limit=page_limit).fetch(assistant_id, start, end)
    records = [normalize_payload(payload, assistant_id).record for payload in batch.payloads]
    upserted = CallLogWriter(db, clock=clock).upsert(records)
    logger.info(
        "Synced %s call(s) for assistant %s from %s",
        upserted,
        assistant_id,
        batch.source or "no source",
    )
    return SyncResult(upserted=upserted, source=batch.source)


def verify_webhook_secret(provided: Optional[str], configured: Optional[str]) -> None:
    if not configured:
        return
    if provided is None or not hmac.compare_digest(provided.encode(), configured.encode()):
        raise AuthError()


def ingest_webhook(
    db: Session,
    payload: Any,
    clock: Callable[[], datetime] = utcnow,
) -> str:
    if not isinstance(payload, Mapping):
        raise ValidationError("Webhook body must be a JSON object")
    missing = [key for key in ("id", "assistantId") if not payload.get(key)]
    if missing:
        raise ValidationError("Missing id or assistantId", details={"missing": missing})
    result = normalize_payload(payload, str(payload["assistantId"]))
    # the delivery names the call by "id"; a stray callId must not take over
    record = result.record.model_copy(update={"id": str(payload["id"])})
    CallLogWriter(db, clock=clock).upsert([record])
    logger.info("Stored webhook delivery for call %s", record.id)
    return record.id
