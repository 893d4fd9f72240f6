import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from callsync.core.config import Settings, get_settings
from callsync.core.database import get_db
from callsync.core.deps import get_vapi_client
from callsync.core.errors import CallSyncError, UnexpectedError, ValidationError
from callsync.schemas import ErrorResponse, SyncResponse, WebhookAck
from callsync.services.sync import ingest_webhook, sync_assistant_calls, verify_webhook_secret
from callsync.services.vapi_client import VapiClient

router = APIRouter(
    prefix="/api/vapi",
    tags=["vapi"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
logger = logging.getLogger(__name__)


@router.get("/sync", response_model=SyncResponse)
def sync_calls(
    assistant_id: Optional[str] = Query(default=None, alias="assistantId"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    db: Session = Depends(get_db),
    client: VapiClient = Depends(get_vapi_client),
    settings: Settings = Depends(get_settings),
):
    try:
        result = sync_assistant_calls(
            db,
            client,
            assistant_id,
            start=start,
            end=end,
            page_limit=settings.vapi_page_limit,
        )
    except CallSyncError:
        raise
    except Exception as exc:
        logger.exception("Sync failed for assistant %s", assistant_id)
        raise UnexpectedError() from exc
    return SyncResponse(upserted=result.upserted)


def require_webhook_secret(
    x_vapi_secret: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    verify_webhook_secret(x_vapi_secret, settings.vapi_webhook_secret)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={401: {"model": ErrorResponse}},
    dependencies=[Depends(require_webhook_secret)],
)
async def receive_webhook(request: Request, db: Session = Depends(get_db)):
    # body is parsed only after require_webhook_secret has passed
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body) if raw_body else None
    except ValueError as exc:
        raise ValidationError("Invalid request", details={"body": "Malformed JSON"}) from exc
    try:
        await run_in_threadpool(ingest_webhook, db, payload)
    except CallSyncError:
        raise
    except Exception as exc:
        logger.exception("Webhook delivery failed")
        raise UnexpectedError() from exc
    return WebhookAck()
