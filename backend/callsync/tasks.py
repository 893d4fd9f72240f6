import logging
from datetime import datetime, timedelta, timezone

from celery import shared_task
from sqlalchemy.orm import Session

from callsync.core.config import settings
from callsync.core.database import SessionLocal
from callsync.core.errors import StorageWriteError
from callsync.services.sync import sync_assistant_calls
from callsync.services.vapi_client import VapiClient

logger = logging.getLogger(__name__)


def sync_window(lookback_minutes: int, now: datetime | None = None) -> tuple[str, str]:
    range_end = now or datetime.now(timezone.utc)
    range_start = range_end - timedelta(minutes=lookback_minutes)
    return range_start.isoformat(), range_end.isoformat()


@shared_task(
    name="callsync.tasks.sync_vapi_calls",
    bind=True,
    autoretry_for=(StorageWriteError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 5},
)
def sync_vapi_calls(self) -> int:
    if not settings.sync_assistant_ids:
        return 0
    start, end = sync_window(settings.sync_lookback_minutes)
    db: Session = SessionLocal()
    client = VapiClient.from_settings(settings)
    total = 0
    try:
        for assistant_id in settings.sync_assistant_ids:
            result = sync_assistant_calls(
                db, client, assistant_id, start=start, end=end, page_limit=settings.vapi_page_limit
            )
            total += result.upserted
        return total
    finally:
        client.close()
        db.close()
