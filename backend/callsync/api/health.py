from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import redis

from callsync.core.config import Settings, get_settings
from callsync.core.database import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    db.execute(text("SELECT 1"))
    redis_client = redis.Redis.from_url(settings.redis_url)
    try:
        redis_client.ping()
    finally:
        redis_client.close()
    return {"status": "ready"}
