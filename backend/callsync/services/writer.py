import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Sequence

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callsync.core.errors import ConfigurationError, StorageWriteError, ValidationError
from callsync.models import CallLog
from callsync.schemas import CanonicalCallRecord

logger = logging.getLogger(__name__)

MERGED_FIELDS = (
    "assistant_id",
    "type",
    "status",
    "ended_reason",
    "from_number",
    "to_number",
    "start_time",
    "end_time",
    "call_date",
    "duration_seconds",
    "recording_url",
    "transcript",
)

INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallLogWriter:
    """Merge canonical records into ``call_logs`` in one transaction.

    Each record is written with ``INSERT ... ON CONFLICT (id) DO UPDATE`` so
    concurrent writers of the same call id merge instead of colliding.
    Non-null fields overwrite what is stored, null fields leave it alone,
    ``raw`` always overwrites. ``created_at`` is set on insert only and
    ``updated_at`` on every write.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    def upsert(self, records: Sequence[CanonicalCallRecord]) -> int:
        if not records:
            return 0
        missing_id = [index for index, record in enumerate(records) if not record.id]
        if missing_id:
            raise ValidationError("Call records must carry an id", details={"indexes": missing_id})

        insert = self._insert_for_bind()
        now = self.clock()
        try:
            for record in records:
                self.db.execute(self._statement(insert, record, now))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to upsert %s call record(s)", len(records))
            raise StorageWriteError() from exc
        return len(records)

    def _insert_for_bind(self) -> Callable[..., Any]:
        dialect = self.db.get_bind().dialect.name
        insert = INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise ConfigurationError(
                "Unsupported database for call log upserts",
                details={"dialect": dialect},
            )
        return insert

    @staticmethod
    def _statement(insert: Callable[..., Any], record: CanonicalCallRecord, now: datetime):
        table = CallLog.__table__
        values: Dict[str, Any] = {name: getattr(record, name) for name in MERGED_FIELDS}
        stmt = insert(table).values(
            id=record.id,
            raw=record.raw,
            created_at=now,
            updated_at=now,
            **values,
        )
        merged = {
            name: func.coalesce(stmt.excluded[name], table.c[name]) for name in MERGED_FIELDS
        }
        merged["raw"] = stmt.excluded.raw
        merged["updated_at"] = stmt.excluded.updated_at
        return stmt.on_conflict_do_update(index_elements=[table.c.id], set_=merged)
