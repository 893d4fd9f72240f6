from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text

from callsync.core.database import Base


class CallLog(Base):
    __tablename__ = "call_logs"
    __table_args__ = (Index("ix_call_logs_assistant_start", "assistant_id", "start_time"),)

    id = Column(String(128), primary_key=True)
    assistant_id = Column(String(128), nullable=False, index=True)
    type = Column(Text)
    status = Column(Text)
    ended_reason = Column(Text)
    from_number = Column(Text)
    to_number = Column(Text)
    start_time = Column(DateTime(timezone=True), index=True)
    end_time = Column(DateTime(timezone=True))
    call_date = Column(DateTime(timezone=True))
    duration_seconds = Column(Integer)
    recording_url = Column(Text)
    transcript = Column(Text)
    raw = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
