# backend/app/models/call_score.py

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


class CallScoreRecord(Base):
    """One CEI score per processed completion event. Written only by the post-call pipeline."""

    __tablename__ = "cei_calls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    call_provider = Column(String(50), nullable=False, server_default="elevenlabs")
    external_call_id = Column(String(128), index=True)
    idempotency_key = Column(String(64), index=True)
    agent_name = Column(String(100))

    owner_id = Column(String(64), index=True)
    caller_phone = Column(String(50))
    mc_number = Column(String(50))
    company_name = Column(String(255))

    lead_id = Column(Integer)
    primary_load_id = Column(String(64))
    load_ids_discussed = Column(JSON)

    transcript_text = Column(Text)
    call_outcome = Column(String(50), index=True)

    handoff_requested = Column(Boolean, nullable=False, default=False)
    handoff_reason = Column(String(255))
    time_to_handoff_seconds = Column(Integer)

    lead_created = Column(Boolean, nullable=False, default=False)
    lead_create_error = Column(Text)

    # 0-100, clamped
    cei_score = Column(Integer, nullable=False)
    cei_band = Column(String(10), nullable=False, index=True)
    cei_reasons = Column(JSON)
    phrase_table_version = Column(String(20))

    duration_seconds = Column(Integer)
    recording_url = Column(String(500))

    created_at = Column(DateTime, server_default=func.now())

    events = relationship(
        "ScoringEventRecord",
        back_populates="call",
        cascade="all, delete-orphan",
        order_by="ScoringEventRecord.id",
    )


class ScoringEventRecord(Base):
    """Append-only scoring signal; immutable once written."""

    __tablename__ = "cei_call_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    call_id = Column(Integer, ForeignKey("cei_calls.id", ondelete="CASCADE"), nullable=False, index=True)

    event_type = Column(String(100), nullable=False)
    severity = Column(String(10), nullable=False)   # info / warn / error
    source = Column(String(20), nullable=False)     # system / classifier
    phrase = Column(String(255))
    cei_delta = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())

    call = relationship("CallScoreRecord", back_populates="events")
