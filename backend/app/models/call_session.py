# backend/app/models/call_session.py

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, false
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from app.database import Base
from app.utils.normalize import phone_key


class CallSession(Base):
    """
    Lifecycle row for one real-world call.

    Created by the call-start side as a placeholder (duration_seconds == 0),
    then updated in place exactly once when the post-call webhook lands.
    """

    __tablename__ = "call_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    owner_id = Column(String(64), index=True)
    lead_id = Column(Integer, index=True)
    load_id = Column(String(64))

    carrier_phone = Column(String(50), index=True)
    # last 10 digits of carrier_phone, kept in step by _sync_phone_key
    carrier_phone_key = Column(String(10), index=True)
    call_direction = Column(String(20), nullable=False, server_default="inbound")

    # Provider conversation id; the structured correlation key for matching
    external_call_id = Column(String(128), index=True)

    call_started_at = Column(DateTime, index=True)
    call_ended_at = Column(DateTime)
    duration_seconds = Column(Integer, nullable=False, default=0, server_default="0")

    outcome = Column(String(50))
    summary = Column(Text)
    notes = Column(Text)
    transcript = Column(Text)
    total_characters = Column(Integer)
    recording_url = Column(String(500))

    is_demo = Column(Boolean, nullable=False, default=False, server_default=false())

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    @validates("carrier_phone")
    def _sync_phone_key(self, key, value):
        self.carrier_phone_key = phone_key(value)
        return value

    @property
    def is_placeholder(self) -> bool:
        return not self.duration_seconds
