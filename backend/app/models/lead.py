# backend/app/models/lead.py

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import validates
from sqlalchemy.sql import func

from app.database import Base
from app.utils import normalize


class CarrierLead(Base):
    """
    Lead row owned by the lead workflow. The post-call pipeline only reads
    owner/load from it and links it back to the reconciled call session.
    """

    __tablename__ = "carrier_leads"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    owner_id = Column(String(64), index=True)
    load_id = Column(String(64))

    company_name = Column(String(255))
    mc_number = Column(String(50))
    phone = Column(String(50), index=True)
    phone_key = Column(String(10), index=True)
    status = Column(String(50), default="interested")
    notes = Column(Text)

    call_session_id = Column(Integer, index=True)

    created_at = Column(DateTime, server_default=func.now())

    @validates("phone")
    def _sync_phone_key(self, key, value):
        self.phone_key = normalize.phone_key(value)
        return value
