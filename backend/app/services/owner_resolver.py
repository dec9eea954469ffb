# backend/app/services/owner_resolver.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.config import settings
from app.models.lead import CarrierLead
from app.utils.helpers import utc_now
from app.utils.logger import logger
from app.utils.normalize import phone_key, phone_variants


@dataclass
class OwnerResolution:
    owner_id: Optional[str]
    load_id: Optional[str]
    source: str  # payload / lead / recent_lead / default / none

    @property
    def is_known(self) -> bool:
        """False when the owner is only the configured last resort (or absent)."""
        return self.source in ("payload", "lead", "recent_lead")


def resolve_owner(
    db: Session,
    *,
    owner_id: Optional[str],
    lead_id: Optional[int],
    load_id: Optional[str],
    caller_phone: Optional[str],
    now: Optional[datetime] = None,
) -> OwnerResolution:
    """
    Owner (and load) for a completed call:
    payload owner -> referenced lead -> recent lead with the same phone -> DEFAULT_OWNER_ID.
    Lookup failures degrade to the next step.
    """
    source = "payload" if owner_id else "none"

    if lead_id is not None:
        lead = db.query(CarrierLead).filter(CarrierLead.id == lead_id).first()
        if lead:
            if not owner_id and lead.owner_id:
                owner_id = lead.owner_id
                source = "lead"
            load_id = load_id or lead.load_id
        else:
            logger.warning(f"[CEI] lead_id={lead_id} not found; continuing without it")

    key = phone_key(caller_phone)
    if not owner_id and key:
        now = now or utc_now()
        cutoff = now - timedelta(minutes=settings.RECENT_LEAD_WINDOW_MINUTES)
        recent = (
            db.query(CarrierLead)
            .filter(
                or_(
                    CarrierLead.phone_key == key,
                    and_(CarrierLead.phone_key.is_(None), CarrierLead.phone.in_(phone_variants(caller_phone))),
                ),
                CarrierLead.created_at >= cutoff,
            )
            .order_by(CarrierLead.created_at.desc(), CarrierLead.id.desc())
            .first()
        )
        if recent and recent.owner_id:
            owner_id = recent.owner_id
            load_id = load_id or recent.load_id
            source = "recent_lead"

    if not owner_id and settings.DEFAULT_OWNER_ID:
        owner_id = settings.DEFAULT_OWNER_ID
        source = "default"

    return OwnerResolution(owner_id=owner_id, load_id=load_id, source=source)
