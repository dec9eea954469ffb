# backend/app/services/call_matcher.py
"""
Finds the call-start placeholder that a completion event belongs to.

Phase 1: external conversation id, via the structured column or (legacy rows)
         a substring of summary/notes, among sessions started in the last hour.
Phase 2: caller phone (last 10 digits) + same owner + still a placeholder
         (duration 0), among sessions started in the last 30 minutes.

First match wins. No match means the caller creates a fresh session; a
completion event is never dropped for lack of a placeholder.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.config import settings
from app.models.call_session import CallSession
from app.utils.helpers import utc_now
from app.utils.logger import logger
from app.utils.normalize import phone_key, phone_variants

STRATEGY_EXTERNAL_ID = "external_id"
STRATEGY_PHONE_PLACEHOLDER = "phone_placeholder"


@dataclass
class SessionMatch:
    session: CallSession
    strategy: str

    @property
    def session_id(self) -> int:
        return self.session.id


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def match_by_external_id(
    db: Session,
    external_call_id: str,
    now: datetime,
) -> Optional[CallSession]:
    cutoff = now - timedelta(minutes=settings.CALL_MATCH_EXTERNAL_ID_WINDOW_MINUTES)
    pattern = f"%{_escape_like(external_call_id)}%"
    return (
        db.query(CallSession)
        .filter(
            CallSession.call_started_at >= cutoff,
            or_(
                CallSession.external_call_id == external_call_id,
                CallSession.summary.like(pattern, escape="\\"),
                CallSession.notes.like(pattern, escape="\\"),
            ),
        )
        .order_by(CallSession.call_started_at.desc(), CallSession.id.desc())
        .first()
    )


def match_by_phone_placeholder(
    db: Session,
    caller_phone: str,
    owner_id: Optional[str],
    now: datetime,
) -> Optional[CallSession]:
    key = phone_key(caller_phone)
    if not key:
        return None

    cutoff = now - timedelta(minutes=settings.CALL_MATCH_PLACEHOLDER_WINDOW_MINUTES)
    q = db.query(CallSession).filter(
        or_(
            CallSession.carrier_phone_key == key,
            # rows written without the key (e.g. raw inserts by the call-start side)
            and_(CallSession.carrier_phone_key.is_(None), CallSession.carrier_phone.in_(phone_variants(caller_phone))),
        ),
        CallSession.duration_seconds == 0,
        CallSession.call_started_at >= cutoff,
    )
    if owner_id:
        q = q.filter(CallSession.owner_id == owner_id)

    return q.order_by(CallSession.call_started_at.desc(), CallSession.id.desc()).first()


def find_existing_session(
    db: Session,
    external_call_id: Optional[str],
    caller_phone: Optional[str],
    owner_id: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Optional[SessionMatch]:
    now = now or utc_now()

    if external_call_id:
        session = match_by_external_id(db, external_call_id, now)
        if session is not None:
            logger.info(f"[CallMatcher] matched session {session.id} by external id {external_call_id}")
            return SessionMatch(session=session, strategy=STRATEGY_EXTERNAL_ID)

    if caller_phone:
        session = match_by_phone_placeholder(db, caller_phone, owner_id, now)
        if session is not None:
            logger.info(f"[CallMatcher] matched placeholder session {session.id} by phone {caller_phone}")
            return SessionMatch(session=session, strategy=STRATEGY_PHONE_PLACEHOLDER)

    logger.info(
        f"[CallMatcher] no existing session (external_id={external_call_id}, phone={caller_phone}, owner={owner_id})"
    )
    return None
