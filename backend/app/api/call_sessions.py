# backend/app/api/call_sessions.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.database import get_db, safe_commit
from app.models.call_session import CallSession
from app.utils.helpers import to_naive_utc, utc_now
from app.utils.logger import logger

router = APIRouter(prefix="/api/call-sessions", tags=["call-sessions"])


class CallSessionStartRequest(BaseModel):
    owner_id: Optional[str] = None
    lead_id: Optional[int] = None
    load_id: Optional[str] = None
    carrier_phone: Optional[str] = None
    external_call_id: Optional[str] = None
    started_at: Optional[datetime] = None
    notes: Optional[str] = None


class CallSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: Optional[str] = None
    lead_id: Optional[int] = None
    load_id: Optional[str] = None
    carrier_phone: Optional[str] = None
    external_call_id: Optional[str] = None
    call_started_at: Optional[datetime] = None
    call_ended_at: Optional[datetime] = None
    duration_seconds: int = 0
    outcome: Optional[str] = None
    summary: Optional[str] = None


@router.post("/start", response_model=CallSessionResponse)
def start_call_session(payload: CallSessionStartRequest, db: Session = Depends(get_db)):
    """Placeholder session opened when a call connects (duration 0 until the post-call webhook)."""
    session = CallSession(
        owner_id=payload.owner_id,
        lead_id=payload.lead_id,
        load_id=payload.load_id,
        carrier_phone=payload.carrier_phone,
        external_call_id=payload.external_call_id,
        call_started_at=to_naive_utc(payload.started_at) if payload.started_at else utc_now(),
        duration_seconds=0,
        notes=payload.notes,
        call_direction="inbound",
    )
    db.add(session)
    success, error = safe_commit(db, "create placeholder call session")
    if not success:
        raise HTTPException(status_code=500, detail=error)

    db.refresh(session)
    logger.info(f"Placeholder call session {session.id} opened (phone={session.carrier_phone})")
    return session


@router.get("/{session_id}", response_model=CallSessionResponse)
def get_call_session(session_id: int, db: Session = Depends(get_db)):
    session = db.query(CallSession).filter(CallSession.id == session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Call session not found")
    return session
