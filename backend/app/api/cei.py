# backend/app/api/cei.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.call_score import CallScoreRecord

router = APIRouter(prefix="/api/cei", tags=["cei"])


class ScoringEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: str
    severity: str
    source: str
    phrase: Optional[str] = None
    cei_delta: int


class CallScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_call_id: Optional[str] = None
    caller_phone: Optional[str] = None
    owner_id: Optional[str] = None
    lead_id: Optional[int] = None
    primary_load_id: Optional[str] = None
    call_outcome: Optional[str] = None
    handoff_requested: bool = False
    handoff_reason: Optional[str] = None
    time_to_handoff_seconds: Optional[int] = None
    lead_created: bool = False
    lead_create_error: Optional[str] = None
    cei_score: int
    cei_band: str
    cei_reasons: Optional[Any] = None
    phrase_table_version: Optional[str] = None
    duration_seconds: Optional[int] = None
    recording_url: Optional[str] = None
    transcript_text: Optional[str] = None
    created_at: Optional[datetime] = None

    events: List[ScoringEventResponse] = []


@router.get("/calls/{score_record_id}", response_model=CallScoreResponse)
def get_call_score(score_record_id: int, db: Session = Depends(get_db)):
    record = db.query(CallScoreRecord).filter(CallScoreRecord.id == score_record_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="CEI call not found")
    return record
