# backend/app/services/reconciliation.py
"""
Durable writes for one completed call.

Two independent units of work, committed in this order:
  1. session   - update the matched placeholder in place, or insert a terminal row
                 (and link the lead back to it)
  2. score     - insert one CallScoreRecord plus its scoring events

A failure in one unit is rolled back, logged and reported; it never undoes or
blocks the other. Session state is written first because it is the more
valuable of the two.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.call_score import CallScoreRecord, ScoringEventRecord
from app.models.call_session import CallSession
from app.models.lead import CarrierLead
from app.pipelines.inbound_event import InboundCallEvent
from app.scoring.calculator import ScoreResult
from app.scoring.phrases import PHRASE_TABLE_VERSION
from app.services.call_matcher import SessionMatch
from app.utils.errors import PersistenceFailure
from app.utils.helpers import utc_now
from app.utils.logger import logger

CALL_PROVIDER = "elevenlabs"


@dataclass
class ReconcileResult:
    session_id: Optional[int] = None
    score_record_id: Optional[int] = None
    session_created: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def build_session_notes(event: InboundCallEvent) -> str:
    notes = event.notes or ""
    if event.lead_failed:
        notes += f"\n[Lead creation failed: {event.lead_error or 'unknown error'}]"
        if event.company_name:
            notes += f"\nCompany: {event.company_name}"
        if event.mc_number:
            notes += f"\nMC: {event.mc_number}"
        if event.caller_phone:
            notes += f"\nCallback: {event.caller_phone}"
    return notes.strip()


def _final_duration(event: InboundCallEvent, started_at: Optional[datetime], ended_at: datetime) -> int:
    if event.duration_seconds is not None:
        return event.duration_seconds
    if started_at and ended_at >= started_at:
        return int((ended_at - started_at).total_seconds())
    return 0


def _apply_completion(
    session: CallSession,
    event: InboundCallEvent,
    owner_id: Optional[str],
    load_id: Optional[str],
    now: datetime,
) -> None:
    notes = build_session_notes(event)

    session.call_ended_at = event.ended_at or now
    session.duration_seconds = _final_duration(event, session.call_started_at, session.call_ended_at)
    session.outcome = event.raw_outcome
    session.summary = event.summary or notes or session.summary
    if notes:
        session.notes = notes
    session.transcript = event.transcript
    session.total_characters = len(event.transcript) if event.transcript else None

    if event.external_call_id:
        session.external_call_id = event.external_call_id
    if event.recording_url:
        session.recording_url = event.recording_url
    if event.lead_id is not None:
        session.lead_id = event.lead_id

    # fill, never overwrite, what call-start already recorded
    session.owner_id = session.owner_id or owner_id
    session.load_id = session.load_id or load_id
    session.carrier_phone = session.carrier_phone or event.caller_phone


def _new_session(
    event: InboundCallEvent,
    owner_id: Optional[str],
    load_id: Optional[str],
    now: datetime,
) -> CallSession:
    session = CallSession(
        owner_id=owner_id,
        load_id=load_id,
        carrier_phone=event.caller_phone,
        call_direction="inbound",
        call_started_at=event.started_at or now,
        is_demo=False,
    )
    _apply_completion(session, event, owner_id, load_id, now)
    return session


def reconcile_session(
    db: Session,
    match: Optional[SessionMatch],
    event: InboundCallEvent,
    *,
    owner_id: Optional[str],
    load_id: Optional[str],
    now: Optional[datetime] = None,
) -> tuple[int, bool]:
    """
    Returns (session_id, created).

    Raises:
        PersistenceFailure: the session unit was rolled back
    """
    now = now or utc_now()
    try:
        if match is not None:
            session = match.session
            _apply_completion(session, event, owner_id, load_id, now)
            created = False
        else:
            logger.warning(
                f"[CEI] no placeholder session for external_id={event.external_call_id}; creating terminal session"
            )
            session = _new_session(event, owner_id, load_id, now)
            db.add(session)
            created = True

        db.flush()

        if event.lead_id is not None:
            lead = db.query(CarrierLead).filter(CarrierLead.id == event.lead_id).first()
            if lead:
                lead.call_session_id = session.id

        db.commit()
        return session.id, created

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CEI] session reconciliation failed: {e}")
        raise PersistenceFailure("session", str(e)[:200]) from e


def insert_score_record(
    db: Session,
    event: InboundCallEvent,
    score: ScoreResult,
    *,
    owner_id: Optional[str],
    load_id: Optional[str],
    agent_name: Optional[str],
    idempotency_key: Optional[str],
) -> int:
    """
    Always inserts a new record; duplicate deliveries are only logged.

    Raises:
        PersistenceFailure: the score unit was rolled back
    """
    try:
        if event.external_call_id:
            prior = (
                db.query(CallScoreRecord.id)
                .filter(CallScoreRecord.external_call_id == event.external_call_id)
                .first()
            )
            if prior is not None:
                logger.warning(
                    f"[CEI] score record {prior.id} already exists for external_id={event.external_call_id}; "
                    f"suspected duplicate delivery (idempotency_key={idempotency_key})"
                )

        record = CallScoreRecord(
            call_provider=CALL_PROVIDER,
            external_call_id=event.external_call_id,
            idempotency_key=idempotency_key,
            agent_name=agent_name,
            owner_id=owner_id,
            caller_phone=event.caller_phone,
            mc_number=event.mc_number,
            company_name=event.company_name,
            lead_id=event.lead_id,
            primary_load_id=load_id,
            load_ids_discussed=[load_id] if load_id else [],
            transcript_text=event.transcript,
            call_outcome=event.cei_outcome,
            handoff_requested=score.handoff_requested,
            handoff_reason=score.handoff_reason,
            time_to_handoff_seconds=(
                round(score.time_to_handoff_seconds) if score.time_to_handoff_seconds is not None else None
            ),
            lead_created=event.lead_created,
            lead_create_error=event.lead_error,
            cei_score=score.final_score,
            cei_band=score.band,
            cei_reasons=list(score.reasons),
            phrase_table_version=PHRASE_TABLE_VERSION,
            duration_seconds=event.duration_seconds,
            recording_url=event.recording_url,
        )
        for ev in score.events:
            record.events.append(
                ScoringEventRecord(
                    event_type=ev.event_type,
                    severity=ev.severity.value,
                    source=ev.source.value,
                    phrase=ev.matched_phrase,
                    cei_delta=ev.score_delta,
                )
            )

        db.add(record)
        db.commit()
        logger.info(f"[CEI] score record {record.id} created with {len(score.events)} events")
        return record.id

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CEI] score record insert failed: {e}")
        raise PersistenceFailure("score", str(e)[:200]) from e


def reconcile_call(
    db: Session,
    match: Optional[SessionMatch],
    event: InboundCallEvent,
    score: ScoreResult,
    *,
    owner_id: Optional[str] = None,
    load_id: Optional[str] = None,
    agent_name: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    result = ReconcileResult()

    try:
        result.session_id, result.session_created = reconcile_session(
            db, match, event, owner_id=owner_id, load_id=load_id, now=now
        )
    except PersistenceFailure as e:
        result.errors.append(str(e))

    try:
        result.score_record_id = insert_score_record(
            db,
            event,
            score,
            owner_id=owner_id,
            load_id=load_id,
            agent_name=agent_name,
            idempotency_key=idempotency_key,
        )
    except PersistenceFailure as e:
        result.errors.append(str(e))

    return result
