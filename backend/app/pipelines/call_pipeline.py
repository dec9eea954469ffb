# backend/app/pipelines/call_pipeline.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.pipelines.inbound_event import (
    InboundCallEvent,
    decode_body,
    merge_conversation_detail,
    normalize_payload,
)
from app.scoring.calculator import ScoreResult, score_call
from app.services.call_matcher import SessionMatch, find_existing_session
from app.services.elevenlabs_service import ElevenLabsService
from app.services.notification_service import CallAlert
from app.services.owner_resolver import OwnerResolution, resolve_owner
from app.services.reconciliation import reconcile_call
from app.utils.errors import EnrichmentFailure, MalformedPayload
from app.utils.helpers import utc_now
from app.utils.logger import logger


@dataclass
class CallCompleteOutcome:
    session_id: Optional[int]
    score_record_id: Optional[int]
    error: Optional[str]
    score: Optional[ScoreResult] = None
    alert: Optional[CallAlert] = None

    @property
    def ok(self) -> bool:
        return not self.error


# -----------------------------
# Helpers
# -----------------------------

def compute_idempotency_key(
    external_call_id: Optional[str],
    delivery_marker: Optional[str],
    raw_body: bytes,
) -> str:
    """
    sha256(external id | delivery marker). Without a marker the body hash
    stands in, so a byte-identical redelivery yields the same key.
    """
    marker = delivery_marker or hashlib.sha256(raw_body or b"").hexdigest()
    return hashlib.sha256(f"{external_call_id or ''}|{marker}".encode("utf-8")).hexdigest()


async def enrich_event(event: InboundCallEvent, enrichment: Optional[ElevenLabsService]) -> InboundCallEvent:
    if event.summary and event.transcript:
        return event
    if enrichment is None or not enrichment.can_enrich() or not event.external_call_id:
        return event

    try:
        detail = await enrichment.get_conversation(event.external_call_id)
    except EnrichmentFailure as e:
        logger.warning(f"[CEI] enrichment skipped for {event.external_call_id}: {e}")
        return event

    return merge_conversation_detail(event, detail)


def _resolve_owner_safely(db: Session, event: InboundCallEvent, now: datetime) -> OwnerResolution:
    try:
        return resolve_owner(
            db,
            owner_id=event.owner_id,
            lead_id=event.lead_id,
            load_id=event.load_id,
            caller_phone=event.caller_phone,
            now=now,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CEI] owner resolution failed, continuing with payload values: {e}")
        return OwnerResolution(
            owner_id=event.owner_id,
            load_id=event.load_id,
            source="payload" if event.owner_id else "none",
        )


def _match_safely(db: Session, event: InboundCallEvent, owner_id: Optional[str], now: datetime) -> Optional[SessionMatch]:
    try:
        return find_existing_session(db, event.external_call_id, event.caller_phone, owner_id, now=now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[CEI] session matching failed, falling back to a new session: {e}")
        return None


# -----------------------------
# Pipeline
# -----------------------------

async def process_call_complete(
    db: Session,
    raw_body: bytes,
    *,
    delivery_id: Optional[str] = None,
    enrichment: Optional[ElevenLabsService] = None,
    now: Optional[datetime] = None,
) -> CallCompleteOutcome:
    """
    Authenticated post-call webhook body -> reconciled session + CEI score record.

    Signature verification happens before this is called. Nothing here raises
    for bad input or a failed write: failures are logged and surfaced in
    `error` on the outcome.
    """
    now = now or utc_now()

    try:
        body = decode_body(raw_body)
    except MalformedPayload as e:
        logger.warning(f"[CEI] malformed webhook payload, continuing with empty payload: {e}")
        body = {}

    event = normalize_payload(body)
    logger.info(
        f"[CEI] call complete: external_id={event.external_call_id} phone={event.caller_phone} "
        f"duration={event.duration_seconds} transcript={'yes' if event.transcript else 'no'}"
    )

    event = await enrich_event(event, enrichment)

    owner = _resolve_owner_safely(db, event, now)

    score = score_call(
        event.transcript,
        event.duration_seconds,
        event.lead_created,
        event.load_confirmed,
        time_to_handoff_seconds=event.time_to_handoff_seconds,
        turns=event.turns,
    )
    logger.info(
        f"[CEI] score={score.final_score} band={score.band} handoff={score.handoff_requested} "
        f"events={len(score.events)} outcome={event.cei_outcome}"
    )

    # a last-resort owner must not exclude the real owner's placeholder
    match = _match_safely(db, event, owner.owner_id if owner.is_known else None, now)

    result = reconcile_call(
        db,
        match,
        event,
        score,
        owner_id=owner.owner_id,
        load_id=owner.load_id,
        agent_name=settings.ELEVENLABS_AGENT_NAME,
        idempotency_key=compute_idempotency_key(
            event.external_call_id, delivery_id or event.event_timestamp, raw_body
        ),
        now=now,
    )

    alert = CallAlert(
        cei_score=score.final_score,
        cei_band=score.band,
        outcome=event.cei_outcome,
        caller_phone=event.caller_phone,
        duration_seconds=event.duration_seconds,
        handoff_requested=score.handoff_requested,
        lead_created=event.lead_created,
        session_id=result.session_id,
    )

    return CallCompleteOutcome(
        session_id=result.session_id,
        score_record_id=result.score_record_id,
        error="; ".join(result.errors) or None,
        score=score,
        alert=alert,
    )
