# backend/app/pipelines/inbound_event.py
"""
Normalization of the provider's post-call payload.

The body is loosely typed and arrives in several shapes (flat, under
`parameters`, or inside the provider's `data` envelope). Everything is read
once here into an InboundCallEvent whose fields are all optional, so no
downstream code has to guess at the payload shape.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.scoring.transcript import TranscriptTurn, flatten_turns, parse_turns
from app.utils.errors import MalformedPayload
from app.utils.helpers import parse_timestamp
from app.utils.normalize import normalize_outcome

PHONE_KEYS = (
    "callback_phone", "contact_number", "phone", "caller_number",
    "phone_number", "from_number", "caller_id",
)
CALL_PHONE_KEYS = ("from_number", "caller_id", "phone_number", "external_number")
DURATION_KEYS = ("call_duration_secs", "call_duration", "duration")
OWNER_KEYS = ("owner_id", "user_id", "account_id")


@dataclass
class InboundCallEvent:
    external_call_id: Optional[str] = None
    caller_phone: Optional[str] = None
    owner_id: Optional[str] = None
    lead_id: Optional[int] = None
    load_id: Optional[str] = None

    transcript: Optional[str] = None
    turns: List[TranscriptTurn] = field(default_factory=list)
    summary: Optional[str] = None
    notes: Optional[str] = None

    duration_seconds: Optional[int] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    raw_outcome: str = "completed"
    lead_status: Optional[str] = None
    lead_error: Optional[str] = None
    confirmed_load_number: Optional[str] = None
    company_name: Optional[str] = None
    mc_number: Optional[str] = None
    recording_url: Optional[str] = None
    time_to_handoff_seconds: Optional[float] = None
    event_timestamp: Optional[str] = None

    @property
    def lead_created(self) -> bool:
        return self.lead_id is not None

    @property
    def cei_outcome(self) -> str:
        return classify_outcome(self.raw_outcome, self.lead_created)

    @property
    def load_confirmed(self) -> bool:
        return self.cei_outcome == "confirmed" or bool(self.confirmed_load_number)

    @property
    def lead_failed(self) -> bool:
        return self.lead_status == "failed" or bool(self.lead_error)


def classify_outcome(raw_outcome: Optional[str], lead_created: bool) -> str:
    """Provider/agent outcome string -> CEI outcome."""
    o = normalize_outcome(raw_outcome)
    if o in ("confirmed", "booked"):
        return "confirmed"
    if o in ("declined", "rejected"):
        return "declined"
    if o in ("callback", "callback_requested"):
        return "callback_requested"
    if o in ("error", "failed"):
        return "error"
    if o in ("completed", "success"):
        return "confirmed" if lead_created else "incomplete"
    return "incomplete"


def decode_body(raw_body: bytes) -> Dict[str, Any]:
    """JSON object from the raw body; MalformedPayload for anything else."""
    if not raw_body:
        raise MalformedPayload("empty body")
    try:
        data = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedPayload(f"invalid JSON: {str(e)[:120]}") from e
    if not isinstance(data, dict):
        raise MalformedPayload(f"expected a JSON object, got {type(data).__name__}")
    return data


# -----------------------------
# Coercion helpers
# -----------------------------

def _obj(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    s = str(value).strip()
    return s or None


def _int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _seconds(value: Any) -> Optional[float]:
    # unrounded, so threshold checks see the real value
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def _first(sources: List[Dict[str, Any]], keys: tuple, coerce=_str):
    for src in sources:
        for key in keys:
            value = coerce(src.get(key))
            if value is not None:
                return value
    return None


def normalize_payload(body: Any) -> InboundCallEvent:
    root = _obj(body)
    # provider post-call envelope: {"type": ..., "data": {...}}
    data = _obj(root.get("data")) if root.get("type") and isinstance(root.get("data"), dict) else {}
    params = _obj(root.get("parameters")) or data or root

    analysis = _obj(root.get("analysis")) or _obj(params.get("analysis"))
    call = _obj(root.get("call")) or _obj(params.get("call"))
    metadata = _obj(params.get("metadata")) or _obj(root.get("metadata"))
    phone_call = _obj(metadata.get("phone_call"))
    dynamic = _obj(_obj(params.get("conversation_initiation_client_data")).get("dynamic_variables"))

    fields = [params, dynamic] if dynamic else [params]

    event = InboundCallEvent()
    event.external_call_id = _first(fields + [root], ("conversation_id", "call_id"))
    event.caller_phone = (
        _first(fields, PHONE_KEYS)
        or _first([call, phone_call, metadata], CALL_PHONE_KEYS)
    )
    event.owner_id = _first(fields, OWNER_KEYS)
    event.lead_id = _first(fields, ("lead_id",), _int)
    event.load_id = _first(fields, ("load_id",))

    # -------- transcript --------
    raw_transcript = params.get("transcript")
    if raw_transcript is None:
        raw_transcript = analysis.get("transcript")
    if raw_transcript is None:
        raw_transcript = root.get("transcript")

    if isinstance(raw_transcript, list):
        event.turns = parse_turns(raw_transcript)
        event.transcript = flatten_turns(event.turns) or None
    else:
        event.transcript = _str(raw_transcript)

    event.summary = (
        _first(fields, ("summary",))
        or _str(analysis.get("transcript_summary"))
        or _str(analysis.get("summary"))
    )
    event.notes = _first(fields, ("notes",))

    # -------- timing --------
    event.started_at = parse_timestamp(
        params.get("started_at") or call.get("started_at") or call.get("start_time")
        or metadata.get("start_time_unix_secs")
    )
    event.ended_at = parse_timestamp(
        params.get("ended_at") or call.get("ended_at") or call.get("end_time")
        or metadata.get("end_time_unix_secs")
    )

    duration = _first([call, analysis, metadata, root], DURATION_KEYS, _int)
    if duration is None:
        duration = _first(fields, ("duration_seconds", "duration", "call_duration"), _int)
    if duration is None and event.started_at and event.ended_at:
        duration = int(round((event.ended_at - event.started_at).total_seconds()))
    if duration is not None and duration < 0:
        duration = None
    event.duration_seconds = duration

    # -------- outcome / lead --------
    event.raw_outcome = _first(fields, ("call_outcome", "outcome", "status")) or "completed"
    event.lead_status = _first(fields, ("lead_status",))
    event.lead_error = _first(fields, ("lead_error",))
    event.confirmed_load_number = _first(fields, ("confirmed_load_number",))
    event.company_name = _first(fields, ("company_name",))
    event.mc_number = _first(fields, ("mc_number",))

    event.recording_url = _first(fields, ("recording_url",)) or _str(call.get("recording_url"))
    event.time_to_handoff_seconds = _first(fields, ("time_to_handoff_seconds",), _seconds)
    event.event_timestamp = _str(root.get("event_timestamp"))

    return event


def merge_conversation_detail(event: InboundCallEvent, detail: Dict[str, Any]) -> InboundCallEvent:
    """Fill fields still missing on the event from a provider conversation-detail response."""
    analysis = _obj(detail.get("analysis"))
    metadata = _obj(detail.get("metadata"))
    call = _obj(detail.get("call"))

    if not event.summary:
        event.summary = _str(analysis.get("transcript_summary")) or _str(analysis.get("summary"))

    if not event.transcript and isinstance(detail.get("transcript"), list):
        event.turns = parse_turns(detail["transcript"])
        event.transcript = flatten_turns(event.turns) or None

    if event.duration_seconds is None:
        event.duration_seconds = _int(metadata.get("call_duration_secs")) or _int(detail.get("call_duration_secs"))

    if not event.recording_url:
        event.recording_url = _str(call.get("recording_url"))

    return event
