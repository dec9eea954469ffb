# backend/app/scoring/calculator.py
"""
CEI (composite engagement index) calculator.

Adjustments are applied in a fixed order so the emitted event list is
stable for identical input. The final score is base + sum(event deltas),
clamped to [0, 100].
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.scoring.classifier import ScoringEvent, TranscriptClassifier, default_classifier
from app.scoring.phrases import EventSource, Severity
from app.scoring.transcript import TranscriptInput, TranscriptTurn, transcript_text

CEI_BASE_SCORE = 100
CEI_MIN_SCORE = 0
CEI_MAX_SCORE = 100

QUICK_HANGUP_SECONDS = 30
SHORT_CALL_SECONDS = 90
EARLY_HANDOFF_SECONDS = 60

QUICK_HANGUP_DELTA = -40
SHORT_CALL_DELTA = -20
RESOLVED_WITHOUT_HANDOFF_BONUS = 10
EARLY_HANDOFF_PENALTY = -25
LEAD_CREATED_BONUS = 10
LOAD_CONFIRMED_BONUS = 20

# (lower bound, label), highest first
CEI_BANDS = (
    (90, "90-100"),
    (75, "75-89"),
    (50, "50-74"),
    (25, "25-49"),
)
CEI_LOWEST_BAND = "0-24"


@dataclass
class ScoreResult:
    final_score: int
    band: str
    events: List[ScoringEvent] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    handoff_requested: bool = False
    handoff_reason: Optional[str] = None
    time_to_handoff_seconds: Optional[float] = None
    raw_score: int = CEI_BASE_SCORE


def clamp_score(value: int) -> int:
    return max(CEI_MIN_SCORE, min(CEI_MAX_SCORE, value))


def cei_band(score: int) -> str:
    for lower, label in CEI_BANDS:
        if score >= lower:
            return label
    return CEI_LOWEST_BAND


def duration_adjustment(duration_seconds: Optional[float]) -> int:
    if duration_seconds is None:
        return 0
    if duration_seconds < QUICK_HANGUP_SECONDS:
        return QUICK_HANGUP_DELTA
    if duration_seconds < SHORT_CALL_SECONDS:
        return SHORT_CALL_DELTA
    return 0


def handoff_time_from_turns(turns: Sequence[TranscriptTurn], phrase: Optional[str]) -> Optional[float]:
    """Seconds into the call of the first turn that contains the escalation phrase."""
    if not phrase:
        return None
    for turn in turns or ():
        if turn.time_in_call_secs is not None and phrase in (turn.text or "").lower():
            return float(turn.time_in_call_secs)
    return None


def _system_event(event_type: str, delta: int, severity: Severity) -> ScoringEvent:
    return ScoringEvent(
        event_type=event_type,
        severity=severity,
        source=EventSource.SYSTEM,
        score_delta=delta,
    )


def score_call(
    transcript: TranscriptInput,
    duration_seconds: Optional[float],
    lead_created: bool,
    load_confirmed: bool,
    *,
    time_to_handoff_seconds: Optional[float] = None,
    turns: Sequence[TranscriptTurn] = (),
    classifier: Optional[TranscriptClassifier] = None,
) -> ScoreResult:
    classifier = classifier or default_classifier
    events: List[ScoringEvent] = []

    dur_delta = duration_adjustment(duration_seconds)
    if dur_delta == QUICK_HANGUP_DELTA:
        events.append(_system_event("quick_hangup_under_30s", dur_delta, Severity.ERROR))
    elif dur_delta == SHORT_CALL_DELTA:
        events.append(_system_event("short_call_30_to_90s", dur_delta, Severity.WARN))

    text = transcript_text(transcript)
    if not text:
        return _finish(events)

    classifier_events = classifier.classify(text)
    events.extend(classifier_events)

    escalation = next((e for e in classifier_events if classifier.is_escalation(e)), None)
    handoff_seconds: Optional[float] = None

    if escalation is None:
        events.append(
            _system_event("call_resolved_without_handoff", RESOLVED_WITHOUT_HANDOFF_BONUS, Severity.INFO)
        )
    else:
        if time_to_handoff_seconds is not None:
            handoff_seconds = float(time_to_handoff_seconds)
        else:
            handoff_seconds = handoff_time_from_turns(turns, escalation.matched_phrase)

        if handoff_seconds is not None and handoff_seconds < EARLY_HANDOFF_SECONDS:
            events.append(
                _system_event("early_handoff_request_under_60s", EARLY_HANDOFF_PENALTY, Severity.ERROR)
            )

    if lead_created:
        events.append(_system_event("lead_created", LEAD_CREATED_BONUS, Severity.INFO))

    if load_confirmed:
        events.append(_system_event("load_confirmed", LOAD_CONFIRMED_BONUS, Severity.INFO))

    result = _finish(events)
    result.handoff_requested = escalation is not None
    result.handoff_reason = escalation.matched_phrase if escalation else None
    result.time_to_handoff_seconds = handoff_seconds
    return result


def _finish(events: List[ScoringEvent]) -> ScoreResult:
    raw = CEI_BASE_SCORE + sum(e.score_delta for e in events)
    final = clamp_score(raw)
    return ScoreResult(
        final_score=final,
        band=cei_band(final),
        events=events,
        reasons=[e.event_type for e in events],
        raw_score=raw,
    )
