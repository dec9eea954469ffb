# backend/app/scoring/transcript.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union


@dataclass(frozen=True)
class TranscriptTurn:
    role: str
    text: str
    time_in_call_secs: Optional[float] = None


TranscriptInput = Union[str, Sequence[TranscriptTurn], None]


def _turn_from_any(raw: Any) -> Optional[TranscriptTurn]:
    if isinstance(raw, TranscriptTurn):
        return raw
    if not isinstance(raw, dict):
        return None

    role = raw.get("role") or "unknown"
    text = raw.get("message") or raw.get("text") or raw.get("content") or ""
    t = raw.get("time_in_call_secs")
    try:
        t = float(t) if t is not None and not isinstance(t, bool) else None
    except (TypeError, ValueError):
        t = None
    return TranscriptTurn(role=str(role), text=str(text), time_in_call_secs=t)


def parse_turns(raw: Iterable[Any]) -> List[TranscriptTurn]:
    """Provider turn list -> TranscriptTurn list. Entries that are not objects are skipped."""
    out: List[TranscriptTurn] = []
    for item in raw or []:
        turn = _turn_from_any(item)
        if turn is not None:
            out.append(turn)
    return out


def flatten_turns(turns: Sequence[TranscriptTurn]) -> str:
    # "role: text" per turn, original order
    return "\n".join(f"{t.role}: {t.text}" for t in turns)


def transcript_text(transcript: TranscriptInput) -> Optional[str]:
    if transcript is None:
        return None
    if isinstance(transcript, str):
        return transcript
    return flatten_turns(parse_turns(transcript))
