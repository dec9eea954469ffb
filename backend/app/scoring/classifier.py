# backend/app/scoring/classifier.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from app.scoring.phrases import DEFAULT_CATEGORIES, EventSource, PhraseCategory, Severity
from app.scoring.transcript import TranscriptInput, transcript_text


@dataclass(frozen=True)
class ScoringEvent:
    event_type: str
    severity: Severity
    source: EventSource
    score_delta: int
    matched_phrase: Optional[str] = None
    # set on classifier events; the calculator uses it to spot escalations
    category: Optional[str] = None


class TranscriptClassifier:
    """
    Phrase-based behavioral signals from a call transcript.

    Each category reports at most one event (its first matching phrase);
    categories are independent, so one transcript can trigger several.
    """

    def __init__(self, categories: Sequence[PhraseCategory] = DEFAULT_CATEGORIES):
        self.categories = tuple(categories)
        self.escalation_keys = frozenset(c.key for c in self.categories if c.is_escalation)

    def classify(self, transcript: TranscriptInput) -> List[ScoringEvent]:
        text = transcript_text(transcript)
        if not text:
            return []

        lowered = text.lower()
        events: List[ScoringEvent] = []
        for category in self.categories:
            phrase = category.first_match(lowered)
            if phrase is None:
                continue
            events.append(
                ScoringEvent(
                    event_type=category.event_type_for(phrase),
                    severity=category.severity,
                    source=EventSource.CLASSIFIER,
                    score_delta=category.score_delta,
                    matched_phrase=phrase,
                    category=category.key,
                )
            )
        return events

    def is_escalation(self, event: ScoringEvent) -> bool:
        return event.category in self.escalation_keys


default_classifier = TranscriptClassifier()
