# backend/app/scoring/phrases.py
"""
Phrase table for the transcript classifier.

Categories are evaluated in the order listed. Inside a category the phrase
list is ordered too: the first phrase found in the transcript is the one
reported. Bump PHRASE_TABLE_VERSION whenever a phrase, delta or severity changes
so stored scores can be traced back to the table that produced them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

PHRASE_TABLE_VERSION = "2025.1"


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class EventSource(str, Enum):
    SYSTEM = "system"
    CLASSIFIER = "classifier"


@dataclass(frozen=True)
class PhraseCategory:
    key: str
    event_type: str
    severity: Severity
    score_delta: int
    phrases: Tuple[str, ...]
    # substring of the matched phrase -> event type to report instead
    event_type_overrides: Dict[str, str] = field(default_factory=dict)
    is_escalation: bool = False

    def event_type_for(self, phrase: str) -> str:
        for marker, override in self.event_type_overrides.items():
            if marker in phrase:
                return override
        return self.event_type

    def first_match(self, lowered_text: str) -> Optional[str]:
        for phrase in self.phrases:
            if phrase in lowered_text:
                return phrase
        return None


ESCALATION_REQUEST = PhraseCategory(
    key="dispatch_or_human_request",
    event_type="human_requested",
    severity=Severity.ERROR,
    score_delta=-25,
    phrases=(
        "talk to dispatch", "dispatch", "real person", "human", "transfer me",
        "operator", "dispatcher", "let me talk to someone", "speak to someone",
        "talk to a person", "real agent",
    ),
    event_type_overrides={"dispatch": "dispatch_requested"},
    is_escalation=True,
)

IMPATIENCE = PhraseCategory(
    key="impatience",
    event_type="impatience_phrase_detected",
    severity=Severity.WARN,
    score_delta=-15,
    phrases=(
        "just tell me", "get to the point", "quick question", "skip the details",
        "don't have time", "hurry up", "make it quick", "come on",
    ),
)

CONFUSION_CORRECTION = PhraseCategory(
    key="confusion_correction",
    event_type="confusion_correction_detected",
    severity=Severity.WARN,
    score_delta=-10,
    phrases=(
        "that's not right", "wrong", "no i said", "i already told you", "not that",
        "that's incorrect", "no no no", "listen to me",
    ),
)

HARD_FRUSTRATION = PhraseCategory(
    key="hard_frustration",
    event_type="hard_frustration_detected",
    severity=Severity.ERROR,
    score_delta=-15,
    phrases=(
        "this is annoying", "this is frustrating", "forget it", "waste of time",
        "never mind", "ridiculous", "useless", "terrible",
    ),
)

GRATITUDE = PhraseCategory(
    key="thanks",
    event_type="caller_thanked",
    severity=Severity.INFO,
    score_delta=5,
    phrases=("thank you", "thanks", "appreciate it", "great", "perfect", "awesome"),
)

BOOKING_INTEREST = PhraseCategory(
    key="booking_interest",
    event_type="booking_interest_confirmed",
    severity=Severity.INFO,
    score_delta=10,
    phrases=(
        "i'll take it", "book it", "confirm", "sounds good", "let's do it",
        "i want it", "i'm interested", "sign me up",
    ),
)

DEFAULT_CATEGORIES: Tuple[PhraseCategory, ...] = (
    ESCALATION_REQUEST,
    IMPATIENCE,
    CONFUSION_CORRECTION,
    HARD_FRUSTRATION,
    GRATITUDE,
    BOOKING_INTEREST,
)
