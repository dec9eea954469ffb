# backend/app/utils/errors.py
"""
Failure taxonomy for post-call processing.

Only AuthenticationFailure ends a request early (401). Everything else is
logged and, where it affects persisted state, reported in the response body.
"""


class CallCompleteError(Exception):
    """Base class for post-call processing failures."""


class AuthenticationFailure(CallCompleteError):
    """Webhook signature missing or wrong."""


class MalformedPayload(CallCompleteError):
    """Body could not be decoded; processing degrades to an empty payload."""


class EnrichmentFailure(CallCompleteError):
    """Conversation-detail lookup against the provider failed."""


class PersistenceFailure(CallCompleteError):
    """A session or score write failed and was rolled back."""

    def __init__(self, unit: str, message: str):
        super().__init__(f"{unit}: {message}")
        self.unit = unit


class NotificationFailure(CallCompleteError):
    """SMS alert could not be delivered."""
