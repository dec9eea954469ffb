from app.services.elevenlabs_service import ElevenLabsService
from app.services.notification_service import CallAlert, CallAlertNotifier

__all__ = [
    'ElevenLabsService',
    'CallAlert',
    'CallAlertNotifier',
]
