# backend/app/models/__init__.py
from app.models.lead import CarrierLead
from app.models.call_session import CallSession
from app.models.call_score import CallScoreRecord, ScoringEventRecord

__all__ = ['CarrierLead', 'CallSession', 'CallScoreRecord', 'ScoringEventRecord']
