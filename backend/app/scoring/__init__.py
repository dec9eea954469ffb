from app.scoring.calculator import ScoreResult, cei_band, clamp_score, score_call
from app.scoring.classifier import ScoringEvent, TranscriptClassifier
from app.scoring.phrases import DEFAULT_CATEGORIES, PHRASE_TABLE_VERSION, PhraseCategory

__all__ = [
    'ScoreResult',
    'ScoringEvent',
    'TranscriptClassifier',
    'PhraseCategory',
    'DEFAULT_CATEGORIES',
    'PHRASE_TABLE_VERSION',
    'cei_band',
    'clamp_score',
    'score_call',
]
