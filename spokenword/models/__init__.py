"""Data models for the SpokenWord application."""

from .session import Session, SessionState
from .transcription import RecognitionResult
from .audio import AudioStats
from .events import AudioEvent, DowntimeSample, StateChangeEvent, TranscriptEvent

__all__ = [
    "Session",
    "SessionState",
    "RecognitionResult",
    "AudioStats",
    "AudioEvent",
    "DowntimeSample",
    "StateChangeEvent",
    "TranscriptEvent",
]
