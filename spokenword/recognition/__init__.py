"""Recognition services for SpokenWord."""

from .base import AbstractRecognitionService, SessionHandle, ResultCallback
from .google_backend import GoogleStreamingRecognitionService

__all__ = [
    "AbstractRecognitionService",
    "SessionHandle",
    "ResultCallback",
    "GoogleStreamingRecognitionService",
]
