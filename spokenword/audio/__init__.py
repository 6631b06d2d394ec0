"""Audio capture module."""

from .capture import AudioCapture, CaptureHandle

__all__ = [
    'AudioCapture',
    'CaptureHandle'
]
