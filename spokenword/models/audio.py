"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    capture_starts: int  # How many times capture was (re)started
    peak_level: float = 0.0
