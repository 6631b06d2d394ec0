"""Event models published on the controller notification channel."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .session import SessionState


@dataclass
class AudioEvent:
    """Audio frame event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None  # Duration of this chunk in milliseconds

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class DowntimeSample:
    """Gap between one session ending and its successor starting to listen."""
    stopped_at: float
    restarted_at: float
    duration_seconds: float  # Rounded to millisecond precision


@dataclass
class StateChangeEvent:
    """Presentation hint emitted whenever the controller changes state."""
    state: SessionState
    is_active: bool
    button_enabled: bool
    label: str
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TranscriptEvent:
    """Transcript update after a session's final result was accumulated."""
    session_id: str
    fragment: str
    full_text: str
    fragment_count: int
    timestamp: datetime = field(default_factory=datetime.now)
