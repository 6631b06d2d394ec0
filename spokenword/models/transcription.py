"""Recognition-result data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class RecognitionResult:
    """Output of a recognition session.

    A result is terminal when it is final or carries an error. Exactly one
    terminal result is delivered per session.
    """
    text: str
    is_final: bool = False
    error: Optional[Exception] = None
    session_id: Optional[str] = None
    confidence: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_terminal(self) -> bool:
        return self.is_final or self.failed
