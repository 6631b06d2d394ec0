"""Recognition session models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class SessionState(Enum):
    """Lifecycle state of the session controller and of its current session."""
    INACTIVE = "inactive"
    LISTENING = "listening"
    FINISHING = "finishing"


@dataclass
class Session:
    """One bounded interaction with the recognition service.

    Once ``ended_at`` is set and the session has reached ``INACTIVE`` it is
    history and must not be mutated again.
    """
    session_id: str
    handle: Any  # Opaque handle returned by the recognition service
    started_at: float
    state: SessionState = SessionState.LISTENING
    ended_at: Optional[float] = None
    finish_reason: Optional[str] = None  # "rotation", "stop" or "capture_failure"
    capture_handle: Any = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at
