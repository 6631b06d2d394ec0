"""Abstract base classes for streaming recognition services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
import logging

from ..models.transcription import RecognitionResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[RecognitionResult], None]


@dataclass(frozen=True)
class SessionHandle:
    """Opaque reference to one recognition session of a service."""
    session_id: str


class AbstractRecognitionService(ABC):
    """Abstract base class for one-shot, time-boxed recognition sessions.

    ``on_result`` receives zero or more non-final results followed by exactly
    one terminal delivery (final result or failure). After the terminal
    delivery the handle is invalid.
    """

    def __init__(self, language: str = "en-US"):
        """Initialize service with language preference."""
        self.language = language
    
    @abstractmethod
    def initialize(self) -> bool:
        """Initialize service resources and verify configuration.
        
        Returns:
            True if initialization successful, False otherwise
        """
        pass
    
    @abstractmethod
    def begin_session(self, on_result: ResultCallback) -> SessionHandle:
        """Open a new recognition session.
        
        Args:
            on_result: Callback receiving the session's results, possibly on another thread
            
        Returns:
            Handle for feeding audio to the session
            
        Raises:
            SessionStartFailure: if the service cannot be engaged
        """
        pass
    
    @abstractmethod
    def feed(self, handle: SessionHandle, frame: bytes) -> None:
        """Forward one audio frame to an open session."""
        pass
    
    @abstractmethod
    def end_input(self, handle: SessionHandle) -> None:
        """Signal end of audio so the session finishes with a final result."""
        pass
    
    def cleanup(self) -> None:
        """Clean up service resources."""
        pass
