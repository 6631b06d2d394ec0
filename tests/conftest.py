"""Pytest configuration and fixtures for SpokenWord tests."""

import itertools
import logging
import time
from typing import Callable, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from spokenword.errors import AudioCaptureFailure, SessionStartFailure
from spokenword.models.events import AudioEvent
from spokenword.models.transcription import RecognitionResult
from spokenword.recognition.base import AbstractRecognitionService, SessionHandle
from spokenword.session.controller import SessionController
from spokenword.session.notifier import ControllerNotifier
from spokenword.session.transcript import TranscriptAccumulator


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without threads or hardware")
    config.addinivalue_line("markers", "integration: tests that use real timer threads")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def set(self, value: float) -> None:
        self.now = value


class ManualScheduler:
    """Rotation scheduler whose timer is fired by the test."""

    def __init__(self):
        self.callback: Optional[Callable[[], None]] = None
        self.duration: Optional[float] = None
        self.arm_count = 0
        self.disarm_count = 0

    @property
    def is_armed(self) -> bool:
        return self.callback is not None

    def arm(self, duration: float, callback: Callable[[], None]) -> None:
        self.duration = duration
        self.callback = callback
        self.arm_count += 1

    def disarm(self) -> bool:
        self.disarm_count += 1
        was_armed = self.callback is not None
        self.callback = None
        return was_armed

    def fire(self) -> None:
        """Fire the pending timer, if any."""
        callback, self.callback = self.callback, None
        if callback is not None:
            callback()

    def fire_stale(self, callback: Callable[[], None]) -> None:
        """Deliver a fire that raced a disarm."""
        callback()


class FakeSession:
    """One session opened on the FakeRecognitionService."""

    def __init__(self, handle: SessionHandle, on_result):
        self.handle = handle
        self.on_result = on_result
        self.frames: List[bytes] = []
        self.input_ended = False
        self.completed = False


class FakeRecognitionService(AbstractRecognitionService):
    """Recognition service double; results are delivered by the test."""

    def __init__(self):
        super().__init__()
        self.sessions: List[FakeSession] = []
        self.fail_begin = False
        self.fail_end_input = False
        self.complete_on_end_input: Optional[str] = None
        self.on_end_input: Optional[Callable[[int], None]] = None
        self._ids = itertools.count(1)

    def initialize(self) -> bool:
        return True

    def begin_session(self, on_result) -> SessionHandle:
        if self.fail_begin:
            raise SessionStartFailure("recognizer unavailable")
        handle = SessionHandle(session_id=f"fake_{next(self._ids)}")
        self.sessions.append(FakeSession(handle, on_result))
        return handle

    def feed(self, handle: SessionHandle, frame: bytes) -> None:
        self._find(handle).frames.append(frame)

    def end_input(self, handle: SessionHandle) -> None:
        if self.fail_end_input:
            raise RuntimeError("request already torn down")
        session = self._find(handle)
        session.input_ended = True
        if self.complete_on_end_input is not None:
            # Synchronous delivery from inside end_input
            self.complete(self.sessions.index(session), self.complete_on_end_input)
        elif self.on_end_input is not None:
            self.on_end_input(self.sessions.index(session))

    def complete(self, index: int, text: str = "", error: Optional[Exception] = None) -> None:
        session = self.sessions[index]
        session.completed = True
        session.on_result(RecognitionResult(text=text, is_final=error is None, error=error,
                                             session_id=session.handle.session_id))

    def partial(self, index: int, text: str) -> None:
        session = self.sessions[index]
        session.on_result(RecognitionResult(text=text, is_final=False,
                                            session_id=session.handle.session_id))

    def _find(self, handle: SessionHandle) -> FakeSession:
        for session in self.sessions:
            if session.handle == handle:
                return session
        raise KeyError(handle.session_id)


class FakeAudioSource:
    """Audio source double that emits frames on demand."""

    def __init__(self):
        self.on_frame = None
        self.current_handle = None
        self.start_count = 0
        self.stop_count = 0
        self.fail_start = False
        self._ids = itertools.count(1)
        self._sequence = itertools.count(1)

    @property
    def is_capturing(self) -> bool:
        return self.current_handle is not None

    def start_capture(self, on_frame):
        if self.fail_start:
            raise AudioCaptureFailure("input device busy")
        self.start_count += 1
        self.on_frame = on_frame
        self.current_handle = next(self._ids)
        return self.current_handle

    def stop_capture(self, handle) -> None:
        if handle == self.current_handle:
            self.stop_count += 1
            self.current_handle = None

    def emit(self, data: bytes = b'\x00' * 2048, on_frame=None) -> None:
        """Deliver a frame to the current (or an explicitly given stale) callback."""
        callback = on_frame or self.on_frame
        sequence = next(self._sequence)
        callback(AudioEvent(
            chunk_id=f"chunk_{sequence}",
            audio_data=data,
            timestamp=time.time(),
            sequence_number=sequence
        ))


class RecordingNotifier(ControllerNotifier):
    """Notifier that keeps every published event instead of sending it."""

    def __init__(self):
        super().__init__(state_topic="test_state", transcript_topic="test_transcript",
                         downtime_topic="test_downtime")
        self.states = []
        self.transcripts = []
        self.downtimes = []
        self.on_publish: Optional[Callable[[str, object], None]] = None

    def _send(self, topic: str, event) -> None:
        {
            self.state_topic: self.states,
            self.transcript_topic: self.transcripts,
            self.downtime_topic: self.downtimes,
        }[topic].append(event)
        if self.on_publish is not None:
            self.on_publish(topic, event)

    @property
    def labels(self) -> List[str]:
        return [event.label for event in self.states]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def recognition_service():
    return FakeRecognitionService()


@pytest.fixture
def audio_source():
    return FakeAudioSource()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def controller(recognition_service, audio_source, scheduler, notifier, clock):
    """Controller wired to test doubles, with a 15 second rotation interval."""
    return SessionController(
        recognition_service=recognition_service,
        audio_source=audio_source,
        rotation_interval=15.0,
        scheduler=scheduler,
        transcript=TranscriptAccumulator(),
        notifier=notifier,
        clock=clock
    )


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440  # A4 note
    
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)
    
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()
        
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None
        
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2
        
        mock_pyaudio_class.return_value = mock_pyaudio_instance
        
        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
