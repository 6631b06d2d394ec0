"""Rotation with a real timer thread and asynchronous session completions."""

import threading
import time

import pytest

from spokenword.models.session import SessionState
from spokenword.session.controller import SessionController
from spokenword.session.scheduler import RotationScheduler
from spokenword.session.transcript import TranscriptAccumulator


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.mark.integration
def test_continuous_rotation_with_concurrent_events(recognition_service, audio_source, notifier):
    # Each session completes 20ms after end of input, from its own thread
    def complete_later(index):
        timer = threading.Timer(0.02, recognition_service.complete, args=(index, f"segment {index}"))
        timer.daemon = True
        timer.start()

    recognition_service.on_end_input = complete_later
    controller = SessionController(
        recognition_service=recognition_service,
        audio_source=audio_source,
        rotation_interval=0.1,
        scheduler=RotationScheduler(),
        transcript=TranscriptAccumulator(),
        notifier=notifier
    )

    running = threading.Event()
    running.set()

    def pump_audio():
        while running.is_set():
            if audio_source.on_frame is not None:
                audio_source.emit()
            time.sleep(0.001)

    pump = threading.Thread(target=pump_audio, daemon=True)

    assert controller.start()["success"] is True
    pump.start()
    try:
        assert wait_for(lambda: len(controller.transcript) >= 3)
        controller.stop()
        assert wait_for(lambda: controller.state == SessionState.INACTIVE)
    finally:
        running.clear()
        pump.join(timeout=1.0)

    fragments = controller.transcript.fragments
    assert list(fragments) == [f"segment {i}" for i in range(len(fragments))]
    assert len(recognition_service.sessions) == len(fragments)
    assert len(notifier.downtimes) == len(fragments) - 1
    assert all(sample.duration_seconds >= 0 for sample in notifier.downtimes)
    assert sum(len(session.frames) for session in recognition_service.sessions) > 0

    # Nothing reopens after the stop has been observed
    time.sleep(0.3)
    assert controller.state == SessionState.INACTIVE
    assert len(recognition_service.sessions) == len(fragments)
