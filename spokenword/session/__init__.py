"""Recognition-session rotation: controller, timer, transcript and downtime."""

from .controller import SessionController
from .downtime import DowntimeTracker, log_downtime_sample
from .notifier import ControllerNotifier, STATE_TOPIC, TRANSCRIPT_TOPIC, DOWNTIME_TOPIC
from .scheduler import RotationScheduler
from .transcript import TranscriptAccumulator

__all__ = [
    "SessionController",
    "DowntimeTracker",
    "log_downtime_sample",
    "ControllerNotifier",
    "STATE_TOPIC",
    "TRANSCRIPT_TOPIC",
    "DOWNTIME_TOPIC",
    "RotationScheduler",
    "TranscriptAccumulator",
]
