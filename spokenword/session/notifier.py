"""Notification channel between the session controller and presentation."""

import logging
from pubsub import pub

from ..models.events import DowntimeSample, StateChangeEvent, TranscriptEvent

logger = logging.getLogger(__name__)

STATE_TOPIC = "controller.state"
TRANSCRIPT_TOPIC = "transcript.updated"
DOWNTIME_TOPIC = "session.downtime"


class ControllerNotifier:
    """Publishes controller events using pubsub.pub.

    Listeners run on whichever thread the controller is on; marshaling onto a
    UI thread is the listener's job.
    """

    def __init__(self,
                 state_topic: str = STATE_TOPIC,
                 transcript_topic: str = TRANSCRIPT_TOPIC,
                 downtime_topic: str = DOWNTIME_TOPIC):
        """Initialize notifier.

        Args:
            state_topic: Topic for StateChangeEvent messages
            transcript_topic: Topic for TranscriptEvent messages
            downtime_topic: Topic for DowntimeSample messages
        """
        self.state_topic = state_topic
        self.transcript_topic = transcript_topic
        self.downtime_topic = downtime_topic
        logger.info(f"ControllerNotifier initialized with topics: {state_topic}, "
                    f"{transcript_topic}, {downtime_topic}")

    def publish_state(self, event: StateChangeEvent) -> None:
        self._send(self.state_topic, event)

    def publish_transcript(self, event: TranscriptEvent) -> None:
        self._send(self.transcript_topic, event)

    def publish_downtime(self, sample: DowntimeSample) -> None:
        self._send(self.downtime_topic, sample)

    def _send(self, topic: str, event) -> None:
        try:
            pub.sendMessage(topic, event=event)
        except Exception as e:
            # A broken listener must not break the state machine
            logger.error(f"Listener on '{topic}' failed: {e}")
