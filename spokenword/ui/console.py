"""Console adapter that renders controller notifications with rich."""

import logging
import threading
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..models.events import DowntimeSample, StateChangeEvent, TranscriptEvent
from ..models.session import SessionState
from ..session.notifier import ControllerNotifier

logger = logging.getLogger(__name__)


class ConsoleUI:
    """Subscribes to the notification channel and mirrors it on the terminal.

    Notifications may arrive on any thread; printing is serialized with a lock.
    """

    def __init__(self, notifier: ControllerNotifier, console: Optional[Console] = None):
        self.notifier = notifier
        self.console = console or Console()
        self.lock = threading.Lock()

        # Last presentation state, as a button would show it
        self.button_enabled = True
        self.label = "Start Recording"
        self.transcript = ""
        self.downtime_samples = 0
        self.inactive_event = threading.Event()
        self.inactive_event.set()

        pub.subscribe(self._on_state, notifier.state_topic)
        pub.subscribe(self._on_transcript, notifier.transcript_topic)
        pub.subscribe(self._on_downtime, notifier.downtime_topic)
        logger.info("ConsoleUI subscribed to controller notifications")

    def _on_state(self, event: StateChangeEvent) -> None:
        with self.lock:
            changed = (event.label, event.button_enabled) != (self.label, self.button_enabled)
            self.label = event.label
            self.button_enabled = event.button_enabled
            if event.state == SessionState.INACTIVE and not event.is_active:
                self.inactive_event.set()
            else:
                self.inactive_event.clear()
            if changed:
                style = "bold green" if event.button_enabled else "bold yellow"
                message = f"[{event.label}]"
                if event.reason:
                    message += f" {event.reason}"
                self.console.print(Text(message, style=style))

    def _on_transcript(self, event: TranscriptEvent) -> None:
        with self.lock:
            self.transcript = event.full_text
            self.console.print(Text(event.fragment, style="white"))

    def _on_downtime(self, event: DowntimeSample) -> None:
        with self.lock:
            self.downtime_samples += 1
            self.console.print(f"Time lost between recognition sessions: "
                               f"{event.duration_seconds:.3f}s", style="dim")

    def wait_until_inactive(self, timeout: float) -> bool:
        return self.inactive_event.wait(timeout)

    def print_transcript(self) -> None:
        with self.lock:
            text = self.transcript or "(no speech recognized)"
            self.console.print(Panel(Text(text), title="Transcript", border_style="bright_blue"))

    def close(self) -> None:
        for listener, topic in ((self._on_state, self.notifier.state_topic),
                                (self._on_transcript, self.notifier.transcript_topic),
                                (self._on_downtime, self.notifier.downtime_topic)):
            try:
                pub.unsubscribe(listener, topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
