"""Session controller that rotates time-boxed recognition sessions.

The recognition service caps each session at about a minute, so the
controller ends the current session on a timer and opens a replacement as
soon as the old one has delivered its terminal result. To the user this
reads as one continuous transcription.

Three event sources reach the controller from their own threads: audio
frames, the rotation timer and recognition results. Every state change goes
through ``_dispatch``, which runs handlers one at a time under a single lock.
A handler that triggers another event on the same thread (a service that
delivers its result synchronously, for example) has that event queued and run
after the current handler returns.

Notifications for presentation are queued during a transition and handed to
listeners once the lock is released, so a slow listener never stalls audio.
"""

import time
import logging
import itertools
import threading
from collections import deque
from functools import partial
from typing import Any, Callable, Dict, Optional

from .downtime import DowntimeTracker, log_downtime_sample
from .notifier import ControllerNotifier
from .scheduler import RotationScheduler
from .transcript import TranscriptAccumulator
from ..errors import AudioCaptureFailure, SessionStartFailure
from ..models.events import AudioEvent, DowntimeSample, StateChangeEvent, TranscriptEvent
from ..models.session import Session, SessionState
from ..models.transcription import RecognitionResult
from ..recognition.base import AbstractRecognitionService

logger = logging.getLogger(__name__)

LABEL_START = "Start Recording"
LABEL_STOP = "Stop Recording"
LABEL_STOPPING = "Stopping"
LABEL_RECORDING_NOT_AVAILABLE = "Recording Not Available"
LABEL_RECOGNITION_NOT_AVAILABLE = "Recognition Not Available"


class SessionController:
    """Owns at most one recognition session and rotates it before the service limit."""
    
    def __init__(self,
                 recognition_service: AbstractRecognitionService,
                 audio_source: Any,
                 rotation_interval: float = 15.0,
                 scheduler: Optional[RotationScheduler] = None,
                 transcript: Optional[TranscriptAccumulator] = None,
                 downtime_tracker: Optional[DowntimeTracker] = None,
                 notifier: Optional[ControllerNotifier] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize session controller.
        
        Args:
            recognition_service: Service that runs the bounded sessions
            audio_source: Object with ``start_capture(on_frame)`` and ``stop_capture(handle)``
            rotation_interval: Seconds each session listens before it is rotated
            scheduler: Rotation timer; a RotationScheduler by default
            transcript: Accumulator for final text; created if not given
            downtime_tracker: Rotation gap tracker; reports to the notifier by default
            notifier: Notification channel for presentation
            clock: Monotonic time source in seconds
        """
        if rotation_interval <= 0:
            raise ValueError(f"rotation_interval must be positive, got {rotation_interval}")
        
        self.recognition_service = recognition_service
        self.audio_source = audio_source
        self.rotation_interval = rotation_interval
        self.scheduler = scheduler if scheduler is not None else RotationScheduler()
        self.transcript = transcript if transcript is not None else TranscriptAccumulator()
        self.notifier = notifier if notifier is not None else ControllerNotifier()
        self.clock = clock
        self.downtime_tracker = downtime_tracker if downtime_tracker is not None else DowntimeTracker(
            sink=self._queue_downtime, clock=clock)
        
        self._lock = threading.RLock()
        self._deferred = deque()
        self._dispatching = False
        self._outbox = deque()  # (publish, event) pairs, sent after _lock is released
        self._publish_lock = threading.RLock()
        self._drop_lock = threading.Lock()
        
        # Guarded by _lock
        self._state = SessionState.INACTIVE
        self._is_active = False  # Does the user want recognition running right now?
        self._is_available = True
        self._current: Optional[Session] = None
        self._session_ids = itertools.count(1)
        
        # Statistics
        self.sessions_started = 0
        self.sessions_completed = 0
        self.runtime_failures = 0
        self.scheduler_misfires = 0
        self.frames_forwarded = 0
        self.frames_dropped = 0
        
        logger.info(f"SessionController initialized with rotation interval {rotation_interval}s")
    
    # Read-only views
    
    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state
    
    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._is_active
    
    @property
    def is_available(self) -> bool:
        with self._lock:
            return self._is_available
    
    @property
    def current_session(self) -> Optional[Session]:
        with self._lock:
            return self._current
    
    @property
    def transcript_text(self) -> str:
        return self.transcript.text
    
    # Commands from the UI
    
    def start(self) -> Dict[str, Any]:
        """Start continuous recognition.
        
        Returns:
            Result dictionary with success status and error or session id.
            Called from inside a transition (a synchronous service callback),
            the start is queued and the result is ``{"success": True, "queued": True}``;
            its real outcome shows up in the state notifications.
        """
        outcome = self._dispatch(self._handle_start)
        if outcome is None:
            return {"success": True, "queued": True}
        return outcome

    def stop(self) -> Dict[str, Any]:
        """Stop continuous recognition; the current session finishes gracefully.

        Returns:
            Result dictionary; stopping an inactive controller is a successful no-op.
            A stop queued behind a running transition returns ``{"success": True, "queued": True}``.
        """
        outcome = self._dispatch(self._handle_stop)
        if outcome is None:
            return {"success": True, "queued": True}
        return outcome
    
    def on_availability_changed(self, available: bool) -> None:
        """Recognizer availability changed; reflect it in presentation."""
        self._dispatch(self._handle_availability, available)
    
    # Callbacks from collaborators
    
    def _on_recognition_result(self, session_id: str, result: RecognitionResult) -> None:
        self._dispatch(self._handle_result, session_id, result)
    
    def _on_rotation_timer(self, session_id: str) -> None:
        self._dispatch(self._handle_rotation_timer, session_id)
    
    def _on_audio_frame(self, session_id: str, event: AudioEvent) -> None:
        # High frequency: never wait for a transition in progress, just drop
        if not self._lock.acquire(blocking=False):
            self._count_dropped_frame()
            return
        try:
            current = self._current
            if current is None or current.session_id != session_id or current.state != SessionState.LISTENING:
                self._count_dropped_frame()
                return
            try:
                self.recognition_service.feed(current.handle, event.audio_data)
                self.frames_forwarded += 1
            except Exception as e:
                # The session reports its own failure through the result callback
                logger.warning(f"Feeding frame to session {session_id} failed: {e}")
        finally:
            self._lock.release()

    def _count_dropped_frame(self) -> None:
        with self._drop_lock:
            self.frames_dropped += 1

    # Serialization
    
    def _dispatch(self, handler: Callable[..., Any], *args) -> Any:
        """Run ``handler`` as the only transition in progress.
        
        Returns:
            The handler's return value, or None if it was queued behind a
            handler already running on this thread
        """
        with self._lock:
            if self._dispatching:
                self._deferred.append((handler, args))
                return None
            
            self._dispatching = True
            try:
                outcome = handler(*args)
                while self._deferred:
                    deferred_handler, deferred_args = self._deferred.popleft()
                    deferred_handler(*deferred_args)
            finally:
                self._dispatching = False

        self._flush_notifications()
        return outcome

    def _flush_notifications(self) -> None:
        """Hand queued events to listeners without holding ``_lock``.

        Listeners may print, block or call back into the controller; audio
        frames keep reaching the live session meanwhile. One flusher at a time
        drains the outbox, so listeners see events in the order they were queued.
        """
        with self._publish_lock:
            while True:
                with self._lock:
                    if not self._outbox:
                        return
                    publish, event = self._outbox.popleft()
                publish(event)

    def _notify(self, button_enabled: bool, label: str, reason: Optional[str] = None) -> None:
        self._outbox.append((self.notifier.publish_state, StateChangeEvent(
            state=self._state,
            is_active=self._is_active,
            button_enabled=button_enabled,
            label=label,
            reason=reason
        )))

    def _queue_downtime(self, sample: DowntimeSample) -> None:
        log_downtime_sample(sample)
        self._outbox.append((self.notifier.publish_downtime, sample))
    
    # Handlers, always called from _dispatch
    
    def _handle_start(self) -> Dict[str, Any]:
        if not self._is_available:
            logger.warning("Start rejected: recognition not available")
            return {"success": False, "error": "Recognition not available"}
        
        if self._state != SessionState.INACTIVE:
            logger.info("Start rejected: already active")
            return {"success": False, "error": "Already active", "session_id": self._current_id()}
        
        # A pending stop from a previous activation is not rotation downtime
        self.downtime_tracker.clear()
        
        try:
            session = self._open_session()
        except SessionStartFailure as e:
            logger.error(f"Could not start recognition: {e}")
            self._notify(True, LABEL_RECORDING_NOT_AVAILABLE, reason=str(e))
            return {"success": False, "error": str(e)}
        except AudioCaptureFailure as e:
            logger.error(f"Could not start audio capture: {e}")
            self._notify(True, LABEL_RECORDING_NOT_AVAILABLE, reason=str(e))
            return {"success": False, "error": str(e)}
        
        self._is_active = True
        self._notify(True, LABEL_STOP)
        logger.info(f"Recognition started with session {session.session_id}")
        return {"success": True, "session_id": session.session_id}
    
    def _handle_stop(self) -> Dict[str, Any]:
        if self._state == SessionState.INACTIVE or not self._is_active:
            logger.debug("Stop ignored: not active")
            return {"success": True, "was_active": False}
        
        self._is_active = False
        self.scheduler.disarm()
        
        if self._state == SessionState.LISTENING:
            self._begin_finishing("stop")
        # Already finishing from a rotation: its completion sees the cleared flag
        
        self._notify(False, LABEL_STOPPING)
        logger.info("Recognition stopping")
        return {"success": True, "was_active": True}
    
    def _handle_availability(self, available: bool) -> None:
        self._is_available = available
        if not available:
            logger.warning("Recognition service became unavailable")
            self._notify(False, LABEL_RECOGNITION_NOT_AVAILABLE)
        elif self._is_active:
            self._notify(True, LABEL_STOP)
        elif self._state == SessionState.INACTIVE:
            self._notify(True, LABEL_START)
    
    def _handle_rotation_timer(self, session_id: str) -> None:
        current = self._current
        if (not self._is_active or current is None or current.session_id != session_id
                or self._state != SessionState.LISTENING):
            self.scheduler_misfires += 1
            logger.debug(f"Ignoring rotation timer misfire for session {session_id}")
            return
        
        logger.info(f"Rotating recognition session {session_id}")
        self.downtime_tracker.mark_stopped_listening()
        self._begin_finishing("rotation")
        self._notify(True, LABEL_STOP, reason="rotation")
    
    def _handle_result(self, session_id: str, result: RecognitionResult) -> None:
        if not result.is_terminal:
            # Partial results are disabled; anything that still arrives is ignored
            return
        
        current = self._current
        if current is None or current.session_id != session_id:
            logger.debug(f"Ignoring terminal result for stale session {session_id}")
            return
        
        if result.failed:
            # Silence and no-speech end sessions this way; expected, so only logged
            self.runtime_failures += 1
            logger.warning(f"Recognition session {session_id} ended with failure: {result.error}")
        
        if result.text and result.text.strip():
            full_text = self.transcript.append(result.text.strip())
            self._outbox.append((self.notifier.publish_transcript, TranscriptEvent(
                session_id=session_id,
                fragment=result.text.strip(),
                full_text=full_text,
                fragment_count=len(self.transcript)
            )))
        
        if self._state == SessionState.LISTENING:
            # Session ended on its own before the timer or a stop
            self.scheduler.disarm()
            if self._is_active:
                self.downtime_tracker.mark_stopped_listening()
            self._begin_finishing("ended_by_service", signal_end=False)
        
        self._transition_to_inactive(current)
    
    # Transitions
    
    def _open_session(self) -> Session:
        """Inactive -> Listening: acquire a session, start capture, arm the timer."""
        session_id = f"session_{next(self._session_ids)}"
        
        try:
            handle = self.recognition_service.begin_session(
                partial(self._on_recognition_result, session_id))
        except SessionStartFailure:
            raise
        except Exception as e:
            raise SessionStartFailure(f"Recognition service could not be engaged: {e}", session_id) from e
        
        session = Session(session_id=session_id, handle=handle, started_at=self.clock())
        self._current = session
        self._state = SessionState.LISTENING
        
        try:
            session.capture_handle = self.audio_source.start_capture(
                partial(self._on_audio_frame, session_id))
        except Exception as e:
            self._abandon_session(session)
            if isinstance(e, AudioCaptureFailure):
                raise
            raise AudioCaptureFailure(f"Audio capture could not start: {e}", session_id) from e
        
        self.scheduler.arm(self.rotation_interval, partial(self._on_rotation_timer, session_id))
        self.sessions_started += 1
        self.downtime_tracker.mark_started_listening()
        logger.debug(f"Session {session_id} listening")
        return session
    
    def _abandon_session(self, session: Session) -> None:
        session.state = SessionState.INACTIVE
        session.ended_at = self.clock()
        session.finish_reason = "capture_failure"
        self._current = None
        self._state = SessionState.INACTIVE
        try:
            self.recognition_service.end_input(session.handle)
        except Exception as e:
            logger.warning(f"Ending abandoned session {session.session_id} failed: {e}")
    
    def _begin_finishing(self, reason: str, signal_end: bool = True) -> None:
        """Listening -> Finishing: stop forwarding audio and signal end of input."""
        session = self._current
        session.state = SessionState.FINISHING
        session.ended_at = self.clock()
        session.finish_reason = reason
        self._state = SessionState.FINISHING
        
        self._stop_capture(session)
        
        if not signal_end:
            return
        try:
            self.recognition_service.end_input(session.handle)
        except Exception as e:
            # No terminal result will come; complete the session ourselves
            logger.warning(f"Ending input for session {session.session_id} failed: {e}")
            self._deferred.append((self._handle_result, (session.session_id, RecognitionResult(
                text="", error=e, session_id=session.session_id))))
    
    def _transition_to_inactive(self, session: Session) -> None:
        """Finishing -> Inactive: release the session, then rotate if still active."""
        session.state = SessionState.INACTIVE
        self._current = None
        self._state = SessionState.INACTIVE
        self.sessions_completed += 1
        logger.debug(f"Session {session.session_id} closed after "
                     f"{session.duration_seconds or 0.0:.3f}s ({session.finish_reason})")
        
        if not self._is_active:
            self.downtime_tracker.clear()
            self._notify(self._is_available, LABEL_START if self._is_available else LABEL_RECOGNITION_NOT_AVAILABLE)
            logger.info("Recognition stopped, ready to start again")
            return
        
        try:
            self._open_session()
        except (SessionStartFailure, AudioCaptureFailure) as e:
            logger.error(f"Could not rotate to a new session: {e}")
            self._is_active = False
            self.scheduler.disarm()
            self.downtime_tracker.clear()
            self._notify(True, LABEL_RECORDING_NOT_AVAILABLE, reason=str(e))
    
    def _stop_capture(self, session: Session) -> None:
        if session.capture_handle is None:
            return
        handle, session.capture_handle = session.capture_handle, None
        try:
            self.audio_source.stop_capture(handle)
        except Exception as e:
            logger.warning(f"Stopping capture for session {session.session_id} failed: {e}")
    
    def _current_id(self) -> Optional[str]:
        return self._current.session_id if self._current else None
    
    def shutdown(self) -> None:
        """Stop recognition and cancel the timer; used on application exit."""
        self.stop()
        self.scheduler.disarm()
