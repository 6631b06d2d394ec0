"""Google Speech-to-Text streaming recognition service."""

import queue
import uuid
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .base import AbstractRecognitionService, ResultCallback, SessionHandle
from ..errors import SessionRuntimeFailure, SessionStartFailure
from ..models.transcription import RecognitionResult

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


@dataclass
class _StreamingSession:
    """Bookkeeping for one streaming_recognize call."""
    handle: SessionHandle
    on_result: ResultCallback
    audio_queue: "queue.Queue[Optional[bytes]]" = field(default_factory=queue.Queue)
    input_ended: bool = False
    final_transcripts: List[str] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)
    frames_fed: int = 0


class GoogleStreamingRecognitionService(AbstractRecognitionService):
    """Google Speech-to-Text streaming API, one stream per recognition session.

    Streams are capped by the service, so each one is expected to be ended by
    the caller well before the limit. Partial results are disabled; every
    final segment of a stream is joined into the session's terminal result.
    """
    
    def __init__(self, 
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 enable_automatic_punctuation: bool = True,
                 model: str = "latest_long"):
        """Initialize Google streaming service.
        
        Args:
            credentials_path: Path to Google Cloud service account JSON file;
                              None uses application default credentials
            sample_rate: Sample rate of the fed LINEAR16 audio in Hz
            language: Language code (e.g., 'en-US', 'es-ES')  
            enable_automatic_punctuation: Enable automatic punctuation
            model: Recognition model name
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.model = model
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        
        self.sessions: Dict[str, _StreamingSession] = {}
        self.lock = threading.Lock()
        
        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=self.language,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
                model=self.model,
            ),
            interim_results=False,
            single_utterance=False,
        )
        
    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        if self.credentials_path:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
            self.project_id = credentials.project_id
            logger.info(f"Using Google Cloud project: {self.project_id}")
        else:
            logger.info("Using application default credentials for Google Speech")
            self.client = speech.SpeechClient()
        
        logger.info("Google streaming recognition service initialized successfully")
        return True
    
    def begin_session(self, on_result: ResultCallback) -> SessionHandle:
        """Open a streaming_recognize call on a background thread."""
        if self.client is None:
            raise SessionStartFailure("Google Speech client is not initialized")
        
        handle = SessionHandle(session_id=f"gstt_{uuid.uuid4().hex[:8]}")
        session = _StreamingSession(handle=handle, on_result=on_result)
        thread = threading.Thread(target=self._run_session, args=(session,), daemon=True)
        thread.name = f"RecognitionSession-{handle.session_id}"
        
        with self.lock:
            self.sessions[handle.session_id] = session
        try:
            thread.start()
        except RuntimeError as e:
            with self.lock:
                self.sessions.pop(handle.session_id, None)
            raise SessionStartFailure(f"Could not start recognition stream: {e}", handle.session_id) from e
        
        logger.debug(f"Opened streaming session {handle.session_id}")
        return handle
    
    def feed(self, handle: SessionHandle, frame: bytes) -> None:
        session = self._get_session(handle)
        if session is None or session.input_ended:
            logger.debug(f"Dropping frame for closed session {handle.session_id}")
            return
        session.frames_fed += 1
        session.audio_queue.put(frame)
    
    def end_input(self, handle: SessionHandle) -> None:
        session = self._get_session(handle)
        if session is None or session.input_ended:
            return
        session.input_ended = True
        session.audio_queue.put(None)
        logger.debug(f"End of input for session {handle.session_id} after {session.frames_fed} frames")
    
    def cleanup(self) -> None:
        """End input on every open stream."""
        with self.lock:
            open_sessions = list(self.sessions.values())
        for session in open_sessions:
            self.end_input(session.handle)
    
    def _get_session(self, handle: SessionHandle) -> Optional[_StreamingSession]:
        with self.lock:
            return self.sessions.get(handle.session_id)
    
    def _request_stream(self, session: _StreamingSession) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            chunk = session.audio_queue.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)
    
    def _run_session(self, session: _StreamingSession) -> None:
        """Internal method: drive one stream and deliver exactly one terminal result."""
        session_id = session.handle.session_id
        error: Optional[Exception] = None
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._request_stream(session)
            )
            for response in responses:
                self._collect_results(session, response)
        except gax_exceptions.GoogleAPICallError as e:
            # Includes the audio timeout raised after long silence
            error = SessionRuntimeFailure(f"Google streaming recognition error: {e}", session_id)
        except Exception as e:
            error = SessionRuntimeFailure(f"Unexpected streaming recognition error: {e}", session_id)
        finally:
            with self.lock:
                self.sessions.pop(session_id, None)
            session.input_ended = True
        
        text = " ".join(t for t in session.final_transcripts if t)
        confidence = None
        if session.confidences:
            confidence = sum(session.confidences) / len(session.confidences)
        result = RecognitionResult(
            text=text,
            is_final=error is None,
            error=error,
            session_id=session_id,
            confidence=confidence
        )
        
        try:
            session.on_result(result)
        except Exception as e:
            logger.error(f"Result callback failed for session {session_id}: {e}")
    
    def _collect_results(self, session: _StreamingSession, response: speech.StreamingRecognizeResponse) -> None:
        for recognition_result in response.results:
            if not recognition_result.alternatives:
                continue
            alternative = recognition_result.alternatives[0]
            if recognition_result.is_final:
                logger.debug(f"Final segment for {session.handle.session_id}: "
                             f"'{alternative.transcript}' (conf={alternative.confidence:.2f})")
                session.final_transcripts.append(alternative.transcript.strip())
                session.confidences.append(alternative.confidence)
            else:
                session.on_result(RecognitionResult(
                    text=alternative.transcript,
                    is_final=False,
                    session_id=session.handle.session_id
                ))
