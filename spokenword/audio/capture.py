"""Microphone capture that can be stopped and restarted every rotation."""

import pyaudio
import time
import logging
import itertools
from dataclasses import dataclass, field
from threading import Thread, Event, Lock
from typing import Optional, Callable
from datetime import datetime
import numpy as np

from ..errors import AudioCaptureFailure
from ..models.audio import AudioStats
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)

FrameCallback = Callable[[AudioEvent], None]


@dataclass
class CaptureHandle:
    """One running capture started by ``start_capture``."""
    capture_id: int
    on_frame: FrameCallback
    stream: Optional[pyaudio.Stream] = None
    thread: Optional[Thread] = None
    stop_event: Event = field(default_factory=Event)


class AudioCapture:
    """Continuous microphone capture delivering AudioEvents to a callback.
    
    The PyAudio instance is created once and reused, so stopping and
    restarting capture every rotation only opens and closes a stream.
    """
    
    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.
        
        Args:
            sample_rate: Audio sample rate (16kHz for speech recognition)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        
        self.current: Optional[CaptureHandle] = None
        self._ids = itertools.count(1)
        self._lock = Lock()
        
        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.capture_starts = 0
        self.peak_level = 0.0
        
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
    
    @property
    def is_recording(self) -> bool:
        return self.current is not None
    
    def start_capture(self, on_frame: FrameCallback) -> CaptureHandle:
        """Start delivering frames to ``on_frame`` from a background thread.
        
        Args:
            on_frame: Called with every captured AudioEvent
            
        Returns:
            Handle to pass to ``stop_capture``
            
        Raises:
            AudioCaptureFailure: if the input stream could not be opened
        """
        with self._lock:
            if self.current is not None:
                raise AudioCaptureFailure("Capture already running")
            
            handle = CaptureHandle(capture_id=next(self._ids), on_frame=on_frame)
            handle.stream = self.__open_audio_stream()
            
            handle.thread = Thread(target=self._record_continuously, args=(handle,), daemon=True)
            handle.thread.name = f"AudioCaptureThread-{handle.capture_id}"
            self.current = handle
            self.capture_starts += 1
            if self.start_time is None:
                self.start_time = datetime.now()
        
        handle.thread.start()
        logger.debug(f"Capture {handle.capture_id} started")
        return handle
    
    def stop_capture(self, handle: CaptureHandle) -> None:
        """Stop a capture started by ``start_capture``; stale handles are ignored."""
        with self._lock:
            if self.current is not handle:
                logger.debug(f"Capture {handle.capture_id} is not running")
                return
            self.current = None
        
        handle.stop_event.set()
        if handle.thread and handle.thread.is_alive():
            handle.thread.join(timeout=2.0)
            if handle.thread.is_alive():
                logger.warning(f"Capture thread {handle.capture_id} did not stop cleanly")
        logger.debug(f"Capture {handle.capture_id} stopped")
    
    def close(self) -> None:
        """Stop any running capture and release PyAudio."""
        if self.current is not None:
            self.stop_capture(self.current)
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
        
    def __open_audio_stream(self) -> pyaudio.Stream:
        try:
            if self.pyaudio_instance is None:
                self.pyaudio_instance = pyaudio.PyAudio()
            stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, IOError) as e:
            raise AudioCaptureFailure(f"Could not open audio input stream: {e}") from e
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream
    
    def _record_continuously(self, handle: CaptureHandle) -> None:
        """Internal method: read loop for one capture."""
        stream = handle.stream
        try:
            while not handle.stop_event.is_set():
                audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
                if handle.stop_event.is_set():
                    # Captured after stop: dropped, not delivered
                    break
                self.total_chunks += 1
                self.__update_peak_level(audio_chunk)
                handle.on_frame(AudioEvent(
                    chunk_id=f"chunk_{self.total_chunks}",
                    audio_data=audio_chunk,
                    timestamp=time.time(),
                    sequence_number=self.total_chunks,
                    sample_rate=self.sample_rate,
                    channels=self.channels
                ))
        except (OSError, IOError) as e:
            logger.error(f"Audio stream read failed in capture {handle.capture_id}: {e}")
        finally:
            stream.stop_stream()
            stream.close()
    
    def __update_peak_level(self, audio_chunk: bytes) -> None:
        samples = np.frombuffer(audio_chunk, dtype=np.int16)
        if samples.size:
            self.peak_level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
    
    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()
        
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            capture_starts=self.capture_starts,
            peak_level=self.peak_level,
        )
