"""Main application entry point for SpokenWord."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from spokenword.audio.capture import AudioCapture
from spokenword.models.audio import AudioStats
from spokenword.recognition.google_backend import GoogleStreamingRecognitionService
from spokenword.session.controller import SessionController
from spokenword.session.notifier import ControllerNotifier
from spokenword.session.transcript import TranscriptAccumulator
from spokenword.ui.console import ConsoleUI

from .config import SpokenWordConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], rotation_interval: Optional[float] = None):
        self.config = SpokenWordConfig(config_path)
        if rotation_interval is not None:
            self.config.set('rotation.interval_seconds', rotation_interval)
        log_level = self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)
        self.should_exit = False
        self.cleaned_up = False

    def init(self):
        logger.info("Initializing services...")
        
        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        rotation_interval = self.config.get_rotation_interval()
        
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")
        logger.info(f"Rotation interval: {rotation_interval}s")
        
        self.recognition_service = GoogleStreamingRecognitionService(
            credentials_path=self.config.get_credentials_path(),
            sample_rate=sample_rate,
            language=self.config.get('recognition.language', 'en-US'),
            enable_automatic_punctuation=self.config.get('recognition.enable_automatic_punctuation', True),
            model=self.config.get('recognition.model', 'latest_long')
        )
        if not self.recognition_service.initialize():
            raise RuntimeError("Google streaming recognition failed to initialize")
        
        self.audio_capture = AudioCapture(
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels
        )
        self.notifier = ControllerNotifier()
        self.ui = ConsoleUI(self.notifier)
        self.controller = SessionController(
            recognition_service=self.recognition_service,
            audio_source=self.audio_capture,
            rotation_interval=rotation_interval,
            transcript=TranscriptAccumulator(self.config.get_transcript_delimiter()),
            notifier=self.notifier
        )

    def run(self, duration: int):
        """Record for ``duration`` seconds, then stop and wait for the last session."""
        try:
            result = self.controller.start()
            if not result["success"]:
                logger.error(f"Could not start recording: {result['error']}")
                return
            time.sleep(duration)
            self.controller.stop()
            if not self.ui.wait_until_inactive(timeout=10.0):
                logger.warning("Last recognition session did not finish in time")
        finally:
            self.cleanup()

    def run_interactive(self):
        """Toggle recording on Enter, quit on 'q'."""
        self.ui.console.print("Press Enter to start/stop recording, 'q' + Enter to quit", style="bold blue")
        try:
            while not self.should_exit:
                line = sys.stdin.readline()
                if not line or line.strip().lower() == 'q':
                    self.should_exit = True
                elif self.controller.is_active:
                    self.controller.stop()
                else:
                    result = self.controller.start()
                    if not result["success"]:
                        self.ui.console.print(f"Cannot start: {result['error']}", style="bold red")
        finally:
            self.controller.stop()
            self.ui.wait_until_inactive(timeout=10.0)
            self.cleanup()

    def cleanup(self):
        if self.cleaned_up or not hasattr(self, 'controller'):
            return
        self.cleaned_up = True
        self.controller.shutdown()
        self.report_capture_stats()
        self.audio_capture.close()
        self.recognition_service.cleanup()
        self.ui.print_transcript()
        self.ui.close()

    def report_capture_stats(self) -> AudioStats:
        """Show how often capture restarted and how loud the input got."""
        stats = self.audio_capture.get_recording_stats()
        logger.info(f"Audio capture: {stats.total_chunks} chunks, {stats.capture_starts} capture starts, "
                    f"peak level {stats.peak_level:.2f}, "
                    f"{self.controller.frames_dropped} frames dropped")
        self.ui.console.print(f"Audio: {stats.total_chunks} chunks over {stats.capture_starts} capture starts, "
                              f"peak level {stats.peak_level:.2f}", style="dim")
        return stats


def setup_logging(config, level: str = "INFO") -> None:

    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/spokenword.log')
    console_output = config.get('logging.console_output', True)
    
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    
    handlers = []
    
    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)
    
    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)
    
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)
    
    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("SpokenWord application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for SpokenWord application."""
    parser = argparse.ArgumentParser(
        description="SpokenWord - persistent live transcription",
        epilog="Interactive mode: Enter=Start/Stop recording, q=Quit"
    )
    
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Run in automatic mode: start recording, record for specified duration, then stop and exit"
    )
    
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Duration in seconds for auto mode recording (default: 60)"
    )
    
    parser.add_argument(
        "--rotation-interval",
        type=float,
        help="Seconds between recognition session rotations (overrides config)"
    )
    
    parser.add_argument(
        "--version",
        action="version",
        version="SpokenWord v0.1.0"
    )
    
    args = parser.parse_args()

    server = Server(args.config, args.rotation_interval)
    if args.log_level:
        logging.getLogger().setLevel(getattr(logging, args.log_level))
    try:
        server.init()
        if args.auto:
            server.run(args.duration)
        else:
            server.run_interactive()
    except KeyboardInterrupt:
        server.cleanup()
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
