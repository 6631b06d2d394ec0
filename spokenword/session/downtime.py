"""Measurement of the listening gap incurred at every session rotation."""

import time
import logging
from typing import Callable, Optional

from ..models.events import DowntimeSample

logger = logging.getLogger(__name__)


def log_downtime_sample(sample: DowntimeSample) -> None:
    """Default observability sink: write the sample to the log."""
    logger.info(f"Time lost between recognition sessions: {sample.duration_seconds:.3f} seconds")


class DowntimeTracker:
    """Pairs a stop timestamp with the next start timestamp and reports the gap.

    Samples are handed to the sink immediately and not retained.
    """

    def __init__(self,
                 sink: Optional[Callable[[DowntimeSample], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize downtime tracker.

        Args:
            sink: Receives each DowntimeSample; defaults to logging it
            clock: Monotonic time source in seconds
        """
        self.sink = sink or log_downtime_sample
        self.clock = clock
        self._stopped_at: Optional[float] = None
        self.samples_reported = 0

    @property
    def has_pending_stop(self) -> bool:
        return self._stopped_at is not None

    def mark_stopped_listening(self) -> float:
        """Record the moment the current session stopped listening."""
        self._stopped_at = self.clock()
        return self._stopped_at

    def mark_started_listening(self) -> Optional[DowntimeSample]:
        """Record the moment a session started listening and report the gap.

        Returns:
            The reported sample, or None when no stop was pending (first session)
        """
        started_at = self.clock()
        stopped_at = self._stopped_at
        if stopped_at is None:
            return None
        self._stopped_at = None

        elapsed = max(0.0, started_at - stopped_at)
        sample = DowntimeSample(
            stopped_at=stopped_at,
            restarted_at=started_at,
            duration_seconds=round(elapsed, 3)
        )
        self.samples_reported += 1

        try:
            self.sink(sample)
        except Exception as e:
            logger.error(f"Downtime sink failed: {e}")
        return sample

    def clear(self) -> None:
        """Forget a pending stop so a later manual start reports nothing."""
        if self._stopped_at is not None:
            logger.debug("Discarding pending downtime measurement")
        self._stopped_at = None
