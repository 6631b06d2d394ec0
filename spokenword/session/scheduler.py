"""One-shot rotation timer used to force recognition sessions to end in time."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RotationScheduler:
    """Re-armable one-shot timer.

    ``arm`` schedules a callback after ``duration`` seconds, replacing any
    pending one. A callback fires at most once per ``arm`` and never after
    ``disarm``. Re-arming after a fire or a disarm is always legal.
    """

    def __init__(self, timer_factory: Callable[..., threading.Timer] = threading.Timer):
        """Initialize scheduler.

        Args:
            timer_factory: Callable with the ``threading.Timer`` signature
        """
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()
        self.fire_count = 0

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self, duration: float, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` to run once after ``duration`` seconds.

        Args:
            duration: Delay in seconds, must be positive
            callback: Zero-argument callable run on the timer thread
        """
        if duration <= 0:
            raise ValueError(f"Rotation duration must be positive, got {duration}")

        with self._lock:
            self._cancel_locked()
            self._generation += 1
            timer = self._timer_factory(duration, self._fire, args=(self._generation, callback))
            timer.daemon = True
            timer.name = f"RotationTimer-{self._generation}"
            self._timer = timer
            timer.start()
        logger.debug(f"Rotation timer armed for {duration:.1f}s")

    def disarm(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a pending callback was cancelled, False if nothing was armed
        """
        with self._lock:
            cancelled = self._cancel_locked()
        if cancelled:
            logger.debug("Rotation timer disarmed")
        return cancelled

    def _cancel_locked(self) -> bool:
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        # Invalidates a fire that already left Timer.cancel's reach
        self._generation += 1
        return True

    def _fire(self, generation: int, callback: Callable[[], None]) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                logger.debug(f"Ignoring stale rotation timer (generation {generation})")
                return
            self._timer = None
            self.fire_count += 1

        # Run outside the lock so the callback may re-arm
        callback()
