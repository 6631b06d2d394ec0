"""Append-only transcript built from successive recognition sessions."""

import logging
import threading
from typing import List, Tuple

logger = logging.getLogger(__name__)


class TranscriptAccumulator:
    """Joins finalized fragments, in arrival order, into one logical transcript."""

    def __init__(self, delimiter: str = " "):
        """Initialize transcript accumulator.

        Args:
            delimiter: Separator placed between consecutive fragments
        """
        self.delimiter = delimiter
        self._fragments: List[str] = []
        self._lock = threading.Lock()

    def append(self, text: str) -> str:
        """Append a fragment verbatim.

        Args:
            text: Final text of one recognition session

        Returns:
            The full transcript after the append
        """
        with self._lock:
            self._fragments.append(text)
            full_text = self.delimiter.join(self._fragments)
        logger.debug(f"Appended fragment #{len(self)}: {text[:50]}")
        return full_text

    @property
    def text(self) -> str:
        with self._lock:
            return self.delimiter.join(self._fragments)

    @property
    def fragments(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._fragments)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fragments)
