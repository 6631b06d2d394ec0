"""Failure kinds raised by the recognition and capture collaborators."""

from typing import Optional


class SpokenWordError(Exception):
    """Base class for all SpokenWord failures."""

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


class SessionStartFailure(SpokenWordError):
    """The recognition service could not be engaged.

    Shown to the user as "not available"; never retried automatically.
    """


class SessionRuntimeFailure(SpokenWordError):
    """A failure delivered through the result callback mid-session.

    Includes no-speech and silence timeouts. Ends the session like a final
    result and is only logged.
    """


class AudioCaptureFailure(SpokenWordError):
    """The capture subsystem could not start or restart."""
