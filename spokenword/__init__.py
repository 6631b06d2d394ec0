"""SpokenWord - persistent live transcription over time-boxed recognition sessions."""

__version__ = "0.1.0"
