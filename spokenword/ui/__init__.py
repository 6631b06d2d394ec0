"""Terminal presentation for SpokenWord."""

from .console import ConsoleUI

__all__ = ["ConsoleUI"]
