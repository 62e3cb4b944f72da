"""Exception types raised by the synchronization engine.

Only ConfigurationError is meant to escape a feature controller; the other
two are caught at the field/step boundary and turned into log lines.
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    "WavepanelError",
    "ParseError",
    "DeviceCommunicationError",
    "ConfigurationError",
]


class WavepanelError(Exception):
    """Base exception for wavepanel."""


class ParseError(WavepanelError, ValueError):
    """User-entered text could not be read as a number."""

    def __init__(self, message: str, text: Optional[str] = None) -> None:
        super().__init__(message)
        self.text = text


class DeviceCommunicationError(WavepanelError):
    """A command or query could not be delivered to the instrument."""

    def __init__(self, message: str, visa_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.visa_error = visa_error


class ConfigurationError(WavepanelError):
    """Invalid static configuration (unknown unit, malformed template)."""
