"""
Exception types for the replay engine.
"""

from typing import Optional


class ReplayError(Exception):
    """Base class for replay failures."""
    pass


class ConfigError(ReplayError):
    """Raised when replay configuration is invalid."""
    pass


class SourceError(ReplayError):
    """Raised when the event source is unreachable or yields malformed records."""
    pass


class DestinationError(ReplayError):
    """Raised when the destination stream is unreachable or misconfigured."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class ThrottledError(DestinationError):
    """Raised when the destination signals rate limiting or quota exhaustion."""
    pass


class RecordFailedError(ReplayError):
    """Raised (via a send future) when a single record could not be written."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
