"""
Exception classes for the short domain scanner.

All exceptions inherit from ScannerError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class ScannerError(Exception):
    """Base exception for all scanner errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ScannerError):
    """Raised when the configuration is invalid or the output location is unusable."""

    pass


class NetworkError(ScannerError):
    """Raised when a connection to the registry endpoint fails."""

    pass


class ProtocolError(ScannerError):
    """Raised when the registry reply cannot be interpreted."""

    pass


class ProbeTimeoutError(NetworkError):
    """Raised when a probe exceeds its deadline."""

    pass


class PersistenceError(ScannerError):
    """Raised when the final reports cannot be written or read."""

    pass
