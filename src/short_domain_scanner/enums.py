"""
Enumeration types for the short domain scanner.

These enums provide type-safe constants for probe outcomes, diagnostic
error codes, and logging levels throughout the system.
"""

from enum import Enum


class ProbeStatus(Enum):
    """Availability status derived from a registry reply code."""

    AVAILABLE = "Available"
    REGISTERED = "Registered"
    RATE_LIMITED = "RateLimited"
    ERROR = "Error"

    @classmethod
    def from_reply_code(cls, code: int) -> "ProbeStatus":
        """Map a reply code to a status. Unknown codes map to ERROR."""
        return REPLY_CODE_STATUS.get(code, cls.ERROR)


# Single source of truth for reply code classification.
REPLY_CODE_STATUS: dict[int, ProbeStatus] = {
    1: ProbeStatus.AVAILABLE,
    0: ProbeStatus.REGISTERED,
    -95: ProbeStatus.RATE_LIMITED,
}

# Reply code used when the registry answer could not be obtained or parsed.
SENTINEL_REPLY_CODE = -99


class ProbeErrorCode(Enum):
    """Diagnostic category for probes that ended with status ERROR."""

    CONNECTION_REFUSED = "connection_refused"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN_CODE = "unknown_code"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
