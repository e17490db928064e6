"""
Data models for the short domain scanner.

This module defines the immutable probe result record, the frozen
snapshot handed to persistence, and the run summary.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .enums import ProbeErrorCode, ProbeStatus


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single registry probe."""

    domain: str  # Candidate with TLD suffix, e.g. 'ab.li'
    status: ProbeStatus
    reply_code: int
    message: str
    timestamp: str  # ISO-8601, UTC
    error_code: Optional[ProbeErrorCode] = None

    def to_dict(self) -> dict:
        """Serialize to the persisted record layout."""
        return {
            "domain": self.domain,
            "status": self.status.value,
            "replyCode": self.reply_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "errorCode": self.error_code.value if self.error_code else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProbeResult":
        """Rebuild a result from its persisted record layout."""
        error_code = data.get("errorCode")
        return cls(
            domain=data["domain"],
            status=ProbeStatus(data["status"]),
            reply_code=int(data["replyCode"]),
            message=data.get("message", ""),
            timestamp=data["timestamp"],
            error_code=ProbeErrorCode(error_code) if error_code else None,
        )


@dataclass(frozen=True)
class ScanSnapshot:
    """Frozen view of the aggregated state at the end of a run."""

    available: tuple[str, ...]
    results: tuple[ProbeResult, ...]

    def count(self, status: ProbeStatus) -> int:
        """Number of results with the given status."""
        return sum(1 for result in self.results if result.status == status)

    def counts(self) -> dict[ProbeStatus, int]:
        """Result counts for every status, zeros included."""
        totals = {status: 0 for status in ProbeStatus}
        for result in self.results:
            totals[result.status] += 1
        return totals


@dataclass
class ScanSummary:
    """Summary of a completed (or cancelled) run."""

    started_at: str
    finished_at: str
    total_candidates: int
    dispatched: int
    counts: dict[ProbeStatus, int]
    available_domains: int
    max_in_flight: int
    duration_seconds: float
    cancelled: bool = False
    output_dir: Optional[Path] = None
    report_files: list[Path] = field(default_factory=list)
