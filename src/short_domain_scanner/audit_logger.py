"""
Run log for the short domain scanner.

Entries are written to a stream as JSON lines, text lines, or both. Only a
bounded window of recent entries is kept in memory, so a full scan with
one debug entry per probe does not grow the process.
"""

import json
import sys
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, TextIO

from .enums import LogLevel


# Entries kept in memory by default; older ones are discarded first
DEFAULT_RETAINED_ENTRIES = 1000

_SEVERITY = {level: rank for rank, level in enumerate(LogLevel)}


@dataclass
class LogEntry:
    """One emitted log line."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def as_json(self) -> str:
        return json.dumps(
            {
                "timestamp": self.timestamp,
                "level": self.level.value,
                "component": self.component,
                "message": self.message,
                "data": self.data,
            },
            ensure_ascii=False,
            default=str,
        )

    def as_text(self) -> str:
        # [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}
        line = f"[{self.timestamp}] {self.level.value.upper()} [{self.component}] {self.message}"
        if self.data:
            line += " " + json.dumps(self.data, ensure_ascii=False, default=str)
        return line


_RENDERERS = {
    "json": (LogEntry.as_json,),
    "text": (LogEntry.as_text,),
    "both": (LogEntry.as_json, LogEntry.as_text),
}


class AuditLogger:
    """
    Structured logger shared by the scanner components.

    Args:
        output_format: 'json', 'text' or 'both'
        output_stream: Destination stream (defaults to sys.stderr)
        level: Minimum level that is emitted
        retain: How many recent entries to keep in memory
    """

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        retain: int = DEFAULT_RETAINED_ENTRIES,
    ):
        if output_format not in _RENDERERS:
            raise ValueError(f"Invalid output_format: {output_format}")
        if retain < 0:
            raise ValueError(f"retain must be non-negative, got {retain}")

        self._output_format = output_format
        self._renderers = _RENDERERS[output_format]
        self._stream = output_stream or sys.stderr
        self._level = level
        self._recent: deque = deque(maxlen=retain)

    @classmethod
    def from_config(cls, output_format: str, level: str) -> "AuditLogger":
        return cls(output_format=output_format, level=LogLevel(level))

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def retain(self) -> int:
        return self._recent.maxlen

    @property
    def entries(self) -> list[LogEntry]:
        """Most recent emitted entries, oldest first."""
        return list(self._recent)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return _SEVERITY[level] >= _SEVERITY[self._level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit an entry.

        Returns:
            The entry, or None if its level is below the minimum
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=dict(data or {}),
        )
        self._recent.append(entry)

        for render in self._renderers:
            self._stream.write(render(entry) + "\n")
        self._stream.flush()
        return entry

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[Exception] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """Emit an ERROR entry carrying the type, text and code of an exception."""
        data = dict(additional_data or {})
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = str(error)
            code = getattr(error, "code", None)
            if code is not None:
                data["error_code"] = code
        return self.log(LogLevel.ERROR, component, message, data)

    def clear_entries(self) -> None:
        self._recent.clear()
