"""
Report writer for scan results.

Each run gets its own directory named after the run start time. Two
reports are written into it: a sorted text list of available domains and
a JSON array of every probe result.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError, PersistenceError
from .models import ProbeResult, ScanSnapshot


class ReportWriter:
    """
    Writes the final reports of a run.

    prepare() must succeed before scanning starts; write() is called once
    with the frozen snapshot after the scan completes.
    """

    AVAILABLE_FILE = "available_domains.txt"
    RESULTS_FILE = "scan_results.json"
    RUN_DIR_FORMAT = "%Y%m%d_%H%M%S"

    def __init__(self, base_dir: Path, started_at: Optional[datetime] = None) -> None:
        """
        Initialize the report writer.

        Args:
            base_dir: Directory holding one subdirectory per run
            started_at: Run start time used for the subdirectory name
        """
        self._base_dir = Path(base_dir)
        self._started_at = started_at or datetime.now()
        self._run_dir = self._base_dir / self._started_at.strftime(self.RUN_DIR_FORMAT)

    @property
    def run_dir(self) -> Path:
        return self._run_dir

    @property
    def available_path(self) -> Path:
        return self._run_dir / self.AVAILABLE_FILE

    @property
    def results_path(self) -> Path:
        return self._run_dir / self.RESULTS_FILE

    def prepare(self, started_at: Optional[datetime] = None) -> Path:
        """
        Create the run directory.

        Args:
            started_at: Run start time; renames the run directory after it

        Raises:
            ConfigurationError: If the directory cannot be created
        """
        if started_at is not None:
            self._started_at = started_at
            self._run_dir = self._base_dir / started_at.strftime(self.RUN_DIR_FORMAT)
        try:
            self._run_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                code="output_dir_unavailable",
                message=f"Failed to create output directory: {e}",
                details={"output_dir": str(self._run_dir)},
            )
        return self._run_dir

    def write(self, snapshot: ScanSnapshot, scanned_at: Optional[datetime] = None) -> list[Path]:
        """
        Write both reports for a snapshot.

        Args:
            snapshot: Frozen aggregator state
            scanned_at: Time shown in the text report header

        Returns:
            Paths of the written files

        Raises:
            PersistenceError: If a report cannot be written
        """
        scanned_at = scanned_at or datetime.now()

        lines = [
            "# Available domains",
            f"# Scan time: {scanned_at.strftime('%Y-%m-%d %H:%M:%S')}",
            "",
        ]
        lines.extend(sorted(snapshot.available))
        self._write_text(self.available_path, "\n".join(lines) + "\n")

        records = [result.to_dict() for result in snapshot.results]
        try:
            content = json.dumps(records, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(
                code="serialize_error",
                message=f"Failed to serialize results: {e}",
                details={"file_path": str(self.results_path)},
            )
        self._write_text(self.results_path, content + "\n")

        return [self.available_path, self.results_path]

    def _write_text(self, path: Path, content: str) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write report: {e}",
                details={"file_path": str(path)},
            )


def read_results(path: Path) -> list[ProbeResult]:
    """
    Load a scan_results.json file back into ProbeResults.

    Raises:
        PersistenceError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = json.load(f)
    except json.JSONDecodeError as e:
        raise PersistenceError(
            code="parse_error",
            message=f"Failed to parse results file: {e}",
            details={"file_path": str(path)},
        )
    except OSError as e:
        raise PersistenceError(
            code="io_error",
            message=f"Failed to read results file: {e}",
            details={"file_path": str(path)},
        )

    if not isinstance(raw_data, list):
        raise PersistenceError(
            code="parse_error",
            message="Results file does not contain a JSON array",
            details={"file_path": str(path)},
        )

    try:
        return [ProbeResult.from_dict(record) for record in raw_data]
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(
            code="parse_error",
            message=f"Invalid result record: {e}",
            details={"file_path": str(path)},
        )
