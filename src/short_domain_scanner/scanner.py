"""
Scan orchestrator for the short domain scanner.

This module wires the components of a run together:
- Candidate generation for the configured scan mode
- Bounded, paced probe dispatch
- Result aggregation through a single collecting task
- Report persistence once every probe has finished

Only setup and teardown failures end a run early: an unusable output
directory raises ConfigurationError before any probe is sent, and a
report that cannot be written raises PersistenceError after the scan.
"""

import itertools
import time
from datetime import datetime
from typing import Iterable, Iterator, Optional

from .audit_logger import AuditLogger
from .candidate_generator import CandidateGenerator, CandidateSequence
from .config import SystemConfig
from .controller import ConcurrencyController
from .enums import LogLevel, ProbeStatus
from .models import ScanSnapshot, ScanSummary
from .probe_client import ProbeClient
from .report_writer import ReportWriter
from .result_aggregator import ResultAggregator, ResultListener


class ShortDomainScanner:
    """
    Runs one scan of the short-label space of a registry.

    Usage:
        async with ShortDomainScanner(config) as scanner:
            summary = await scanner.run()
    """

    async def __aenter__(self) -> "ShortDomainScanner":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    def __init__(
        self,
        config: SystemConfig,
        logger: Optional[AuditLogger] = None,
        probe_client: Optional[ProbeClient] = None,
        report_writer: Optional[ReportWriter] = None,
        generator: Optional[CandidateGenerator] = None,
    ) -> None:
        """
        Initialize the scanner.

        Args:
            config: System configuration (validated here)
            logger: Optional audit logger
            probe_client: Client to use instead of one built from config
            report_writer: Writer to use instead of one built from config
            generator: Candidate generator to use instead of the default

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate()
        self._config = config
        self._logger = logger

        self._aggregator = ResultAggregator(logger=logger)
        self._probe_client = probe_client or ProbeClient.from_config(
            config.registry,
            simulation_mode=config.simulation_mode,
            logger=logger,
        )
        self._probe_client.set_available_sink(self._aggregator.mark_available)

        self._controller = ConcurrencyController(
            workers=config.scan.workers,
            delay_seconds=config.scan.delay_seconds,
            logger=logger,
        )
        self._generator = generator or CandidateGenerator()
        self._report_writer = report_writer or ReportWriter(config.scan.output_dir)

    def build_plan(self) -> list[CandidateSequence]:
        """Candidate sequences for the configured mode, in dispatch order."""
        return self._generator.build_scan_plan(
            full_scan=self._config.scan.full_scan,
            letters_only=self._config.scan.letters_only,
        )

    def candidates(self) -> Iterator[str]:
        """All candidates of the configured plan as one lazy stream."""
        return itertools.chain.from_iterable(self.build_plan())

    async def run(self, candidates: Optional[Iterable[str]] = None) -> ScanSummary:
        """
        Probe every candidate and persist the results.

        Args:
            candidates: Labels to probe instead of the configured plan

        Returns:
            ScanSummary with per-status counts and report locations

        Raises:
            ConfigurationError: If the output directory cannot be created
            PersistenceError: If the reports cannot be written
        """
        started_at = datetime.now()
        start_time = time.perf_counter()

        run_dir = self._report_writer.prepare(started_at)

        if candidates is None:
            plan = self.build_plan()
            total = sum(len(sequence) for sequence in plan)
            stream: Iterable[str] = itertools.chain.from_iterable(plan)
        else:
            stream = list(candidates)
            total = len(stream)

        self._log_info(
            f"Starting scan of {total} candidate(s)",
            {
                "total": total,
                "workers": self._config.scan.workers,
                "delay_seconds": self._config.scan.delay_seconds,
                "endpoint": self._probe_client.endpoint,
                "simulation_mode": self._probe_client.simulation_mode,
                "output_dir": str(run_dir),
            },
        )

        async with self._aggregator:
            dispatched = await self._controller.run(
                stream,
                self._probe_client.probe,
                self._aggregator.submit,
                self._probe_client.failure_result,
            )

        snapshot = self._aggregator.snapshot()
        report_files = self._report_writer.write(snapshot, scanned_at=started_at)

        summary = ScanSummary(
            started_at=started_at.astimezone().isoformat(),
            finished_at=datetime.now().astimezone().isoformat(),
            total_candidates=total,
            dispatched=dispatched,
            counts=snapshot.counts(),
            available_domains=len(snapshot.available),
            max_in_flight=self._controller.max_in_flight,
            duration_seconds=time.perf_counter() - start_time,
            cancelled=self._controller.cancelled,
            output_dir=run_dir,
            report_files=report_files,
        )

        self._log_info(
            "Scan complete",
            {
                "dispatched": dispatched,
                "available": summary.available_domains,
                "counts": {status.value: count for status, count in summary.counts.items()},
                "cancelled": summary.cancelled,
            },
        )
        if summary.counts[ProbeStatus.RATE_LIMITED]:
            self._log(
                LogLevel.WARN,
                f"{summary.counts[ProbeStatus.RATE_LIMITED]} probe(s) were rate limited; "
                "consider raising the delay",
                {"delay_seconds": self._config.scan.delay_seconds},
            )

        return summary

    def cancel(self) -> None:
        """Stop dispatching new probes; the run still writes its reports."""
        self._controller.cancel()

    def add_result_listener(self, listener: ResultListener) -> None:
        self._aggregator.add_listener(listener)

    def snapshot(self) -> ScanSnapshot:
        return self._aggregator.snapshot()

    @property
    def config(self) -> SystemConfig:
        return self._config

    @property
    def aggregator(self) -> ResultAggregator:
        return self._aggregator

    @property
    def controller(self) -> ConcurrencyController:
        return self._controller

    @property
    def report_writer(self) -> ReportWriter:
        return self._report_writer

    def _log_info(self, message: str, data: dict) -> None:
        self._log(LogLevel.INFO, message, data)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "ShortDomainScanner", message, data)
