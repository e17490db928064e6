"""
Result aggregation for a scan run.

Collects every ProbeResult into an append-only log and keeps the set of
domains found available. During a run, producers hand results to a queue
that a single collecting task drains, so the log and the set are only
ever written from one place.
"""

import asyncio
from typing import Callable, Optional, Union

from .audit_logger import AuditLogger
from .enums import LogLevel, ProbeStatus
from .models import ProbeResult, ScanSnapshot


ResultListener = Callable[[ProbeResult], None]

_STOP = object()


class ResultAggregator:
    """
    Ordered result log plus deduplicated available-domain set.

    Usage:
        async with ResultAggregator() as aggregator:
            aggregator.submit(result)      # from any probe task
        snapshot = aggregator.snapshot()

    Outside of the context manager, submit() records synchronously.
    """

    def __init__(self, logger: Optional[AuditLogger] = None) -> None:
        self._logger = logger
        self._results: list[ProbeResult] = []
        self._available: set[str] = set()
        self._listeners: list[ResultListener] = []
        self._queue: Optional[asyncio.Queue] = None
        self._collector: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "ResultAggregator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Start the collecting task."""
        if self._collector is not None:
            return
        self._queue = asyncio.Queue()
        self._collector = asyncio.create_task(self._collect())

    async def close(self) -> None:
        """Drain everything submitted so far and stop the collecting task."""
        if self._collector is None:
            return
        self._queue.put_nowait(_STOP)
        try:
            await self._collector
        finally:
            self._collector = None
            self._queue = None

    @property
    def collecting(self) -> bool:
        return self._collector is not None

    def submit(self, result: ProbeResult) -> None:
        """Hand a result to the collector (or record it directly when not collecting)."""
        if self._queue is not None:
            self._queue.put_nowait(result)
        else:
            self.record(result)

    def mark_available(self, domain: str) -> None:
        """Register a domain as available. Repeated calls have no further effect."""
        if self._queue is not None:
            self._queue.put_nowait(domain)
        else:
            self._available.add(domain)

    def record(self, result: ProbeResult) -> None:
        """
        Append a result to the log and, if available, add its domain to the set.

        Only the collecting task calls this while a run is in progress.
        """
        self._results.append(result)
        if result.status == ProbeStatus.AVAILABLE:
            self._available.add(result.domain)

        for listener in self._listeners:
            try:
                listener(result)
            except Exception as e:
                # Listener failures never stop collection
                if self._logger:
                    self._logger.log_error(
                        "ResultAggregator",
                        "Result listener failed",
                        error=e,
                        additional_data={"domain": result.domain},
                    )

    def add_listener(self, listener: ResultListener) -> None:
        """
        Call listener with every recorded result, after it is recorded.

        Exceptions raised by a listener are logged and do not affect
        other listeners or the result log.
        """
        self._listeners.append(listener)

    async def _collect(self) -> None:
        while True:
            item: Union[ProbeResult, str, object] = await self._queue.get()
            if item is _STOP:
                break
            if isinstance(item, ProbeResult):
                self.record(item)
            else:
                self._available.add(item)

        self._log(
            LogLevel.DEBUG,
            "Collector drained",
            {"results": len(self._results), "available": len(self._available)},
        )

    def snapshot(self) -> ScanSnapshot:
        """Frozen copy of the current state: sorted available domains and the log."""
        return ScanSnapshot(
            available=tuple(sorted(self._available)),
            results=tuple(self._results),
        )

    def counts(self) -> dict[ProbeStatus, int]:
        totals = {status: 0 for status in ProbeStatus}
        for result in self._results:
            totals[result.status] += 1
        return totals

    @property
    def result_count(self) -> int:
        return len(self._results)

    @property
    def available_count(self) -> int:
        return len(self._available)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "ResultAggregator", message, data)
