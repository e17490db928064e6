"""
Concurrency controller for probe dispatch.

This module provides bounded, paced dispatch of probes:
- At most `workers` probes are in flight at any time (asyncio.Semaphore)
- A fixed delay separates successive dispatches, whatever the in-flight state
- Cancellation is cooperative and only checked between dispatches
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional

from .audit_logger import AuditLogger
from .enums import LogLevel, ProbeErrorCode, ProbeStatus, SENTINEL_REPLY_CODE
from .models import ProbeResult


ProbeFunc = Callable[[str], Awaitable[ProbeResult]]
ResultCallback = Callable[[ProbeResult], None]
FailureFunc = Callable[[str, Exception], ProbeResult]


class ConcurrencyController:
    """
    Dispatches one task per candidate under a concurrency cap and a
    submission delay.

    The dispatch loop is sequential: it waits for a free slot, starts the
    probe as its own task, then sleeps `delay_seconds` before the next
    candidate. The delay bounds how fast probes start; the cap bounds how
    many run at once.
    """

    def __init__(
        self,
        workers: int,
        delay_seconds: float,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            workers: Maximum number of simultaneous probes
            delay_seconds: Pause after every dispatch
            logger: Optional audit logger
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be non-negative, got {delay_seconds}")

        self._workers = workers
        self._delay_seconds = delay_seconds
        self._logger = logger
        self._cancel_requested = False
        self._in_flight = 0
        self._max_in_flight = 0
        self._dispatched = 0
        self._completed = 0

    async def run(
        self,
        candidates: Iterable[str],
        probe: ProbeFunc,
        on_result: ResultCallback,
        on_failure: Optional[FailureFunc] = None,
    ) -> int:
        """
        Probe every candidate and wait for all of them to finish.

        Args:
            candidates: Labels in dispatch order
            probe: Coroutine function producing a ProbeResult for a label
            on_result: Called with each result as its probe completes
            on_failure: Builds the ERROR result for a probe that raised;
                defaults to one keyed by the bare candidate

        Returns:
            Number of probes dispatched
        """
        on_failure = on_failure or _failure_result
        semaphore = asyncio.Semaphore(self._workers)
        pending: set[asyncio.Task] = set()

        for candidate in candidates:
            if self._cancel_requested:
                break

            await semaphore.acquire()
            if self._cancel_requested:
                semaphore.release()
                break

            task = asyncio.create_task(
                self._run_probe(candidate, probe, on_result, on_failure, semaphore)
            )
            pending.add(task)
            task.add_done_callback(pending.discard)
            self._dispatched += 1

            await asyncio.sleep(self._delay_seconds)

        if self._cancel_requested:
            self._log(
                LogLevel.WARN,
                "Dispatch stopped by cancellation, waiting for in-flight probes",
                {"dispatched": self._dispatched, "in_flight": self._in_flight},
            )

        if pending:
            await asyncio.gather(*pending)

        self._log(
            LogLevel.INFO,
            f"Dispatch complete: {self._dispatched} probe(s)",
            {"dispatched": self._dispatched, "max_in_flight": self._max_in_flight},
        )
        return self._dispatched

    async def _run_probe(
        self,
        candidate: str,
        probe: ProbeFunc,
        on_result: ResultCallback,
        on_failure: FailureFunc,
        semaphore: asyncio.Semaphore,
    ) -> None:
        self._in_flight += 1
        self._max_in_flight = max(self._max_in_flight, self._in_flight)
        try:
            result = await probe(candidate)
        except Exception as e:
            if self._logger:
                self._logger.log_error(
                    "ConcurrencyController",
                    f"Probe raised for candidate {candidate!r}, recording an error result",
                    error=e,
                )
            result = on_failure(candidate, e)
        finally:
            self._in_flight -= 1
            semaphore.release()

        self._completed += 1
        on_result(result)

    def cancel(self) -> None:
        """Stop dispatching new probes. In-flight probes still complete."""
        self._cancel_requested = True

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    @property
    def in_flight(self) -> int:
        """Probes currently running."""
        return self._in_flight

    @property
    def max_in_flight(self) -> int:
        """Highest number of simultaneous probes observed."""
        return self._max_in_flight

    @property
    def dispatched(self) -> int:
        return self._dispatched

    @property
    def completed(self) -> int:
        return self._completed

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "ConcurrencyController", message, data)


def _failure_result(candidate: str, error: Exception) -> ProbeResult:
    return ProbeResult(
        domain=candidate,
        status=ProbeStatus.ERROR,
        reply_code=SENTINEL_REPLY_CODE,
        message=f"Unexpected {type(error).__name__}: {error}",
        timestamp=datetime.now(timezone.utc).isoformat(),
        error_code=ProbeErrorCode.NETWORK_ERROR,
    )
