"""Cancellable fixed-interval polling for in-flight enrichments."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from gourmet.models.status import EnrichmentStatus
from gourmet.services.enrichment.poller import StatusReport, SweepSummary, TaskStatusPoller

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class CancellationToken:
    """Thread-safe flag a caller sets to stop a polling loop between checks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; True when cancelled meanwhile."""
        return self._event.wait(timeout)


def poll(
    step: Callable[[], _T],
    *,
    until: Callable[[_T], bool],
    interval_seconds: float,
    token: CancellationToken | None = None,
    max_iterations: int | None = None,
    sleep: Callable[[float], None] | None = None,
) -> _T:
    """Run ``step`` every ``interval_seconds`` until ``until`` holds, then return its result.

    Also stops after ``max_iterations`` calls or once ``token`` is cancelled,
    returning the most recent result. ``sleep`` replaces the token wait so tests
    can drive time without blocking.
    """
    token = token or CancellationToken()
    iterations = 0
    while True:
        result = step()
        iterations += 1
        if until(result) or token.cancelled:
            return result
        if max_iterations is not None and iterations >= max_iterations:
            return result
        if sleep is not None:
            sleep(interval_seconds)
            if token.cancelled:
                return result
        elif token.wait(interval_seconds):
            return result


class EnrichmentPollingLoop:
    def __init__(
        self,
        poller: TaskStatusPoller,
        *,
        interval_seconds: float = 30.0,
        max_checks: int | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be non-negative.")
        self._poller = poller
        self._interval = interval_seconds
        self._max_checks = max_checks
        self._sleep = sleep

    def run(self, signal_id: str, token: CancellationToken | None = None) -> StatusReport:
        """Poll one signal while it stays ``manus_processing``."""
        report = poll(
            lambda: self._poller.check_status(signal_id),
            until=lambda current: current.status != EnrichmentStatus.MANUS_PROCESSING.value,
            interval_seconds=self._interval,
            token=token,
            max_iterations=self._max_checks,
            sleep=self._sleep,
        )
        logger.info(
            "enrichment.polling.stopped",
            extra={
                "signal_id": signal_id,
                "status": report.status,
                "cancelled": bool(token and token.cancelled),
            },
        )
        return report

    def run_sweeps(
        self,
        token: CancellationToken | None = None,
        *,
        on_sweep: Callable[[SweepSummary], None] | None = None,
    ) -> SweepSummary:
        """Sweep pending records on every interval until cancelled."""

        def _step() -> SweepSummary:
            summary = self._poller.sweep()
            if on_sweep is not None:
                on_sweep(summary)
            return summary

        return poll(
            _step,
            until=lambda _summary: False,
            interval_seconds=self._interval,
            token=token,
            max_iterations=self._max_checks,
            sleep=self._sleep,
        )
