from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Callable

from netload_reporter.core.config import ReporterConfig
from netload_reporter.core.exceptions import CounterReadError, DeliveryError
from netload_reporter.core.utils import resolve_host_name, utc_now
from netload_reporter.engine.scheduler import FixedRateTicker
from netload_reporter.engine.state import LoopSnapshot, LoopState, TickOutcome
from netload_reporter.monitoring.counters import CounterReader
from netload_reporter.monitoring.rates import TimedSample, compute_rate
from netload_reporter.monitoring.window import WindowedAverageTracker
from netload_reporter.reporting.payload import MetricReport
from netload_reporter.reporting.sender import ReportSender


class ReportingLoop:
    """
    Sequential sample -> compute -> report cycle driven by a fixed-rate ticker.

    The first read only seeds the baseline. Afterwards every tick reads the
    counters, computes instantaneous and windowed rates, advances the baseline
    and history, and only then attempts delivery, so a failed POST never
    disturbs the bookkeeping. Cancellation is observed before each stage.
    """

    def __init__(
        self,
        *,
        config: ReporterConfig,
        reader: CounterReader,
        sender: ReportSender,
        clock: Callable[[], datetime] = utc_now,
        ticker: FixedRateTicker | None = None,
        stop: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.reader = reader
        self.sender = sender
        self.host = resolve_host_name(config.host_name)

        self._log = logging.getLogger("netload_reporter.loop")
        self._clock = clock
        self._stop = stop or threading.Event()
        self._ticker = ticker or FixedRateTicker(interval_seconds=float(config.interval_seconds))
        self._window = WindowedAverageTracker(float(config.window_seconds))
        self._previous: TimedSample | None = None
        self._snapshot = LoopSnapshot()

    @property
    def previous(self) -> TimedSample | None:
        return self._previous

    @property
    def window(self) -> WindowedAverageTracker:
        return self._window

    def request_stop(self) -> None:
        self._stop.set()

    def snapshot(self) -> LoopSnapshot:
        return dataclasses.replace(self._snapshot)

    # ----------------- lifecycle -----------------

    def capture_baseline(self, now: datetime | None = None) -> TimedSample:
        """Seed the baseline. Read errors propagate: without a baseline there is nothing to compute."""
        at = now or self._clock()
        snap = self.reader.read()
        self._previous = TimedSample(snapshot=snap, captured_at=at)
        self._log.info(
            "baseline captured",
            extra={"rx": snap.received_bytes, "tx": snap.transmitted_bytes, "interfaces": list(snap.interfaces)},
        )
        return self._previous

    def run(self) -> None:
        if self._previous is None:
            self.capture_baseline()
        self._log.info(
            "reporting loop started",
            extra={
                "interval_seconds": self.config.interval_seconds,
                "window_seconds": self.config.window_seconds,
                "url": self.config.report_url,
            },
        )
        self._ticker.start()
        while not self._stop.is_set():
            if not self._ticker.wait(self._stop):
                break
            self.tick()
        self._snapshot.state = LoopState.STOPPED
        self._log.info("reporting loop stopped")

    # ----------------- one tick -----------------

    def tick(self, now: datetime | None = None) -> TickOutcome:
        if self._stop.is_set():
            return self._finish(TickOutcome.CANCELLED)
        if self._previous is None:
            self.capture_baseline(now)
            return self._finish(TickOutcome.BASELINE)

        self._snapshot.ticks += 1
        self._snapshot.state = LoopState.SAMPLING
        at = now or self._clock()
        try:
            snap = self.reader.read()
        except CounterReadError as exc:
            self._snapshot.read_failures += 1
            self._snapshot.last_error = str(exc)
            self._log.error("counter read failed, skipping tick", extra={"error": str(exc)})
            return self._finish(TickOutcome.SKIPPED_READ_ERROR)

        if self._stop.is_set():
            return self._finish(TickOutcome.CANCELLED)

        self._snapshot.state = LoopState.COMPUTING
        current = TimedSample(snapshot=snap, captured_at=at)
        result = compute_rate(self._previous, current)
        if result is None:
            self._snapshot.clock_skips += 1
            self._log.info(
                "non-positive elapsed time, skipping tick",
                extra={"previous": self._previous.captured_at.isoformat(), "current": at.isoformat()},
            )
            return self._finish(TickOutcome.SKIPPED_CLOCK_ANOMALY)

        windowed = self._window.update(at, result.rx_delta, result.tx_delta, instantaneous=result.rates)
        self._previous = current

        report = MetricReport(
            host=self.host,
            node_name=self.config.node_name,
            captured_at=at,
            interval_seconds=result.elapsed_seconds,
            rates=result.rates,
            window_seconds=float(self.config.window_seconds),
            window_rates=windowed.rates,
            window_span_seconds=windowed.span_seconds,
        )
        self._snapshot.last_report = report

        if self._stop.is_set():
            return self._finish(TickOutcome.CANCELLED)

        self._snapshot.state = LoopState.REPORTING
        self._log.info(
            f"reporting: rx={report.rates.rx_bytes_per_sec:.1f}B/s "
            f"tx={report.rates.tx_bytes_per_sec:.1f}B/s to {self.config.report_url}"
        )
        try:
            self.sender.send(report.to_payload())
        except DeliveryError as exc:
            self._snapshot.delivery_failures += 1
            self._snapshot.last_error = str(exc)
            self._log.error("report delivery failed", extra={"error": str(exc), "status": exc.status_code})
            return self._finish(TickOutcome.DELIVERY_FAILED)

        self._snapshot.reports_sent += 1
        return self._finish(TickOutcome.REPORTED)

    def _finish(self, outcome: TickOutcome) -> TickOutcome:
        self._snapshot.last_outcome = outcome
        self._snapshot.state = LoopState.STOPPED if outcome is TickOutcome.CANCELLED else LoopState.IDLE
        return outcome
