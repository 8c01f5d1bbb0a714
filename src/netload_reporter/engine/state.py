from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from netload_reporter.reporting.payload import MetricReport


class LoopState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    COMPUTING = "computing"
    REPORTING = "reporting"
    STOPPED = "stopped"


class TickOutcome(str, Enum):
    BASELINE = "baseline"
    REPORTED = "reported"
    SKIPPED_READ_ERROR = "skipped_read_error"
    SKIPPED_CLOCK_ANOMALY = "skipped_clock_anomaly"
    DELIVERY_FAILED = "delivery_failed"
    CANCELLED = "cancelled"


@dataclass
class LoopSnapshot:
    state: LoopState = LoopState.IDLE
    ticks: int = 0
    reports_sent: int = 0
    delivery_failures: int = 0
    read_failures: int = 0
    clock_skips: int = 0
    last_outcome: TickOutcome | None = None
    last_report: MetricReport | None = None
    last_error: str | None = None
