from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from netload_reporter.monitoring.counters import CounterSnapshot

BITS_PER_BYTE = 8


@dataclass(frozen=True)
class TimedSample:
    snapshot: CounterSnapshot
    captured_at: datetime


@dataclass(frozen=True)
class RatePair:
    rx_bytes_per_sec: float
    tx_bytes_per_sec: float

    @property
    def rx_bits_per_sec(self) -> float:
        return self.rx_bytes_per_sec * BITS_PER_BYTE

    @property
    def tx_bits_per_sec(self) -> float:
        return self.tx_bytes_per_sec * BITS_PER_BYTE

    @property
    def total_bytes_per_sec(self) -> float:
        return self.rx_bytes_per_sec + self.tx_bytes_per_sec

    @property
    def total_bits_per_sec(self) -> float:
        return self.total_bytes_per_sec * BITS_PER_BYTE


@dataclass(frozen=True)
class RateResult:
    rates: RatePair
    elapsed_seconds: float
    rx_delta: int
    tx_delta: int


def counter_delta(previous: int, current: int) -> int:
    """Bytes moved between two reads; a decrease is an interface reset, not traffic."""
    if current >= previous:
        return current - previous
    return 0


def compute_rate(previous: TimedSample, current: TimedSample) -> RateResult | None:
    """
    Per-second rates between two samples.

    Returns None when the elapsed time is not positive; the caller skips the
    tick and keeps ``previous`` as its baseline.
    """
    elapsed = (current.captured_at - previous.captured_at).total_seconds()
    if elapsed <= 0:
        return None
    drx = counter_delta(previous.snapshot.received_bytes, current.snapshot.received_bytes)
    dtx = counter_delta(previous.snapshot.transmitted_bytes, current.snapshot.transmitted_bytes)
    return RateResult(
        rates=RatePair(rx_bytes_per_sec=drx / elapsed, tx_bytes_per_sec=dtx / elapsed),
        elapsed_seconds=elapsed,
        rx_delta=drx,
        tx_delta=dtx,
    )
