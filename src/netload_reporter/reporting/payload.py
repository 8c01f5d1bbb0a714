from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from netload_reporter.core.durations import format_window_suffix
from netload_reporter.core.utils import iso_utc
from netload_reporter.monitoring.rates import RatePair


@dataclass(frozen=True)
class MetricReport:
    host: str
    node_name: str | None
    captured_at: datetime
    interval_seconds: float
    rates: RatePair
    window_seconds: float
    window_rates: RatePair
    window_span_seconds: float

    def to_payload(self) -> dict[str, Any]:
        suffix = "_" + format_window_suffix(self.window_seconds)
        payload: dict[str, Any] = {"host": self.host}
        if self.node_name:
            payload["node_name"] = self.node_name
        payload["timestamp"] = iso_utc(self.captured_at)
        payload["interval_seconds"] = self.interval_seconds
        payload.update(_rate_fields(self.rates, ""))
        payload.update(_rate_fields(self.window_rates, suffix))
        payload["window_seconds"] = self.window_seconds
        payload["window_span_seconds"] = self.window_span_seconds
        return payload


def _rate_fields(r: RatePair, suffix: str) -> dict[str, float]:
    return {
        f"rx_bytes_per_sec{suffix}": r.rx_bytes_per_sec,
        f"tx_bytes_per_sec{suffix}": r.tx_bytes_per_sec,
        f"rx_bits_per_sec{suffix}": r.rx_bits_per_sec,
        f"tx_bits_per_sec{suffix}": r.tx_bits_per_sec,
        f"total_bytes_per_sec{suffix}": r.total_bytes_per_sec,
        f"total_bits_per_sec{suffix}": r.total_bits_per_sec,
    }
