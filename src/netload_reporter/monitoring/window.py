from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime

from netload_reporter.monitoring.rates import RatePair


@dataclass(frozen=True)
class HistoryPoint:
    at: datetime
    cumulative_rx: int
    cumulative_tx: int


@dataclass(frozen=True)
class WindowedRate:
    rates: RatePair
    span_seconds: float  # 0.0 when the instantaneous rate was used


class WindowedAverageTracker:
    """
    Trailing-window average over cumulative per-tick deltas.

    Each tick appends the running totals, then drops points from the head while
    the second-oldest point is already at or past the window's start. The head
    is therefore the latest point that still covers the whole window, or the
    oldest point available while the series is younger than the window. At
    least one point is always kept.
    """

    def __init__(self, window_seconds: float) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.window_seconds = float(window_seconds)
        self._points: deque[HistoryPoint] = deque()
        self._cum_rx = 0
        self._cum_tx = 0

    def __len__(self) -> int:
        return len(self._points)

    @property
    def oldest(self) -> HistoryPoint | None:
        return self._points[0] if self._points else None

    def update(self, at: datetime, rx_delta: int, tx_delta: int, *, instantaneous: RatePair) -> WindowedRate:
        self._cum_rx += max(int(rx_delta), 0)
        self._cum_tx += max(int(tx_delta), 0)
        current = HistoryPoint(at=at, cumulative_rx=self._cum_rx, cumulative_tx=self._cum_tx)
        self._points.append(current)
        self._prune(at)

        head = self._points[0]
        span = (current.at - head.at).total_seconds()
        if head is current or span <= 0:
            return WindowedRate(rates=instantaneous, span_seconds=0.0)
        return WindowedRate(
            rates=RatePair(
                rx_bytes_per_sec=(current.cumulative_rx - head.cumulative_rx) / span,
                tx_bytes_per_sec=(current.cumulative_tx - head.cumulative_tx) / span,
            ),
            span_seconds=span,
        )

    def _prune(self, now: datetime) -> None:
        points = self._points
        while len(points) >= 2 and (now - points[1].at).total_seconds() >= self.window_seconds:
            points.popleft()
