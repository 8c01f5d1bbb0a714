from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class FixedRateTicker:
    """
    Fires at fixed multiples of ``interval_seconds`` from ``start()``.

    Firings missed while a tick overran are dropped rather than replayed.
    """

    interval_seconds: float
    clock: Callable[[], float] = time.monotonic
    dropped: int = 0
    _next: float | None = None
    _log: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._log = logging.getLogger("netload_reporter.scheduler")

    def start(self) -> None:
        self._next = self.clock() + self.interval_seconds

    def wait(self, stop: threading.Event) -> bool:
        """Block until the next firing. Returns False once ``stop`` is set."""
        if self._next is None:
            self.start()
        assert self._next is not None
        delay = self._next - self.clock()
        if delay > 0 and stop.wait(delay):
            return False
        if stop.is_set():
            return False

        now = self.clock()
        missed = int((now - self._next) // self.interval_seconds) if now > self._next else 0
        if missed:
            self.dropped += missed
            self._log.warning("tick overran, dropping missed firings", extra={"missed": missed})
        self._next += (missed + 1) * self.interval_seconds
        return True
