from __future__ import annotations

import logging
import os
import signal
import threading

from netload_reporter.core.config import load_config
from netload_reporter.core.exceptions import ConfigError, CounterReadError
from netload_reporter.core.utils import setup_logging
from netload_reporter.engine.reporter_loop import ReportingLoop
from netload_reporter.monitoring.counters import build_counter_reader
from netload_reporter.reporting.sender import ReportSender


def main() -> int:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"), os.getenv("LOG_DIR") or None)
    log = logging.getLogger("netload_reporter")

    try:
        config = load_config()
        reader = build_counter_reader(config)
    except ConfigError as exc:
        log.error(f"configuration error: {exc}")
        return 1
    setup_logging(config.log_level, config.log_dir)
    log.info("starting", extra={"config": config.redacted_dict()})

    stop = threading.Event()
    sender = ReportSender.from_config(config, cancel=stop)
    loop = ReportingLoop(config=config, reader=reader, sender=sender, stop=stop)

    stop_requested = False

    def _handle_sig(signum: int, _frame: object) -> None:
        nonlocal stop_requested
        if stop_requested:
            return
        stop_requested = True
        log.warning("shutdown requested", extra={"signal": signum})
        loop.request_stop()

    signal.signal(signal.SIGINT, _handle_sig)
    signal.signal(signal.SIGTERM, _handle_sig)

    try:
        loop.capture_baseline()
    except CounterReadError as exc:
        log.error(f"initial counter read failed: {exc}")
        sender.close()
        return 1

    try:
        loop.run()
    finally:
        sender.close()

    log.info("stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
