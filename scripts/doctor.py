from __future__ import annotations

import argparse
import sys
import time

from netload_reporter.core.config import load_config
from netload_reporter.core.exceptions import ConfigError, CounterReadError, DeliveryError
from netload_reporter.core.utils import resolve_host_name, utc_now
from netload_reporter.monitoring.counters import build_counter_reader
from netload_reporter.monitoring.rates import TimedSample, compute_rate
from netload_reporter.reporting.payload import MetricReport
from netload_reporter.reporting.sender import ReportSender


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="doctor")
    p.add_argument("--env-file", type=str, default=None)
    p.add_argument("--pause", type=float, default=1.0, help="Seconds between the two counter reads")
    p.add_argument("--send", action="store_true", help="POST one report to REPORT_URL")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])

    try:
        cfg = load_config(env_file=args.env_file)
        reader = build_counter_reader(cfg)
    except ConfigError as exc:
        print(f"[FAIL] Config: {exc}")
        return 2
    print(f"[OK] Config: url={cfg.report_url} interval={cfg.interval_seconds}s window={cfg.window_seconds}s")

    try:
        first = TimedSample(snapshot=reader.read(), captured_at=utc_now())
    except CounterReadError as exc:
        print(f"[FAIL] Counter source ({cfg.counter_source}): {exc}")
        return 2
    ifaces = ", ".join(first.snapshot.interfaces) or "(none)"
    print(f"[OK] Counter source ({cfg.counter_source}): interfaces={ifaces}")
    if not first.snapshot.interfaces:
        print("[WARN] No interface matched the include/exclude patterns")

    time.sleep(max(float(args.pause), 0.0))
    try:
        second = TimedSample(snapshot=reader.read(), captured_at=utc_now())
    except CounterReadError as exc:
        print(f"[FAIL] Second counter read: {exc}")
        return 2
    result = compute_rate(first, second)
    if result is None:
        print("[FAIL] Clock did not advance between reads")
        return 2
    r = result.rates
    print(
        f"[OK] Rates over {result.elapsed_seconds:.2f}s: rx={r.rx_bytes_per_sec:.1f}B/s "
        f"tx={r.tx_bytes_per_sec:.1f}B/s total={r.total_bits_per_sec:.1f}bit/s"
    )

    if args.send:
        report = MetricReport(
            host=resolve_host_name(cfg.host_name),
            node_name=cfg.node_name,
            captured_at=second.captured_at,
            interval_seconds=result.elapsed_seconds,
            rates=r,
            window_seconds=float(cfg.window_seconds),
            window_rates=r,
            window_span_seconds=0.0,
        )
        sender = ReportSender.from_config(cfg)
        try:
            status = sender.send(report.to_payload())
        except DeliveryError as exc:
            print(f"[FAIL] Delivery: {exc}")
            return 2
        finally:
            sender.close()
        print(f"[OK] Delivery: status={status}")

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
