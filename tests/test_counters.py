from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from netload_reporter.core.config import ReporterConfig
from netload_reporter.core.exceptions import MalformedRecordError, SourceUnavailableError
from netload_reporter.monitoring import counters
from netload_reporter.monitoring.counters import (
    CounterSnapshot,
    InterfaceFilter,
    ProcNetDevReader,
    PsutilCounterReader,
    build_counter_reader,
)

HEADER = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed\n"
)


def dev_line(name: str, rx: int | str, tx: int | str) -> str:
    return f"{name:>6}: {rx} 10 0 0 0 0 0 0 {tx} 5 0 0 0 0 0 0\n"


def write_table(path: Path, *lines: str) -> Path:
    path.write_text(HEADER + "".join(lines), encoding="utf-8")
    return path


def test_aggregates_non_loopback_interfaces(tmp_path: Path) -> None:
    table = write_table(
        tmp_path / "dev",
        dev_line("lo", 999999, 999999),
        dev_line("eth0", 1000, 500),
        dev_line("wlan0", 1000, 500),
    )
    snap = ProcNetDevReader(table).read()
    assert snap == CounterSnapshot(received_bytes=2000, transmitted_bytes=1000)
    assert snap.interfaces == ("eth0", "wlan0")


def test_uplink_prefix_filter(tmp_path: Path) -> None:
    table = write_table(
        tmp_path / "dev",
        dev_line("enp3s0", 100, 10),
        dev_line("docker0", 5000, 5000),
        dev_line("veth12ab", 7000, 7000),
    )
    snap = ProcNetDevReader(table, select=InterfaceFilter(include=("en*",))).read()
    assert (snap.received_bytes, snap.transmitted_bytes) == (100, 10)


def test_filter_is_pure_predicate() -> None:
    f = InterfaceFilter(exclude=("lo", "docker*"), include=())
    assert f("eth0") is True
    assert f("lo") is False
    assert f("docker0") is False
    assert InterfaceFilter(include=("en*", "eth*"))("wlan0") is False


def test_short_line_fails_whole_read(tmp_path: Path) -> None:
    table = write_table(
        tmp_path / "dev",
        dev_line("eth0", 1000, 500),
        "  eth1: 1 2 3 4\n",
    )
    with pytest.raises(MalformedRecordError):
        ProcNetDevReader(table).read()


def test_non_numeric_field_fails(tmp_path: Path) -> None:
    table = write_table(tmp_path / "dev", dev_line("eth0", "12x", 500))
    with pytest.raises(MalformedRecordError):
        ProcNetDevReader(table).read()


def test_negative_field_fails(tmp_path: Path) -> None:
    table = write_table(tmp_path / "dev", dev_line("eth0", 100, -5))
    with pytest.raises(MalformedRecordError):
        ProcNetDevReader(table).read()


def test_counter_beyond_u64_fails(tmp_path: Path) -> None:
    table = write_table(tmp_path / "dev", dev_line("eth0", 2**64, 0))
    with pytest.raises(MalformedRecordError):
        ProcNetDevReader(table).read()


def test_excluded_malformed_line_is_ignored(tmp_path: Path) -> None:
    table = write_table(
        tmp_path / "dev",
        "    lo: 1 2\n",
        dev_line("eth0", 1000, 500),
    )
    snap = ProcNetDevReader(table).read()
    assert snap.received_bytes == 1000


def test_blank_and_colonless_lines_skipped(tmp_path: Path) -> None:
    table = write_table(tmp_path / "dev", "\n", "garbage without colon\n", dev_line("eth0", 7, 3))
    snap = ProcNetDevReader(table).read()
    assert (snap.received_bytes, snap.transmitted_bytes) == (7, 3)


def test_missing_table_is_source_unavailable(tmp_path: Path) -> None:
    with pytest.raises(SourceUnavailableError):
        ProcNetDevReader(tmp_path / "missing").read()


def test_header_only_table_reads_zero(tmp_path: Path) -> None:
    snap = ProcNetDevReader(write_table(tmp_path / "dev")).read()
    assert (snap.received_bytes, snap.transmitted_bytes) == (0, 0)


def test_psutil_reader_applies_filter(monkeypatch) -> None:
    fake = {
        "lo": SimpleNamespace(bytes_recv=50, bytes_sent=50),
        "eth0": SimpleNamespace(bytes_recv=300, bytes_sent=200),
        "eth1": SimpleNamespace(bytes_recv=100, bytes_sent=100),
    }
    monkeypatch.setattr(counters.psutil, "net_io_counters", lambda pernic=False: fake)
    snap = PsutilCounterReader().read()
    assert (snap.received_bytes, snap.transmitted_bytes) == (400, 300)
    assert snap.interfaces == ("eth0", "eth1")


def test_psutil_reader_error_is_source_unavailable(monkeypatch) -> None:
    def _boom(pernic: bool = False) -> dict:
        raise OSError("no /proc")

    monkeypatch.setattr(counters.psutil, "net_io_counters", _boom)
    with pytest.raises(SourceUnavailableError):
        PsutilCounterReader().read()


def test_build_counter_reader_from_config(tmp_path: Path) -> None:
    cfg = ReporterConfig(
        report_url="http://collector.local/ingest",
        proc_net_dev=str(tmp_path / "dev"),
        interface_include=("en*",),
    )
    reader = build_counter_reader(cfg)
    assert isinstance(reader, ProcNetDevReader)
    assert reader.path == tmp_path / "dev"
    assert reader.select("enp1s0") and not reader.select("eth0")

    psutil_cfg = cfg.model_copy(update={"counter_source": "psutil"})
    assert isinstance(build_counter_reader(psutil_cfg), PsutilCounterReader)
