from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

import psutil

from netload_reporter.core.config import ReporterConfig
from netload_reporter.core.exceptions import (
    ConfigError,
    MalformedRecordError,
    SourceUnavailableError,
)

# /proc/net/dev layout: two header lines, then "iface: <8 receive> <8 transmit>".
HEADER_LINES = 2
MIN_FIELDS = 16
RX_BYTES_FIELD = 0
TX_BYTES_FIELD = 8
U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class CounterSnapshot:
    received_bytes: int
    transmitted_bytes: int
    interfaces: tuple[str, ...] = field(default=(), compare=False)


InterfacePredicate = Callable[[str], bool]


class CounterReader(Protocol):
    def read(self) -> CounterSnapshot: ...


@dataclass(frozen=True)
class InterfaceFilter:
    """
    Selects which interfaces count toward the totals.

    A name is selected when it matches no ``exclude`` pattern and, if any
    ``include`` patterns are given, matches at least one of them. Patterns use
    shell-style wildcards, so ``include=("en*",)`` restricts to uplinks.
    """

    exclude: tuple[str, ...] = ("lo",)
    include: tuple[str, ...] = ()

    def __call__(self, name: str) -> bool:
        if any(fnmatch.fnmatchcase(name, p) for p in self.exclude):
            return False
        if self.include:
            return any(fnmatch.fnmatchcase(name, p) for p in self.include)
        return True

    @classmethod
    def from_config(cls, config: ReporterConfig) -> "InterfaceFilter":
        return cls(exclude=tuple(config.interface_exclude), include=tuple(config.interface_include))


def _parse_counter(value: str, *, iface: str, what: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise MalformedRecordError(f"{what} counter for {iface} is not a non-negative integer: {value!r}")
    n = int(value)
    if n > U64_MAX:
        raise MalformedRecordError(f"{what} counter for {iface} overflows 64 bits: {value!r}")
    return n


class ProcNetDevReader:
    """Aggregates rx/tx byte counters from a /proc/net/dev style table."""

    def __init__(self, path: str | Path, *, select: InterfacePredicate | None = None) -> None:
        self.path = Path(path)
        self.select: InterfacePredicate = select or InterfaceFilter()

    def read(self) -> CounterSnapshot:
        try:
            with self.path.open("r", encoding="utf-8", errors="replace") as f:
                lines = f.readlines()
        except OSError as exc:
            raise SourceUnavailableError(f"cannot read {self.path}: {exc}") from exc
        return self.parse(lines)

    def parse(self, lines: list[str]) -> CounterSnapshot:
        rx_total = 0
        tx_total = 0
        seen: list[str] = []
        for line in lines[HEADER_LINES:]:
            line = line.strip()
            if not line or ":" not in line:
                continue
            name, _, data = line.partition(":")
            iface = name.strip()
            if not self.select(iface):
                continue
            fields = data.split()
            if len(fields) < MIN_FIELDS:
                raise MalformedRecordError(
                    f"unexpected format for {iface}: {len(fields)} fields, need {MIN_FIELDS}"
                )
            rx_total += _parse_counter(fields[RX_BYTES_FIELD], iface=iface, what="rx")
            tx_total += _parse_counter(fields[TX_BYTES_FIELD], iface=iface, what="tx")
            seen.append(iface)
        return CounterSnapshot(received_bytes=rx_total, transmitted_bytes=tx_total, interfaces=tuple(seen))


class PsutilCounterReader:
    """Same aggregation over psutil's per-NIC counters, for hosts without procfs."""

    def __init__(self, *, select: InterfacePredicate | None = None) -> None:
        self.select: InterfacePredicate = select or InterfaceFilter()

    def read(self) -> CounterSnapshot:
        try:
            per_nic = psutil.net_io_counters(pernic=True)
        except (OSError, RuntimeError) as exc:
            raise SourceUnavailableError(f"psutil net_io_counters failed: {exc}") from exc
        if not per_nic:
            raise SourceUnavailableError("psutil reported no network interfaces")

        rx_total = 0
        tx_total = 0
        seen: list[str] = []
        for iface in sorted(per_nic):
            if not self.select(iface):
                continue
            counters = per_nic[iface]
            rx, tx = int(counters.bytes_recv), int(counters.bytes_sent)
            if rx < 0 or tx < 0:
                raise MalformedRecordError(f"negative counter reported for {iface}")
            rx_total += rx
            tx_total += tx
            seen.append(iface)
        return CounterSnapshot(received_bytes=rx_total, transmitted_bytes=tx_total, interfaces=tuple(seen))


def build_counter_reader(config: ReporterConfig) -> CounterReader:
    select = InterfaceFilter.from_config(config)
    if config.counter_source == "procfs":
        return ProcNetDevReader(config.proc_net_dev, select=select)
    if config.counter_source == "psutil":
        return PsutilCounterReader(select=select)
    raise ConfigError(f"Unsupported counter source: {config.counter_source}")
