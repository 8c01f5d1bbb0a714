from __future__ import annotations

import math
import re

_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 60.0 * 60.0,
}

_TOKEN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """
    Parse a duration string into seconds.

    Accepts unit-suffixed components ("90s", "1m", "1h30m", "250ms") and a
    bare number, which is read as seconds. Raises ValueError otherwise.
    """
    raw = text.strip()
    if not raw:
        raise ValueError("empty duration")

    sign = 1.0
    if raw[0] in "+-":
        sign = -1.0 if raw[0] == "-" else 1.0
        raw = raw[1:]

    try:
        bare = float(raw)
    except ValueError:
        pass
    else:
        if not math.isfinite(bare):
            raise ValueError(f"invalid duration: {text!r}")
        return sign * bare

    total = 0.0
    pos = 0
    for m in _TOKEN.finditer(raw):
        if m.start() != pos:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    if pos == 0 or pos != len(raw):
        raise ValueError(f"invalid duration: {text!r}")
    return sign * total


def format_window_suffix(seconds: float) -> str:
    s = int(round(seconds))
    if s <= 0:
        raise ValueError("window must be positive")
    if s % 3600 == 0:
        return f"{s // 3600}h"
    if s % 60 == 0:
        return f"{s // 60}m"
    return f"{s}s"
