from __future__ import annotations

import dataclasses
import json
import logging
import os
import socket
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# Attributes every LogRecord carries; anything else on a record came in via ``extra=``.
_RESERVED_RECORD_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def safe_json_dumps(obj: Any) -> str:
    def _default(o: Any) -> Any:
        if dataclasses.is_dataclass(o):
            return dataclasses.asdict(o)
        if isinstance(o, datetime):
            return iso_utc(o)
        if hasattr(o, "model_dump"):
            return o.model_dump()
        if isinstance(o, Path):
            return str(o)
        return str(o)

    return json.dumps(obj, default=_default, ensure_ascii=False, separators=(",", ":"))


def resolve_host_name(override: str | None = None) -> str:
    """Short host label: the override when given, else the hostname's last path part."""
    name = (override or "").strip() or socket.gethostname()
    return os.path.basename(name.rstrip("/")) or name


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # extras passed by the loop and sender (rx, status, error, ...)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RESERVED_RECORD_KEYS:
                continue
            payload[key] = value
        return safe_json_dumps(payload)


def setup_logging(level: str = "INFO", log_dir: str | None = None) -> None:
    level_num = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level_num)
    root.handlers.clear()

    # Console (human)
    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(level_num)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console)

    if log_dir:
        ensure_dir(log_dir)

        # Rotating text log
        text_path = Path(log_dir) / "netload-reporter.log"
        text_handler = RotatingFileHandler(
            text_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8"
        )
        text_handler.setLevel(level_num)
        text_handler.setFormatter(console.formatter)
        root.addHandler(text_handler)

        # Rotating JSONL log
        jsonl_path = Path(log_dir) / "netload-reporter.jsonl"
        json_handler = RotatingFileHandler(
            jsonl_path, maxBytes=10_000_000, backupCount=3, encoding="utf-8"
        )
        json_handler.setLevel(level_num)
        json_handler.setFormatter(JsonFormatter())
        root.addHandler(json_handler)

    # Reduce noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
