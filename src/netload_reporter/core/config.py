from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, Mapping

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from netload_reporter.core.durations import parse_duration
from netload_reporter.core.exceptions import ConfigError

DEFAULT_PROC_NET_DEV = "/proc/net/dev"
DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_WINDOW_SECONDS = 5 * 60.0
MAX_REQUEST_TIMEOUT_SECONDS = 10.0

_log = logging.getLogger("netload_reporter.config")


class ReporterConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    report_url: str
    api_key: str | None = None
    node_name: str | None = None
    host_name: str | None = None
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    window_seconds: float = DEFAULT_WINDOW_SECONDS
    proc_net_dev: str = DEFAULT_PROC_NET_DEV
    counter_source: Literal["procfs", "psutil"] = "procfs"
    interface_exclude: tuple[str, ...] = ("lo",)
    interface_include: tuple[str, ...] = ()
    request_timeout_seconds: float = MAX_REQUEST_TIMEOUT_SECONDS
    log_level: str = "INFO"
    log_dir: str | None = None

    @field_validator("report_url")
    @classmethod
    def _url_http(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("REPORT_URL is required")
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("REPORT_URL must be an http(s) URL")
        return v

    @field_validator("interval_seconds")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("durations must be > 0")
        return v

    @field_validator("window_seconds")
    @classmethod
    def _whole_seconds(cls, v: float) -> float:
        # the payload suffix (_5m, _90s) names the window in whole seconds
        if v < 1 or v != int(v):
            raise ValueError("window must be a whole number of seconds, at least 1s")
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def _timeout_bounds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request timeout must be > 0")
        return min(v, MAX_REQUEST_TIMEOUT_SECONDS)

    @field_validator("api_key", "node_name", "host_name", "log_dir", mode="before")
    @classmethod
    def _blank_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def redacted_dict(self) -> dict[str, Any]:
        out = self.model_dump()
        if out.get("api_key"):
            out["api_key"] = "***"
        return out


def _split_patterns(raw: str | None) -> tuple[str, ...] | None:
    patterns = tuple(p.strip() for p in (raw or "").split(",") if p.strip())
    return patterns or None


def _duration_or_default(
    values: Mapping[str, str | None],
    key: str,
    default: float,
    *,
    whole_seconds: bool = False,
) -> float:
    raw = values.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        seconds = parse_duration(raw)
    except ValueError:
        _log.warning("invalid duration, using default", extra={"key": key, "value": raw, "default": default})
        return default
    if seconds <= 0:
        _log.warning("non-positive duration, using default", extra={"key": key, "value": raw, "default": default})
        return default
    if whole_seconds and (seconds < 1 or seconds != int(seconds)):
        _log.warning("duration is not whole seconds, using default", extra={"key": key, "value": raw, "default": default})
        return default
    return seconds


def _env_file_values(env_file: str | Path | None, environ: Mapping[str, str]) -> dict[str, str | None]:
    path = Path(env_file or environ.get("ENV_FILE") or ".env")
    if not path.is_file():
        if env_file is not None or environ.get("ENV_FILE"):
            _log.warning("env file not found", extra={"path": str(path)})
        return {}
    return dict(dotenv_values(path))


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    env_file: str | Path | None = None,
) -> ReporterConfig:
    """
    Build the immutable reporter configuration.

    Values from the dotenv file fill in only what the environment leaves unset.
    """
    env = dict(os.environ if environ is None else environ)
    values: dict[str, str | None] = {**_env_file_values(env_file, env), **env}

    report_url = (values.get("REPORT_URL") or "").strip()
    if not report_url:
        raise ConfigError("REPORT_URL is required")

    raw: dict[str, Any] = {
        "report_url": report_url,
        "api_key": values.get("API_KEY"),
        "node_name": values.get("NODE_NAME"),
        "host_name": values.get("HOST_NAME"),
        "interval_seconds": _duration_or_default(values, "INTERVAL", DEFAULT_INTERVAL_SECONDS),
        "window_seconds": _duration_or_default(values, "WINDOW", DEFAULT_WINDOW_SECONDS, whole_seconds=True),
        "request_timeout_seconds": _duration_or_default(
            values, "REQUEST_TIMEOUT", MAX_REQUEST_TIMEOUT_SECONDS
        ),
        "log_dir": values.get("LOG_DIR"),
    }
    if values.get("PROC_NET_DEV"):
        raw["proc_net_dev"] = values["PROC_NET_DEV"]
    if values.get("COUNTER_SOURCE"):
        raw["counter_source"] = str(values["COUNTER_SOURCE"]).strip().lower()
    if values.get("LOG_LEVEL"):
        raw["log_level"] = str(values["LOG_LEVEL"]).strip().upper()
    exclude = _split_patterns(values.get("INTERFACE_EXCLUDE"))
    if exclude is not None:
        raw["interface_exclude"] = exclude
    include = _split_patterns(values.get("INTERFACE_INCLUDE"))
    if include is not None:
        raw["interface_include"] = include

    try:
        return ReporterConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
