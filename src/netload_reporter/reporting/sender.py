from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

import requests

from netload_reporter.core.config import ReporterConfig
from netload_reporter.core.exceptions import DeliveryError

USER_AGENT = "netload-reporter/0.1.0"


@dataclass(frozen=True)
class SenderConfig:
    url: str
    api_key: str | None
    timeout_seconds: float


class ReportSender:
    def __init__(
        self,
        cfg: SenderConfig,
        *,
        session: requests.Session | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.cfg = cfg
        self._log = logging.getLogger("netload_reporter.sender")
        self._session = session or requests.Session()
        self._cancel = cancel

    @classmethod
    def from_config(cls, config: ReporterConfig, *, cancel: threading.Event | None = None) -> "ReportSender":
        cfg = SenderConfig(
            url=config.report_url,
            api_key=config.api_key,
            timeout_seconds=float(config.request_timeout_seconds),
        )
        return cls(cfg, cancel=cancel)

    def headers(self) -> dict[str, str]:
        h = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if self.cfg.api_key:
            h["Authorization"] = f"Bearer {self.cfg.api_key}"
        return h

    def send(self, payload: dict[str, Any]) -> int:
        """POST one report. Returns the HTTP status; raises DeliveryError on failure."""
        if self._cancel is not None and self._cancel.is_set():
            raise DeliveryError("delivery cancelled")
        try:
            r = self._session.post(
                self.cfg.url,
                json=payload,
                headers=self.headers(),
                timeout=self.cfg.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"POST {self.cfg.url}: {exc}") from exc
        if r.status_code >= 300:
            self._log.warning(
                "report rejected",
                extra={"status": r.status_code, "body": (r.text or "")[:200]},
            )
            raise DeliveryError(f"POST {self.cfg.url}: status {r.status_code}", status_code=r.status_code)
        return int(r.status_code)

    def close(self) -> None:
        self._session.close()
