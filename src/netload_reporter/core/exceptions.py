from __future__ import annotations


class NetloadError(Exception):
    """Base error for the network load reporter."""


class ConfigError(NetloadError):
    pass


class CounterReadError(NetloadError):
    """A counter read produced no usable sample."""


class SourceUnavailableError(CounterReadError):
    pass


class MalformedRecordError(CounterReadError):
    pass


class DeliveryError(NetloadError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
