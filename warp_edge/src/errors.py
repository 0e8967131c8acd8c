"""
Exception hierarchy for the WARP charger adapter.

Every error raised by the adapter derives from :class:`WarpError` so callers
can decide on retry or backoff with a single ``except`` clause.  Timeout
errors also derive from the builtin :class:`TimeoutError` and decode errors
from :class:`ValueError`, so generic handlers keep working.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations


class WarpError(Exception):
    """Base class for all adapter errors."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class ReadTimeoutError(WarpError, TimeoutError):
    """No value arrived on a topic within the configured window."""

    def __init__(self, topic: str, timeout_s: float, message: str | None = None) -> None:
        super().__init__(message or f"{topic}: no value received within {timeout_s:g}s")
        self.topic = topic
        self.timeout_s = timeout_s


class OutdatedError(ReadTimeoutError):
    """The last value on a topic is older than the configured window."""

    def __init__(self, topic: str, timeout_s: float, age_s: float) -> None:
        super().__init__(
            topic,
            timeout_s,
            f"{topic}: outdated, last value {age_s:.1f}s old (max {timeout_s:g}s)",
        )
        self.age_s = age_s


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


class PayloadError(WarpError, ValueError):
    """A payload did not parse into the expected shape."""

    def __init__(self, topic: str, message: str) -> None:
        super().__init__(f"{topic}: invalid payload: {message}")
        self.topic = topic


class InvalidLengthError(PayloadError):
    """An extended metering array is too short to hold phase values."""

    def __init__(self, topic: str, length: int) -> None:
        super().__init__(topic, f"invalid length {length}")
        self.length = length


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------


class InvalidStatusError(WarpError):
    """The charger reported an IEC 61851 state code outside 0-2."""

    def __init__(self, code: int) -> None:
        super().__init__(f"invalid status: {code}")
        self.code = code


class ExternalControlUnavailableError(WarpError):
    """The energy manager does not accept external phase requests right now."""

    def __init__(self, mode: str) -> None:
        super().__init__(f"external control not available: {mode}")
        self.mode = mode


class CapabilityNotSupportedError(WarpError):
    """An optional contract was called that the charger does not expose."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"capability not supported: {capability}")
        self.capability = capability


class UnknownChargerTypeError(WarpError, KeyError):
    """No factory is registered for the requested charger type."""

    def __init__(self, type_name: str, known: list[str]) -> None:
        super().__init__(f"invalid charger type: {type_name} (known: {', '.join(known)})")
        self.type_name = type_name

    def __str__(self) -> str:
        return str(self.args[0])
