"""
Logging setup and diagnostics for hosts embedding the WARP adapter.

Provides structured JSON logging for the host process, a startup config
summary, and a one-shot snapshot that reads the base state and every
attached capability of a charger and logs the result.  The snapshot is
resilient: a failing read is logged and recorded as ``None`` and never
aborts the remaining reads.

CHANGELOG:
- 2026-10-19: Renamed from main.py; the module has no entry point of its own
- 2026-10-19: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from warp_edge.src.capabilities import Capability

if TYPE_CHECKING:
    from warp_edge.src.capabilities import Charger
    from warp_edge.src.config import Warp2Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the host process.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: Warp2Settings) -> None:
    """Log the effective charger configuration at startup."""
    logger.info(
        "WARP adapter starting with config: topic=%s, energy_manager=%s, timeout_s=%s",
        settings.topic,
        settings.energy_manager or "-",
        settings.timeout_s,
    )


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


async def _read(name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return await fn()
    except Exception:
        logger.warning("Snapshot read '%s' failed", name, exc_info=True)
        return None


async def log_snapshot(charger: Charger) -> dict[str, Any]:
    """Read base state and every attached read capability once.

    Returns:
        A dict of field name to value; failed reads map to ``None``.
        Capabilities that are not attached are omitted.
    """
    snapshot: dict[str, Any] = {
        "status": await _read("status", charger.status),
        "enabled": await _read("enabled", charger.enabled),
    }

    readers: dict[Capability, Callable[[], Awaitable[Any]]] = {
        Capability.METER: charger.current_power,
        Capability.METER_ENERGY: charger.total_energy,
        Capability.PHASE_CURRENTS: charger.currents,
        Capability.PHASE_VOLTAGES: charger.voltages,
        Capability.IDENTIFIER: charger.identify,
    }
    for capability, fn in readers.items():
        if charger.has(capability):
            snapshot[capability.value] = await _read(capability.value, fn)

    logger.info("WARP snapshot: %s", json.dumps(snapshot))
    return snapshot
