"""
WARP charger adapter configuration.

Uses Pydantic BaseSettings so values can come from environment variables
(prefix ``WARP_``), a ``.env`` file, or a mapping handed over by the driver
registry.  Transport settings (broker, credentials) travel in the same
mapping but belong to the bus client and are ignored here.

CHANGELOG:
- 2026-10-19: Accept legacy template keys ``energymanager`` and ``timeout``
- 2026-10-19: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from warp_edge.src.topics import ROOT_TOPIC, TIMEOUT_S

_LEGACY_KEYS: dict[str, str] = {
    "energymanager": "energy_manager",
    "timeout": "timeout_s",
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS: dict[str, float] = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class Warp2Settings(BaseSettings):
    """Configuration for one WARP charger.

    Attributes:
        topic: Charger topic root (default ``warp``).
        energy_manager: Energy manager topic root; empty when no WARP
            Energy Manager is installed.  Phase switching is only offered
            when this is set.
        timeout_s: Read window in seconds.  Accepts plain numbers or
            duration strings such as ``"500ms"``, ``"30s"`` or ``"1m"``.
    """

    topic: str = ROOT_TOPIC
    energy_manager: str = ""
    timeout_s: float = TIMEOUT_S

    @model_validator(mode="before")
    @classmethod
    def _map_legacy_keys(cls, data: Any) -> Any:
        """Rename keys used by the original YAML templates."""
        if isinstance(data, dict):
            data = dict(data)
            for legacy, key in _LEGACY_KEYS.items():
                if legacy in data and key not in data:
                    data[key] = data.pop(legacy)
        return data

    @field_validator("topic")
    @classmethod
    def topic_must_not_be_empty(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("WARP_TOPIC must not be empty")
        return v

    @field_validator("energy_manager")
    @classmethod
    def _strip_energy_manager(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("timeout_s", mode="before")
    @classmethod
    def _parse_duration(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        match = _DURATION_RE.match(v)
        if match is None:
            raise ValueError(f"WARP_TIMEOUT_S: invalid duration '{v}'")
        value, unit = match.groups()
        return float(value) * _DURATION_UNITS[unit or "s"]

    @field_validator("timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Reject unbounded reads; every read needs a finite window."""
        if v <= 0:
            raise ValueError("WARP_TIMEOUT_S must be > 0")
        return v

    model_config = {
        "env_prefix": "WARP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
