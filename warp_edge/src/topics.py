"""
WARP charger v2 bus topic map -- single source of truth.

Defines the topic layout, payload templates, feature tokens, and protocol
constants for WARP chargers running firmware v2 (and the optional WARP
Energy Manager).  Every topic hangs off a configurable root prefix; the
energy manager has its own root.

References:
    - https://docs.warp-charger.com/docs/mqtt_http/api_reference/

CHANGELOG:
- 2026-10-19: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Protocol constants
# ---------------------------------------------------------------------------

ROOT_TOPIC: str = "warp"
"""Default charger topic root."""

TIMEOUT_S: float = 30.0
"""Default read window in seconds."""

MIN_CURRENT_MA: int = 6000
"""IEC 61851 minimum charge current; below this the charger is not enabled."""

DEFAULT_CURRENT_MA: int = 6000
"""Current restored by ``enable(True)`` before any current was written."""

FEATURE_METER: str = "meter"
FEATURE_METER_PHASES: str = "meter_phases"
FEATURE_NFC: str = "nfc"

CURRENT_PAYLOAD: str = '{ "current": ${maxcurrent} }'
"""Template for ``evse/external_current_update``."""

PHASES_PAYLOAD: str = '{ "phases_wanted": ${phases} }'
"""Template for ``energy_manager/external_control_update``."""


# ---------------------------------------------------------------------------
# Topic layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TopicMap:
    """Resolved topic names for one charger (and its energy manager).

    Attributes:
        root: Charger topic root, without trailing slash.
        energy_manager: Energy manager topic root, or ``""`` when no
            energy manager is installed.
    """

    root: str
    energy_manager: str = ""

    @property
    def features(self) -> str:
        return f"{self.root}/info/features"

    @property
    def low_level_state(self) -> str:
        return f"{self.root}/evse/low_level_state"

    @property
    def external_current(self) -> str:
        return f"{self.root}/evse/external_current"

    @property
    def external_current_update(self) -> str:
        return f"{self.root}/evse/external_current_update"

    @property
    def state(self) -> str:
        return f"{self.root}/evse/state"

    @property
    def meter_values(self) -> str:
        return f"{self.root}/meter/values"

    @property
    def meter_all_values(self) -> str:
        return f"{self.root}/meter/all_values"

    @property
    def current_charge(self) -> str:
        return f"{self.root}/charge_tracker/current_charge"

    @property
    def users_config(self) -> str:
        return f"{self.root}/users/config"

    @property
    def em_state(self) -> str:
        return f"{self.energy_manager}/energy_manager/state"

    @property
    def em_external_control_update(self) -> str:
        return f"{self.energy_manager}/energy_manager/external_control_update"
