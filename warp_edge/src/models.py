"""
Pydantic models for WARP charger bus payloads.

Each model mirrors one JSON document published by the charger firmware.
Unknown keys are ignored so newer firmware releases do not break decoding;
keys the adapter relies on are required so that a truncated payload is
rejected as a whole instead of yielding partially-populated data.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from enum import Enum, IntEnum

from pydantic import BaseModel, Field


class ChargeStatus(str, Enum):
    """IEC 61851 charge state as seen by the energy-management system."""

    A = "A"
    """Vehicle not connected."""

    B = "B"
    """Vehicle connected, not charging."""

    C = "C"
    """Vehicle charging."""


_IEC61851_STATUS: dict[int, ChargeStatus] = {
    0: ChargeStatus.A,
    1: ChargeStatus.B,
    2: ChargeStatus.C,
}


class ExternalControl(IntEnum):
    """Energy manager ``external_control`` mode.

    Only ``AVAILABLE`` accepts phase requests.  ``DEACTIVATED`` means the
    energy manager's own automatic control owns the phase switch.
    """

    AVAILABLE = 0
    DEACTIVATED = 1
    RUNTIME_CONDITIONS_NOT_MET = 2
    CURRENTLY_SWITCHING = 3


# ---------------------------------------------------------------------------
# evse/*
# ---------------------------------------------------------------------------


class EvseExternalCurrent(BaseModel):
    """``evse/external_current``: applied external current in mA."""

    current: int


class EvseState(BaseModel):
    """``evse/state``: charger state machine position."""

    iec61851_state: int
    vehicle_state: int = 0

    def charge_status(self) -> ChargeStatus | None:
        """Map the IEC 61851 code, or ``None`` for an unknown code."""
        return _IEC61851_STATUS.get(self.iec61851_state)


# ---------------------------------------------------------------------------
# meter/*
# ---------------------------------------------------------------------------


class MeterValues(BaseModel):
    """``meter/values``: instantaneous power and cumulative energy.

    Attributes:
        power: Active power in W.
        energy_rel: Energy since last meter reset, as published.
        energy_abs: Absolute meter reading, as published.
    """

    power: float
    energy_rel: float = 0.0
    energy_abs: float


# ---------------------------------------------------------------------------
# charge_tracker/*
# ---------------------------------------------------------------------------


class AuthorizationInfo(BaseModel):
    tag_type: int = 0
    tag_id: str = ""


class ChargeTrackerCurrentCharge(BaseModel):
    """``charge_tracker/current_charge``: the running (or last) session."""

    user_id: int = 0
    meter_start: float = 0.0
    authorization_type: int = 0
    authorization_info: AuthorizationInfo | None = None

    @property
    def tag_id(self) -> str:
        if self.authorization_info is None:
            return ""
        return self.authorization_info.tag_id


# ---------------------------------------------------------------------------
# users/*
# ---------------------------------------------------------------------------


class User(BaseModel):
    id: int
    roles: int = 0
    current: int = 0
    display_name: str = ""
    username: str = ""


class UserConfig(BaseModel):
    """``users/config``: configured charger users (read-only)."""

    users: list[User] = Field(default_factory=list)
    next_user_id: int = 0
    http_auth_enabled: bool = False


# ---------------------------------------------------------------------------
# energy_manager/*
# ---------------------------------------------------------------------------


class EmState(BaseModel):
    """``energy_manager/state``: automatic phase control status."""

    external_control: int
    phases_switched: int = 0

    @property
    def external_control_name(self) -> str:
        """Mode name for messages; unknown codes are rendered numerically."""
        try:
            return ExternalControl(self.external_control).name
        except ValueError:
            return str(self.external_control)
