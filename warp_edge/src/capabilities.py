"""
Capability composition for WARP chargers.

Builds, once at construction, the immutable set of optional contracts a
charger exposes on top of the base contract:

- ``METER`` / ``METER_ENERGY``: firmware advertises ``meter``.
- ``PHASE_CURRENTS`` / ``PHASE_VOLTAGES``: firmware advertises ``meter_phases``.
- ``IDENTIFIER``: firmware advertises ``nfc``.
- ``PHASE_SWITCHER``: an energy manager is configured, its state can be
  read, and external control is not deactivated.  An unreadable energy
  manager omits the capability.

The result never changes during the charger's lifetime.  Callers query it
with :meth:`Charger.has` instead of type checks; calling a contract that is
not attached raises :class:`CapabilityNotSupportedError`.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, TypeVar

from warp_edge.src.charger import PhaseValues, Warp2
from warp_edge.src.config import Warp2Settings
from warp_edge.src.errors import CapabilityNotSupportedError, WarpError
from warp_edge.src.models import ChargeStatus, ExternalControl
from warp_edge.src.provider import BusClient, StringGetter
from warp_edge.src.topics import FEATURE_METER, FEATURE_METER_PHASES, FEATURE_NFC

logger = logging.getLogger(__name__)

F = TypeVar("F")

FloatGetter = Callable[[], Awaitable[float]]
PhaseGetter = Callable[[], Awaitable[PhaseValues]]
PhaseSwitcher = Callable[[int], Awaitable[None]]


class Capability(str, Enum):
    """Optional charger contracts."""

    METER = "current_power"
    METER_ENERGY = "total_energy"
    PHASE_CURRENTS = "currents"
    PHASE_VOLTAGES = "voltages"
    IDENTIFIER = "identify"
    PHASE_SWITCHER = "phases_1p3p"


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Immutable bundle of optional contract implementations.

    Field names match :class:`Capability` values; ``None`` means the
    contract is not attached.
    """

    current_power: FloatGetter | None = None
    total_energy: FloatGetter | None = None
    currents: PhaseGetter | None = None
    voltages: PhaseGetter | None = None
    identify: StringGetter | None = None
    phases_1p3p: PhaseSwitcher | None = None

    def has(self, capability: Capability) -> bool:
        return getattr(self, capability.value) is not None

    @property
    def attached(self) -> frozenset[Capability]:
        return frozenset(
            Capability(f.name) for f in fields(self) if getattr(self, f.name) is not None
        )


class Charger:
    """A WARP charger with its composed capability set.

    Base contract methods are always available.  Optional contracts
    delegate to the :class:`Capabilities` bundle.

    Args:
        base: The underlying driver.
        capabilities: Optional contracts fixed at construction.
    """

    def __init__(self, base: Warp2, capabilities: Capabilities) -> None:
        self._base = base
        self._capabilities = capabilities

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    def has(self, capability: Capability) -> bool:
        return self._capabilities.has(capability)

    def _require(self, capability: Capability, fn: F | None) -> F:
        if fn is None:
            raise CapabilityNotSupportedError(capability.value)
        return fn

    # -- base contract ------------------------------------------------------

    async def enable(self, enable: bool) -> None:
        await self._base.enable(enable)

    async def enabled(self) -> bool:
        return await self._base.enabled()

    async def status(self) -> ChargeStatus:
        return await self._base.status()

    async def max_current(self, current: int) -> None:
        await self._base.max_current(current)

    async def max_current_millis(self, current: float) -> None:
        await self._base.max_current_millis(current)

    # -- optional contracts -------------------------------------------------

    async def current_power(self) -> float:
        return await self._require(Capability.METER, self._capabilities.current_power)()

    async def total_energy(self) -> float:
        return await self._require(Capability.METER_ENERGY, self._capabilities.total_energy)()

    async def currents(self) -> PhaseValues:
        return await self._require(Capability.PHASE_CURRENTS, self._capabilities.currents)()

    async def voltages(self) -> PhaseValues:
        return await self._require(Capability.PHASE_VOLTAGES, self._capabilities.voltages)()

    async def identify(self) -> str:
        return await self._require(Capability.IDENTIFIER, self._capabilities.identify)()

    async def phases_1p3p(self, phases: int) -> None:
        await self._require(Capability.PHASE_SWITCHER, self._capabilities.phases_1p3p)(phases)


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


async def _phase_switching_available(wb: Warp2) -> bool:
    try:
        res = await wb.em_state()
    except WarpError:
        logger.warning(
            "Energy manager state on %s unreadable, phase switching disabled",
            wb.topics.em_state,
            exc_info=True,
        )
        return False

    if res.external_control == ExternalControl.DEACTIVATED:
        logger.info(
            "Energy manager external control is %s, phase switching disabled",
            res.external_control_name,
        )
        return False
    return True


async def compose(wb: Warp2, settings: Warp2Settings) -> Charger:
    """Evaluate every capability predicate once and wrap *wb*."""
    kwargs: dict[str, Any] = {}

    if await wb.has_feature(FEATURE_METER):
        kwargs["current_power"] = wb.current_power
        kwargs["total_energy"] = wb.total_energy

    if await wb.has_feature(FEATURE_METER_PHASES):
        kwargs["currents"] = wb.currents
        kwargs["voltages"] = wb.voltages

    if await wb.has_feature(FEATURE_NFC):
        kwargs["identify"] = wb.identify

    if settings.energy_manager and await _phase_switching_available(wb):
        kwargs["phases_1p3p"] = wb.phases_1p3p

    capabilities = Capabilities(**kwargs)
    logger.info(
        "WARP charger on %s: capabilities=%s",
        settings.topic,
        sorted(c.value for c in capabilities.attached),
    )
    return Charger(wb, capabilities)


async def new_warp2_from_config(
    client: BusClient,
    other: Mapping[str, Any] | Warp2Settings,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> Charger:
    """Create a WARP charger from a configuration mapping.

    Args:
        client: Shared bus client, owned by the caller.
        other: Configuration mapping (``topic``, ``energy_manager``,
            ``timeout_s`` or the legacy ``energymanager``/``timeout``), or
            ready-made settings.
        clock: Monotonic clock, injectable for tests.

    Raises:
        pydantic.ValidationError: The configuration is invalid.
    """
    settings = other if isinstance(other, Warp2Settings) else Warp2Settings(**dict(other))
    wb = Warp2(client, settings, clock=clock)
    return await compose(wb, settings)
