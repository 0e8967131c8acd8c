"""
Tests for capability composition.

Verifies that optional contracts are attached from feature discovery and
energy manager state exactly once at construction, that discovery failure
yields a charger without optional contracts, and that calling a missing
contract raises CapabilityNotSupportedError.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import json

import pytest
from conftest import FakeBus, FakeClock
from warp_edge.src.capabilities import (
    Capabilities,
    Capability,
    Charger,
    new_warp2_from_config,
)
from warp_edge.src.config import Warp2Settings
from warp_edge.src.errors import CapabilityNotSupportedError, ExternalControlUnavailableError
from warp_edge.src.models import ChargeStatus

_ALL_FEATURES = '["evse", "meter", "meter_phases", "nfc"]'
_EM_STATE = "warp-em/energy_manager/state"


async def _charger(bus: FakeBus, clock: FakeClock, **config: object) -> Charger:
    other = {"topic": "warp", "timeout": "50ms", **config}
    return await new_warp2_from_config(bus, other, clock=clock)


class TestCapabilitiesBundle:
    def test_empty_bundle(self) -> None:
        caps = Capabilities()

        assert caps.attached == frozenset()
        assert not any(caps.has(c) for c in Capability)

    def test_attached(self) -> None:
        async def _power() -> float:
            return 1.0

        caps = Capabilities(current_power=_power)

        assert caps.has(Capability.METER)
        assert not caps.has(Capability.METER_ENERGY)
        assert caps.attached == frozenset({Capability.METER})

    def test_bundle_is_immutable(self) -> None:
        caps = Capabilities()

        with pytest.raises(AttributeError):
            caps.identify = None  # type: ignore[misc]


class TestFeatureComposition:
    @pytest.mark.asyncio
    async def test_all_features(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver("warp/info/features", _ALL_FEATURES)

        charger = await _charger(online_bus, clock)

        assert charger.capabilities.attached == {
            Capability.METER,
            Capability.METER_ENERGY,
            Capability.PHASE_CURRENTS,
            Capability.PHASE_VOLTAGES,
            Capability.IDENTIFIER,
        }

    @pytest.mark.asyncio
    async def test_meter_only(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver("warp/info/features", '["evse", "meter"]')

        charger = await _charger(online_bus, clock)

        assert charger.has(Capability.METER)
        assert charger.has(Capability.METER_ENERGY)
        assert not charger.has(Capability.PHASE_CURRENTS)
        assert not charger.has(Capability.IDENTIFIER)

    @pytest.mark.asyncio
    async def test_discovery_failure_exposes_nothing(self, online_bus: FakeBus, clock: FakeClock) -> None:
        """No features topic: construction succeeds with the base contract only."""
        charger = await _charger(online_bus, clock)

        assert charger.capabilities.attached == frozenset()

        online_bus.deliver("warp/evse/state", '{"iec61851_state": 1}')
        assert await charger.status() == ChargeStatus.B

    @pytest.mark.asyncio
    async def test_capabilities_fixed_after_construction(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver("warp/info/features", '["evse"]')
        charger = await _charger(online_bus, clock)

        online_bus.deliver("warp/info/features", _ALL_FEATURES)

        assert not charger.has(Capability.METER)

    @pytest.mark.asyncio
    async def test_missing_capability_raises(self, online_bus: FakeBus, clock: FakeClock) -> None:
        charger = await _charger(online_bus, clock)

        with pytest.raises(CapabilityNotSupportedError) as exc_info:
            await charger.current_power()
        assert exc_info.value.capability == "current_power"

        with pytest.raises(CapabilityNotSupportedError):
            await charger.phases_1p3p(3)

    @pytest.mark.asyncio
    async def test_attached_capabilities_delegate(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver("warp/info/features", _ALL_FEATURES)
        online_bus.deliver("warp/meter/values", '{"power": 7200, "energy_abs": 42.5}')
        online_bus.deliver("warp/meter/all_values", "[230, 231, 232, 10, 11, 12]")
        online_bus.deliver(
            "warp/charge_tracker/current_charge",
            '{"authorization_info": {"tag_id": "abc"}}',
        )
        charger = await _charger(online_bus, clock)

        assert await charger.current_power() == 7200
        assert await charger.total_energy() == 42.5
        assert await charger.voltages() == (230, 231, 232)
        assert await charger.currents() == (10, 11, 12)
        assert await charger.identify() == "abc"


class TestPhaseSwitcherComposition:
    @pytest.mark.asyncio
    async def test_without_energy_manager(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver(_EM_STATE, '{"external_control": 0}')

        charger = await _charger(online_bus, clock)

        assert not charger.has(Capability.PHASE_SWITCHER)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("mode", "attached"), [(0, True), (1, False), (2, True), (3, True)])
    async def test_gated_on_mode(
        self, online_bus: FakeBus, clock: FakeClock, mode: int, attached: bool
    ) -> None:
        online_bus.deliver(_EM_STATE, json.dumps({"external_control": mode}))

        charger = await _charger(online_bus, clock, energymanager="warp-em")

        assert charger.has(Capability.PHASE_SWITCHER) is attached

    @pytest.mark.asyncio
    async def test_unreadable_energy_manager_omits(self, online_bus: FakeBus, clock: FakeClock) -> None:
        charger = await _charger(online_bus, clock, energymanager="warp-em")

        assert not charger.has(Capability.PHASE_SWITCHER)

    @pytest.mark.asyncio
    async def test_invalid_energy_manager_payload_omits(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver(_EM_STATE, '{"state": 0}')

        charger = await _charger(online_bus, clock, energymanager="warp-em")

        assert not charger.has(Capability.PHASE_SWITCHER)

    @pytest.mark.asyncio
    async def test_call_time_recheck(self, online_bus: FakeBus, clock: FakeClock) -> None:
        """Automatic control engaged after construction blocks the request."""
        online_bus.deliver(_EM_STATE, '{"external_control": 0}')
        charger = await _charger(online_bus, clock, energymanager="warp-em")
        assert charger.has(Capability.PHASE_SWITCHER)

        online_bus.deliver(_EM_STATE, '{"external_control": 1}')

        with pytest.raises(ExternalControlUnavailableError):
            await charger.phases_1p3p(1)
        assert online_bus.published == []

    @pytest.mark.asyncio
    async def test_phase_switch_writes(self, online_bus: FakeBus, clock: FakeClock) -> None:
        online_bus.deliver(_EM_STATE, '{"external_control": 0}')
        charger = await _charger(online_bus, clock, energymanager="warp-em")

        await charger.phases_1p3p(3)

        assert online_bus.published == [
            ("warp-em/energy_manager/external_control_update", '{ "phases_wanted": 3 }')
        ]


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_accepts_settings_instance(self, online_bus: FakeBus, clock: FakeClock) -> None:
        settings = Warp2Settings(topic="warp", timeout_s=0.05)

        charger = await new_warp2_from_config(online_bus, settings, clock=clock)

        await charger.max_current(16)
        await charger.enable(True)
        assert online_bus.published[-1] == (
            "warp/evse/external_current_update",
            '{ "current": 16000 }',
        )
