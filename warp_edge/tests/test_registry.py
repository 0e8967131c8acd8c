"""
Tests for the explicit charger factory table.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import FakeBus
from warp_edge.src.capabilities import Charger
from warp_edge.src.errors import UnknownChargerTypeError
from warp_edge.src.registry import create_charger, warp_factories


class TestWarpFactories:
    def test_known_types(self) -> None:
        assert set(warp_factories()) == {"warp2", "warp-fw2"}

    def test_fresh_table_per_call(self) -> None:
        table = warp_factories()
        table["other"] = AsyncMock()

        assert "other" not in warp_factories()


class TestCreateCharger:
    @pytest.mark.asyncio
    async def test_dispatches_case_insensitive(self, bus: FakeBus) -> None:
        factory = AsyncMock(return_value="charger")
        other = {"topic": "warp"}

        result = await create_charger({"warp2": factory}, "WARP2", bus, other)

        assert result == "charger"
        factory.assert_awaited_once_with(bus, other)

    @pytest.mark.asyncio
    async def test_unknown_type(self, bus: FakeBus) -> None:
        with pytest.raises(UnknownChargerTypeError) as exc_info:
            await create_charger(warp_factories(), "easee", bus, {})

        assert "easee" in str(exc_info.value)
        assert "warp2" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_builds_warp2(self, online_bus: FakeBus) -> None:
        online_bus.deliver("warp/info/features", '["meter"]')

        charger = await create_charger(
            warp_factories(), "warp2", online_bus, {"topic": "warp", "timeout": "50ms"}
        )

        assert isinstance(charger, Charger)

    @pytest.mark.asyncio
    async def test_deprecated_alias_warns(
        self, online_bus: FakeBus, caplog: pytest.LogCaptureFixture
    ) -> None:
        online_bus.deliver("warp/info/features", "[]")

        with caplog.at_level("WARNING"):
            charger = await create_charger(
                warp_factories(), "warp-fw2", online_bus, {"timeout": "50ms"}
            )

        assert isinstance(charger, Charger)
        assert "deprecated" in caplog.text
