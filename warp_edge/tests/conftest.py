"""
Shared test fixtures for the WARP adapter tests.

Provides an in-memory bus that behaves like a broker with retained
messages, a manual monotonic clock, and settings with a short read window.
All WARP env vars are cleaned before each test to ensure isolation.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable

import pytest
from warp_edge.src.config import Warp2Settings

# All Warp2Settings environment variable names, used for cleanup.
_ALL_WARP_ENV_VARS = (
    "WARP_TOPIC",
    "WARP_ENERGY_MANAGER",
    "WARP_TIMEOUT_S",
)


class FakeBus:
    """In-memory bus client with retained messages.

    ``deliver`` stores the payload as retained and invokes every listener;
    ``listen`` replays the retained payload immediately, like a broker does
    on subscribe.  Published messages are recorded in ``published``.
    """

    def __init__(self) -> None:
        self.listeners: dict[str, list[Callable[[str], None]]] = defaultdict(list)
        self.retained: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self.publish_error: Exception | None = None

    def listen(self, topic: str, callback: Callable[[str], None]) -> None:
        self.listeners[topic].append(callback)
        if topic in self.retained:
            callback(self.retained[topic])

    async def publish(self, topic: str, payload: str) -> None:
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((topic, payload))

    def deliver(self, topic: str, payload: str) -> None:
        self.retained[topic] = payload
        for callback in self.listeners[topic]:
            callback(payload)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture(autouse=True)
def _clean_warp_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all WARP env vars and isolate from .env files before each test."""
    for var in _ALL_WARP_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Warp2Settings:
    """Settings with an energy manager and a 50 ms read window."""
    return Warp2Settings(topic="warp", energy_manager="warp-em", timeout_s=0.05)


@pytest.fixture()
def online_bus(bus: FakeBus) -> FakeBus:
    """A bus on which the charger is alive (anchor topic populated)."""
    bus.deliver("warp/evse/low_level_state", '{"led_state": 0}')
    return bus
