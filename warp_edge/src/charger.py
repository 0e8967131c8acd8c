"""
WARP charger firmware v2 base driver.

Implements the base charger contract (enable, enabled, status, max current)
plus the raw operations behind every optional capability (metering, phase
values, identification, phase switching).  Which optional operations are
actually exposed is decided once by :mod:`warp_edge.src.capabilities`.

All reads go through the timeout handler anchored on
``evse/low_level_state``; all writes publish templated JSON bodies.  Errors
are raised to the caller unchanged, with one exception: feature discovery
degrades to "no features" so that an unanswered probe never blocks
construction.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from warp_edge.src.errors import (
    ExternalControlUnavailableError,
    InvalidLengthError,
    InvalidStatusError,
    PayloadError,
    WarpError,
)
from warp_edge.src.models import (
    ChargeStatus,
    ChargeTrackerCurrentCharge,
    EmState,
    EvseExternalCurrent,
    EvseState,
    ExternalControl,
    MeterValues,
    UserConfig,
)
from warp_edge.src.provider import (
    BusClient,
    IntSetter,
    StringGetter,
    TimeoutHandler,
    TopicValue,
    int_setter,
)
from warp_edge.src.topics import (
    CURRENT_PAYLOAD,
    DEFAULT_CURRENT_MA,
    MIN_CURRENT_MA,
    PHASES_PAYLOAD,
    TopicMap,
)

if TYPE_CHECKING:
    from warp_edge.src.config import Warp2Settings

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_FEATURES = TypeAdapter(list[str])
_FLOATS = TypeAdapter(list[float])

PhaseValues = tuple[float, float, float]


def _decode(model: type[M], topic: str, payload: str) -> M:
    """Validate *payload* as *model*; the whole payload is rejected on error."""
    try:
        return model.model_validate_json(payload)
    except ValidationError as err:
        raise PayloadError(topic, str(err)) from err


class Warp2:
    """WARP charger (firmware v2) base driver.

    The bus client is owned by the caller; the driver only subscribes to
    and publishes on it.

    Args:
        client: Shared bus client.
        settings: Charger configuration.
        clock: Monotonic clock for payload ages, injectable for tests.
    """

    def __init__(
        self,
        client: BusClient,
        settings: Warp2Settings,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._settings = settings
        self._clock = clock
        self.topics = TopicMap(settings.topic, settings.energy_manager)

        # Written only on a successful nonzero current write; plain int assignment.
        self._current: int = DEFAULT_CURRENT_MA
        # Written once by the first discovery probe.
        self._features: frozenset[str] | None = None
        self._features_task: asyncio.Task[frozenset[str]] | None = None

        timeout = settings.timeout_s
        anchor = TopicValue(
            client,
            self.topics.low_level_state,
            wait_s=timeout,
            max_age_s=timeout,
            clock=clock,
        )
        self._to = TimeoutHandler(anchor)

        self._max_current_g = self._getter(self.topics.external_current)
        self._status_g = self._getter(self.topics.state)
        self._meter_g = self._getter(self.topics.meter_values)
        self._meter_details_g = self._getter(self.topics.meter_all_values)
        self._charge_g = self._getter(self.topics.current_charge)
        self._user_config_g = self._getter(self.topics.users_config)

        self._max_current_s = int_setter(
            client,
            self.topics.external_current_update,
            payload=CURRENT_PAYLOAD,
            param="maxcurrent",
        )

        self._em_state_g: StringGetter | None = None
        self._phases_s: IntSetter | None = None
        if settings.energy_manager:
            self._em_state_g = self._getter(self.topics.em_state)
            self._phases_s = int_setter(
                client,
                self.topics.em_external_control_update,
                payload=PHASES_PAYLOAD,
                param="phases",
            )

    def _getter(self, topic: str) -> StringGetter:
        value = TopicValue(
            self._client,
            topic,
            wait_s=self._settings.timeout_s,
            clock=self._clock,
        )
        return self._to.string_getter(value)

    @property
    def current(self) -> int:
        """Last successfully applied nonzero current in mA."""
        return self._current

    # -----------------------------------------------------------------------
    # Feature discovery
    # -----------------------------------------------------------------------

    async def has_feature(self, feature: str) -> bool:
        """Return whether the firmware advertises *feature*.

        The feature list is fetched once per driver instance.  A failed
        probe is cached as an empty list, so the driver then exposes no
        optional capabilities for its lifetime.  Concurrent first calls share
        a single probe.
        """
        if self._features is None:
            if self._features_task is None:
                self._features_task = asyncio.ensure_future(self._probe_features())
            self._features = await asyncio.shield(self._features_task)
        return feature in self._features

    async def _probe_features(self) -> frozenset[str]:
        topic = self.topics.features
        try:
            value = TopicValue(
                self._client,
                topic,
                wait_s=self._settings.timeout_s,
                clock=self._clock,
            )
            payload = await value.get()
            features = frozenset(_FEATURES.validate_json(payload))
        except Exception:
            logger.warning(
                "Feature discovery on %s failed, assuming no optional features",
                topic,
                exc_info=True,
            )
            return frozenset()

        logger.debug("Features on %s: %s", topic, sorted(features))
        return features

    # -----------------------------------------------------------------------
    # Base charger contract
    # -----------------------------------------------------------------------

    async def enable(self, enable: bool) -> None:
        """Apply the last known-good current when enabling, 0 when disabling."""
        current = self._current if enable else 0
        await self._max_current_s(current)

    async def enabled(self) -> bool:
        """Read the applied current from the charger (not from the cache)."""
        payload = await self._max_current_g()
        res = _decode(EvseExternalCurrent, self.topics.external_current, payload)
        return res.current >= MIN_CURRENT_MA

    async def status(self) -> ChargeStatus:
        """Map the IEC 61851 state to A/B/C.

        Raises:
            InvalidStatusError: For any state code other than 0, 1 or 2.
        """
        payload = await self._status_g()
        res = _decode(EvseState, self.topics.state, payload)

        status = res.charge_status()
        if status is None:
            raise InvalidStatusError(res.iec61851_state)
        return status

    async def max_current(self, current: int) -> None:
        await self.max_current_millis(float(current))

    async def max_current_millis(self, current: float) -> None:
        """Set the charge current in A, with mA resolution.

        Fractional milliamps are truncated.  The cached current used by
        :meth:`enable` is only updated once a nonzero write succeeded, so
        setting 0 A pauses charging without losing the current to resume at.
        """
        if current < 0:
            raise ValueError(f"invalid current: {current}")

        curr = int(current * 1e3)
        await self._max_current_s(curr)
        if curr > 0:
            self._current = curr

    # -----------------------------------------------------------------------
    # Metering
    # -----------------------------------------------------------------------

    async def _meter_values(self) -> MeterValues:
        payload = await self._meter_g()
        return _decode(MeterValues, self.topics.meter_values, payload)

    async def current_power(self) -> float:
        return (await self._meter_values()).power

    async def total_energy(self) -> float:
        return (await self._meter_values()).energy_abs

    async def _meter_details(self) -> list[float]:
        topic = self.topics.meter_all_values
        payload = await self._meter_details_g()
        try:
            res = _FLOATS.validate_json(payload)
        except ValidationError as err:
            raise PayloadError(topic, str(err)) from err

        if len(res) <= 5:
            raise InvalidLengthError(topic, len(res))
        return res

    async def currents(self) -> PhaseValues:
        """Phase currents L1-L3 in A."""
        res = await self._meter_details()
        return res[3], res[4], res[5]

    async def voltages(self) -> PhaseValues:
        """Phase voltages L1-L3 in V."""
        res = await self._meter_details()
        return res[0], res[1], res[2]

    # -----------------------------------------------------------------------
    # Identification
    # -----------------------------------------------------------------------

    async def identify(self) -> str:
        """Tag id of the current charge session, ``""`` when untagged."""
        payload = await self._charge_g()
        return _decode(ChargeTrackerCurrentCharge, self.topics.current_charge, payload).tag_id

    async def user_config(self) -> UserConfig:
        payload = await self._user_config_g()
        return _decode(UserConfig, self.topics.users_config, payload)

    # -----------------------------------------------------------------------
    # Energy manager
    # -----------------------------------------------------------------------

    async def em_state(self) -> EmState:
        """Read the energy manager state (never cached).

        Raises:
            WarpError: When no energy manager is configured.
        """
        if self._em_state_g is None:
            raise WarpError("energy manager not configured")
        payload = await self._em_state_g()
        return _decode(EmState, self.topics.em_state, payload)

    async def phases_1p3p(self, phases: int) -> None:
        """Request *phases* from the energy manager.

        The control mode is re-read on every call; a request is only sent
        while external control is available.

        Raises:
            ExternalControlUnavailableError: Any mode other than AVAILABLE.
        """
        res = await self.em_state()
        if res.external_control != ExternalControl.AVAILABLE:
            raise ExternalControlUnavailableError(res.external_control_name)

        assert self._phases_s is not None
        await self._phases_s(phases)

