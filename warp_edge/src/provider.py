"""
Bus-backed value providers: timeout-bounded getters and templated setters.

The charger publishes its state on retained topics that change rarely, plus a
``low_level_state`` topic that is republished continuously while the device
is alive.  Reads are therefore two-staged:

- The *anchor* topic must have produced a value within the read window,
  otherwise the device is considered offline (:class:`OutdatedError`).
- The requested topic then returns its most recent payload.

No read waits without a bound: the first value on any topic is awaited for
at most the configured window before :class:`ReadTimeoutError` is raised.

Setters render a ``string.Template`` JSON body and publish it.  They do not
wait for an acknowledgement from the device.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from string import Template
from typing import Protocol

from warp_edge.src.errors import OutdatedError, ReadTimeoutError

logger = logging.getLogger(__name__)

StringGetter = Callable[[], Awaitable[str]]
IntSetter = Callable[[int], Awaitable[None]]


class BusClient(Protocol):
    """Shared publish/subscribe handle owned by the hosting process.

    ``listen`` registers a callback for every payload received on *topic*,
    including the retained one.  Callbacks may run on any thread, e.g. a
    client's network thread.  The client must be safe for concurrent use by
    several adapters.
    """

    def listen(self, topic: str, callback: Callable[[str], None]) -> None: ...

    async def publish(self, topic: str, payload: str) -> None: ...


# ---------------------------------------------------------------------------
# Subscription-fed value
# ---------------------------------------------------------------------------


class TopicValue:
    """Latest payload received on one topic.

    Subscribes on construction.  ``get()`` waits up to *wait_s* for the
    first payload and, when *max_age_s* is positive, rejects a payload
    older than that.

    Args:
        client: Shared bus client.
        topic: Topic to subscribe to.
        wait_s: Maximum time to wait for the first payload.
        max_age_s: Maximum payload age; ``0`` disables the age check.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        client: BusClient,
        topic: str,
        *,
        wait_s: float,
        max_age_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.topic = topic
        self._wait_s = wait_s
        self._max_age_s = max_age_s
        self._clock = clock
        self._last: tuple[float, str] | None = None
        self._received = asyncio.Event()
        # Loop of the first reader; set lazily since construction may happen
        # outside a running loop.
        self._loop: asyncio.AbstractEventLoop | None = None
        client.listen(topic, self._on_message)

    def _on_message(self, payload: str) -> None:
        logger.debug("recv %s: %s", self.topic, payload)
        # Single assignment keeps timestamp and payload consistent for readers.
        self._last = (self._clock(), payload)

        loop = self._loop
        if loop is None or loop.is_closed():
            self._received.set()
        else:
            # asyncio.Event is not thread-safe; wake readers on their own loop.
            loop.call_soon_threadsafe(self._received.set)

    async def get(self) -> str:
        """Return the latest payload.

        Raises:
            ReadTimeoutError: No payload arrived within *wait_s*.
            OutdatedError: The latest payload is older than *max_age_s*.
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        if self._last is None:
            try:
                await asyncio.wait_for(self._received.wait(), self._wait_s)
            except TimeoutError:
                raise ReadTimeoutError(self.topic, self._wait_s) from None

        updated, payload = self._last  # type: ignore[misc]
        if self._max_age_s > 0:
            age = self._clock() - updated
            if age > self._max_age_s:
                raise OutdatedError(self.topic, self._max_age_s, age)

        return payload


# ---------------------------------------------------------------------------
# Timeout handler
# ---------------------------------------------------------------------------


class TimeoutHandler:
    """Gates reads of retained topics on the freshness of an anchor topic.

    Args:
        anchor: A :class:`TopicValue` with a positive ``max_age_s`` that the
            device republishes continuously while it is online.
    """

    def __init__(self, anchor: TopicValue) -> None:
        self._anchor = anchor

    def string_getter(self, value: TopicValue) -> StringGetter:
        """Wrap *value* so that each read first checks the anchor."""

        async def get() -> str:
            await self._anchor.get()
            return await value.get()

        return get


# ---------------------------------------------------------------------------
# Setters
# ---------------------------------------------------------------------------


def int_setter(
    client: BusClient,
    topic: str,
    *,
    payload: str,
    param: str,
) -> IntSetter:
    """Return a setter publishing *payload* with ``${param}`` substituted.

    Args:
        client: Shared bus client.
        topic: Topic to publish to.
        payload: ``string.Template`` body, e.g. ``'{ "current": ${maxcurrent} }'``.
        param: Template placeholder receiving the integer value.
    """
    template = Template(payload)

    async def set_value(value: int) -> None:
        body = template.substitute({param: int(value)})
        logger.debug("send %s: %s", topic, body)
        await client.publish(topic, body)

    return set_value
