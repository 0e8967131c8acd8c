"""
Explicit charger factory table.

The hosting process builds the table with :func:`warp_factories` (and may
merge in its own entries) and passes it to :func:`create_charger`.  Nothing
is registered at import time.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from warp_edge.src.capabilities import Charger, new_warp2_from_config
from warp_edge.src.errors import UnknownChargerTypeError
from warp_edge.src.provider import BusClient

logger = logging.getLogger(__name__)

ChargerFactory = Callable[[BusClient, Mapping[str, Any]], Awaitable[Charger]]


async def _new_warp_fw2_from_config(client: BusClient, other: Mapping[str, Any]) -> Charger:
    logger.warning("Charger type 'warp-fw2' is deprecated, use 'warp2'")
    return await new_warp2_from_config(client, other)


def warp_factories() -> dict[str, ChargerFactory]:
    """Return a fresh factory table for WARP chargers."""
    return {
        "warp2": new_warp2_from_config,
        "warp-fw2": _new_warp_fw2_from_config,
    }


async def create_charger(
    factories: Mapping[str, ChargerFactory],
    type_name: str,
    client: BusClient,
    other: Mapping[str, Any],
) -> Charger:
    """Instantiate the charger registered as *type_name* (case-insensitive).

    Raises:
        UnknownChargerTypeError: No factory is registered under *type_name*.
    """
    lookup = {name.lower(): factory for name, factory in factories.items()}
    factory = lookup.get(type_name.lower())
    if factory is None:
        raise UnknownChargerTypeError(type_name, sorted(factories))
    return await factory(client, other)
