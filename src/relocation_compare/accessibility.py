from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from .config import CalculationConfig
from .data_sources import TransitionRoutingClient
from .routing import (
    get_accessibility_map_from_address_for_simple_modes,
    get_accessibility_map_from_address_for_transit,
    get_routing_from_address_to_destination,
)
from .schemas import (
    AccessibilityResult,
    Address,
    Destination,
    Interview,
    RoutingByModeDistanceAndTime,
)

logger = logging.getLogger(__name__)


async def calculate_accessibility_and_routing(
    address: Address,
    interview: Interview,
    *,
    client: TransitionRoutingClient,
    config: CalculationConfig,
) -> AccessibilityResult:
    """Accessibility maps by mode and routing to each declared destination.

    All service calls run concurrently. A failing destination resolves to
    ``None`` without affecting the others. Without a transit scenario
    nothing is requested and both fields are ``None``.
    """
    scenario = config.transit_scenario_id
    if scenario is None:
        logger.error("No transit scenario configured for routing and accessibility calculation")
        return AccessibilityResult(accessibility_maps_by_mode=None, routing_time_distances=None)

    departure = config.departure_seconds_since_midnight
    destinations = interview.destinations

    transit_map, simple_modes_maps, *routing_results = await asyncio.gather(
        get_accessibility_map_from_address_for_transit(
            address,
            client=client,
            scenario=scenario,
            departure_seconds_since_midnight=departure,
        ),
        get_accessibility_map_from_address_for_simple_modes(
            address,
            client=client,
            scenario=config.simple_modes_scenario_id,
            departure_seconds_since_midnight=departure,
        ),
        *(
            _routing_or_none(address, destination, client=client, scenario=scenario, departure=departure)
            for destination in destinations
        ),
    )

    routing_time_distances: Dict[str, Optional[RoutingByModeDistanceAndTime]] = {
        destination.uuid: result for destination, result in zip(destinations, routing_results)
    }
    return AccessibilityResult(
        accessibility_maps_by_mode={"transit": transit_map, **simple_modes_maps},
        routing_time_distances=routing_time_distances,
    )


async def _routing_or_none(
    address: Address,
    destination: Destination,
    *,
    client: TransitionRoutingClient,
    scenario: str,
    departure: int,
) -> Optional[RoutingByModeDistanceAndTime]:
    try:
        return await get_routing_from_address_to_destination(
            address,
            destination,
            client=client,
            scenario=scenario,
            departure_seconds_since_midnight=departure,
        )
    except Exception:
        logger.exception(
            "Error getting routing from address %s to destination %s",
            address.uuid,
            destination.uuid,
        )
        return None
