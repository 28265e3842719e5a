"""Isochrones and travel times from a candidate address.

The routing service only computes transit accessibility maps. Walking,
cycling and driving isochrones are emulated with an empty transit scenario
where the whole trip is access/egress walking: the travel time ceiling is
scaled by how much faster the mode is than walking, and the polygons are
mapped back to the nominal 15, 30 and 45 minute buckets.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Any, Dict, Optional, Sequence

from .config import DEFAULT_DEPARTURE_SECONDS
from .data_sources import TransitionRoutingClient
from .schemas import (
    AccessibilityMapDurations,
    Address,
    Destination,
    Geography,
    RoutingByModeDistanceAndTime,
    TimeAndDistance,
)

logger = logging.getLogger(__name__)

NUMBER_OF_POLYGONS = 3
DEFAULT_TIME_MAPPINGS = (15, 30, 45)

WALKING_SPEED_KM_PER_HOUR = 5
CYCLING_SPEED_KM_PER_HOUR = 15
DRIVING_SPEED_KM_PER_HOUR = 40
CYCLING_TIMING_FACTOR = CYCLING_SPEED_KM_PER_HOUR // WALKING_SPEED_KM_PER_HOUR
DRIVING_TIMING_FACTOR = DRIVING_SPEED_KM_PER_HOUR // WALKING_SPEED_KM_PER_HOUR

CALCULATION_MODES = ("transit", "walking", "cycling", "driving")
SIMPLE_MODES = ("walking", "cycling", "driving")


async def get_accessibility_map_from_address(
    address: Address,
    *,
    client: TransitionRoutingClient,
    scenario: Optional[str],
    extra_parameters: Optional[Dict[str, Any]] = None,
    time_mappings: Sequence[int] = DEFAULT_TIME_MAPPINGS,
    departure_seconds_since_midnight: int = DEFAULT_DEPARTURE_SECONDS,
) -> Optional[AccessibilityMapDurations]:
    """Get 3 isochrone polygons around the address, one per time mapping."""
    if not address.geography:
        logger.error("No geography found for address %s when getting accessibility map", address.uuid)
        return None
    if scenario is None:
        logger.error("No transit scenario configured for accessibility map calculation")
        return None

    parameters: Dict[str, Any] = {
        "point": address.geography,
        "transitScenario": scenario,
        "numberOfPolygons": NUMBER_OF_POLYGONS,
        "calculatePois": True,
        "maxTotalTravelTimeMinutes": time_mappings[-1],
        "departureSecondsSinceMidnight": departure_seconds_since_midnight,
    }
    parameters.update(extra_parameters or {})

    try:
        response = await asyncio.to_thread(client.get_accessibility_map, parameters)
        if response.get("status") != "success":
            logger.info("Error getting accessibility map: %s", json.dumps(response, default=str))
            return None

        features = (response.get("polygons") or {}).get("features") or []
        fifteen, thirty, forty_five = (
            _find_polygon_by_duration(features, minutes * 60) for minutes in time_mappings
        )
    except Exception:
        logger.exception("Error getting accessibility map from address %s", address.uuid)
        return None

    return AccessibilityMapDurations(
        duration_15_minutes=fifteen,
        duration_30_minutes=thirty,
        duration_45_minutes=forty_five,
    )


def _find_polygon_by_duration(features: Sequence[Geography], duration_seconds: float) -> Optional[Geography]:
    for feature in features:
        properties = feature.get("properties") or {}
        if properties.get("durationSeconds") == duration_seconds:
            return feature
    return None


async def get_accessibility_map_from_address_for_transit(
    address: Address,
    *,
    client: TransitionRoutingClient,
    scenario: Optional[str],
    departure_seconds_since_midnight: int = DEFAULT_DEPARTURE_SECONDS,
) -> Optional[AccessibilityMapDurations]:
    return await get_accessibility_map_from_address(
        address,
        client=client,
        scenario=scenario,
        departure_seconds_since_midnight=departure_seconds_since_midnight,
    )


async def get_accessibility_map_from_address_for_simple_modes(
    address: Address,
    *,
    client: TransitionRoutingClient,
    scenario: Optional[str],
    departure_seconds_since_midnight: int = DEFAULT_DEPARTURE_SECONDS,
) -> Dict[str, Optional[AccessibilityMapDurations]]:
    """Walking, cycling and driving isochrones, requested concurrently."""
    max_minutes = DEFAULT_TIME_MAPPINGS[-1]

    def scaled(factor: int) -> Sequence[int]:
        return tuple(minutes * factor for minutes in DEFAULT_TIME_MAPPINGS)

    requests_by_mode = {
        "walking": (
            {
                "maxAccessEgressTravelTimeMinutes": max_minutes,
                "walkingSpeedKmPerHour": WALKING_SPEED_KM_PER_HOUR,
            },
            DEFAULT_TIME_MAPPINGS,
        ),
        "cycling": (
            {"maxAccessEgressTravelTimeMinutes": max_minutes * CYCLING_TIMING_FACTOR},
            scaled(CYCLING_TIMING_FACTOR),
        ),
        "driving": (
            {"maxAccessEgressTravelTimeMinutes": max_minutes * DRIVING_TIMING_FACTOR},
            scaled(DRIVING_TIMING_FACTOR),
        ),
    }
    results = await asyncio.gather(
        *(
            get_accessibility_map_from_address(
                address,
                client=client,
                scenario=scenario,
                extra_parameters=extra_parameters,
                time_mappings=time_mappings,
                departure_seconds_since_midnight=departure_seconds_since_midnight,
            )
            for extra_parameters, time_mappings in requests_by_mode.values()
        )
    )
    return dict(zip(requests_by_mode, results))


async def get_routing_from_address_to_destination(
    address: Address,
    destination: Destination,
    *,
    client: TransitionRoutingClient,
    scenario: Optional[str],
    departure_seconds_since_midnight: int = DEFAULT_DEPARTURE_SECONDS,
    departure_date: Optional[date] = None,
) -> Optional[RoutingByModeDistanceAndTime]:
    """Travel time and distance by mode from the address to a destination.

    Every mode key is present in the result; modes without a route only
    carry their identifier.
    """
    if not address.geography:
        logger.error("No geography found for address %s when getting routing", address.uuid)
        return None
    if not destination.geography:
        logger.error("No geography found for destination %s when getting routing", destination.uuid)
        return None
    if scenario is None:
        logger.error("No transit scenario configured for routing calculation")
        return None

    parameters = {
        "origin": address.geography,
        "destination": destination.geography,
        "departureSecondsSinceMidnight": departure_seconds_since_midnight,
        # Any weekday works, the scenario defines the service
        "departureDateString": (departure_date or date.today()).isoformat(),
        "transitScenario": scenario,
    }
    try:
        time_and_distances = await asyncio.to_thread(
            client.calculate_time_distance_by_mode, list(CALCULATION_MODES), parameters
        )
        results_by_mode = _results_by_mode(time_and_distances)
    except Exception:
        logger.exception(
            "Error getting routing from address %s to destination %s",
            address.uuid,
            destination.uuid,
        )
        return None

    return RoutingByModeDistanceAndTime(
        uuid=destination.uuid,
        sequence=destination.sequence,
        results_by_mode=results_by_mode,
    )


def _results_by_mode(time_and_distances: Dict[str, Any]) -> Dict[str, TimeAndDistance]:
    results_by_mode: Dict[str, TimeAndDistance] = {}
    for index, mode in enumerate(CALCULATION_MODES):
        mode_result = time_and_distances.get(mode) or {}
        if mode_result.get("status") != "success":
            logger.info("No routing found for mode %s: %s", mode, json.dumps(mode_result, default=str))
            results_by_mode[mode] = TimeAndDistance(mode=mode)
            continue
        results_by_mode[mode] = TimeAndDistance(
            mode=mode,
            sequence=index,
            distance_meters=mode_result.get("distanceM"),
            travel_time_seconds=mode_result.get("travelTimeS"),
        )
    return results_by_mode
