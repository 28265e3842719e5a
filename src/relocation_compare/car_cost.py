from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from .car_ownership import CarOwnershipPredictor
from .exceptions import IncompleteVehicleDataError, RelocationCalculationError
from .schemas import Address, CarCategory, CarCostEstimate, CarEngine, Interview, Vehicle

logger = logging.getLogger(__name__)

# Average annual cost of ownership in CAD, from the CAA driving costs survey.
CAA_SURVEYED_ANNUAL_COSTS: Dict[Tuple[CarCategory, CarEngine], float] = {
    (CarCategory.PASSENGER_CAR, CarEngine.ELECTRIC): 5947.69,
    (CarCategory.PASSENGER_CAR, CarEngine.GAS): 9399.17,
    (CarCategory.SUV, CarEngine.HYBRID): 7831.06,
    (CarCategory.PICKUP, CarEngine.ELECTRIC): 10439.94,
}

# TODO: replace with the published CAA figures for these combinations.
# Placeholder approximations, not survey data.
ESTIMATED_ANNUAL_COSTS: Dict[Tuple[CarCategory, CarEngine], float] = {
    (CarCategory.PASSENGER_CAR, CarEngine.PLUGIN_HYBRID): 7215.42,
    (CarCategory.PASSENGER_CAR, CarEngine.HYBRID): 7382.55,
    (CarCategory.LUXURY_CAR, CarEngine.ELECTRIC): 9862.30,
    (CarCategory.LUXURY_CAR, CarEngine.PLUGIN_HYBRID): 10711.84,
    (CarCategory.LUXURY_CAR, CarEngine.HYBRID): 10238.61,
    (CarCategory.LUXURY_CAR, CarEngine.GAS): 12547.93,
    (CarCategory.SUV, CarEngine.ELECTRIC): 8127.44,
    (CarCategory.SUV, CarEngine.PLUGIN_HYBRID): 8905.16,
    (CarCategory.SUV, CarEngine.GAS): 10693.58,
    (CarCategory.PICKUP, CarEngine.HYBRID): 11206.73,
    (CarCategory.PICKUP, CarEngine.GAS): 13120.85,
    (CarCategory.OTHER, CarEngine.HYBRID): 8614.20,
    (CarCategory.OTHER, CarEngine.GAS): 10250.00,
}

# Not every combination is covered (no plug-in hybrid pickups)
CAA_ANNUAL_COSTS: Dict[Tuple[CarCategory, CarEngine], float] = {
    **ESTIMATED_ANNUAL_COSTS,
    **CAA_SURVEYED_ANNUAL_COSTS,
}


def car_cost_average_caa(category: Optional[str], engine: Optional[str]) -> float:
    """Average annual cost for a vehicle category and engine type."""
    try:
        key = (CarCategory(category), CarEngine(engine))
    except ValueError as exc:
        raise IncompleteVehicleDataError(
            f"Unknown vehicle category or engine type: {category!r}, {engine!r}"
        ) from exc
    try:
        return CAA_ANNUAL_COSTS[key]
    except KeyError as exc:
        raise IncompleteVehicleDataError(
            f"No average cost for {category} vehicles with {engine} engine"
        ) from exc


# Reference vehicle used when the household has no car to average from
AVERAGE_CAR_COST_ANNUAL = car_cost_average_caa(
    CarCategory.PASSENGER_CAR.value, CarEngine.GAS.value
)


async def aggregate_monthly_car_cost(
    address: Address,
    interview: Interview,
    *,
    predictor: CarOwnershipPredictor,
) -> CarCostEstimate:
    """Monthly cost of the vehicles the household would own at the address.

    The predicted number of vehicles is priced at the average annual cost of
    the household's current vehicles, or of the reference vehicle when it
    has none. Any failure (prediction or a single incomplete vehicle) gives
    a ``None`` cost; the vehicle counts are still reported.
    """
    vehicles = interview.vehicles
    predicted: Optional[int] = None
    try:
        predicted = await predictor.predict(
            geography=address.geography,
            household_size=interview.household_size,
            number_permits=interview.number_of_permits,
            income=interview.income,
        )
        average_annual_cost = average_annual_vehicle_cost(vehicles)
        monthly_cost = predicted * (average_annual_cost / 12)
    except RelocationCalculationError as exc:
        logger.error("Error calculating monthly car cost for address %s: %s", address.uuid, exc)
        monthly_cost = None
    except Exception:
        logger.exception("Unexpected error calculating monthly car cost for address %s", address.uuid)
        monthly_cost = None

    return CarCostEstimate(
        monthly_cost=monthly_cost,
        current_number_of_vehicles=len(vehicles),
        predicted_number_of_vehicles=predicted,
    )


def average_annual_vehicle_cost(vehicles: list[Vehicle]) -> float:
    if not vehicles:
        return AVERAGE_CAR_COST_ANNUAL

    total = 0.0
    for vehicle in vehicles:
        if not vehicle.category or not vehicle.engine_type:
            raise IncompleteVehicleDataError(
                f"Incomplete vehicle information for vehicle {vehicle.sequence}"
            )
        total += car_cost_average_caa(vehicle.category, vehicle.engine_type)
    return total / len(vehicles)
