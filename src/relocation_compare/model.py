from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional

from .car_cost import aggregate_monthly_car_cost
from .car_ownership import CarOwnershipPredictor
from .income import estimate_annual_income
from .schemas import Address, CalculationResult, Interview, Ownership

logger = logging.getLogger(__name__)

_LEADING_YEARS_PATTERN = re.compile(r"\s*(\d+)")


async def calculate_monthly_cost(
    address: Address,
    interview: Interview,
    *,
    predictor: CarOwnershipPredictor,
) -> CalculationResult:
    """Compute the monthly housing and car costs associated with an address.

    Housing and car costs are independent: a failed car cost leaves the
    housing cost intact. The share of income and the total are only given
    when both costs are known.
    """
    housing_cost = calculate_monthly_housing_cost(address)
    car_cost = await aggregate_monthly_car_cost(address, interview, predictor=predictor)

    percentage = None
    total_cost = None
    if housing_cost is not None and car_cost.monthly_cost is not None:
        # Only car ownership counts as transport cost for now
        percentage = calculate_percentage_income_for_housing_and_transport(
            monthly_housing_cost=housing_cost,
            monthly_transport_cost=car_cost.monthly_cost,
            income=interview.income,
        )
        total_cost = housing_cost + car_cost.monthly_cost

    return CalculationResult(
        housing_cost_monthly=housing_cost,
        car_cost_monthly=car_cost.monthly_cost,
        housing_and_transport_cost_percentage_of_income=percentage,
        total_cost_monthly=total_cost,
        current_number_of_vehicles=car_cost.current_number_of_vehicles,
        predicted_number_of_vehicles=car_cost.predicted_number_of_vehicles,
    )


def calculate_monthly_housing_cost(address: Address) -> Optional[float]:
    if address.ownership == Ownership.RENT.value:
        return _monthly_rent_cost(address)
    if address.ownership == Ownership.BUY.value:
        return _monthly_ownership_cost(address)
    logger.error(
        "Unknown ownership type %r for address %s when calculating monthly housing cost",
        address.ownership,
        address.uuid,
    )
    return None


def _monthly_rent_cost(address: Address) -> Optional[float]:
    utilities_excluded = address.are_utilities_included is False
    if not _is_number(address.rent_monthly) or (
        utilities_excluded and not _is_number(address.utilities_monthly)
    ):
        logger.error(
            "Incomplete rent or utilities information for address %s", address.uuid
        )
        return None
    if utilities_excluded:
        return address.rent_monthly + address.utilities_monthly
    return address.rent_monthly


def _monthly_ownership_cost(address: Address) -> Optional[float]:
    if (
        not _is_number(address.mortgage)
        or not _is_number(address.interest_rate)
        or not isinstance(address.amortization_period_in_years, str)
    ):
        logger.error("Incomplete mortgage information for address %s", address.uuid)
        return None
    amortization_years = _parse_amortization_years(address.amortization_period_in_years)
    if amortization_years is None or (address.mortgage != 0 and amortization_years <= 0):
        logger.error(
            "Invalid amortization period %r for address %s",
            address.amortization_period_in_years,
            address.uuid,
        )
        return None

    mortgage_payment = 0.0
    if address.mortgage != 0:
        mortgage_payment = monthly_mortgage_payment(
            address.mortgage, address.interest_rate / 100, amortization_years * 12
        )
    taxes_monthly = address.taxes_yearly / 12 if _is_number(address.taxes_yearly) else 0
    utilities_monthly = (
        address.utilities_monthly if _is_number(address.utilities_monthly) else 0
    )
    return mortgage_payment + taxes_monthly + utilities_monthly


def calculate_percentage_income_for_housing_and_transport(
    *,
    monthly_housing_cost: float,
    monthly_transport_cost: float,
    income: Any,
) -> Optional[int]:
    """Share of the yearly income spent on housing and transport, in percent."""
    annual_income = estimate_annual_income(income)
    if annual_income is None:
        return None

    annual_cost = monthly_housing_cost * 12 + monthly_transport_cost * 12
    return _round_half_up(annual_cost / annual_income * 100)


def monthly_mortgage_payment(
    principal: float, annual_rate: float, term_months: int
) -> float:
    """Fixed monthly payment for a loan; ``annual_rate`` is a decimal (0.05)."""
    if term_months <= 0:
        raise ValueError("term_months must be positive")
    if principal <= 0:
        return 0.0
    monthly_rate = annual_to_monthly_rate(annual_rate)
    if monthly_rate == 0:
        return principal / term_months
    growth = (1 + monthly_rate) ** term_months
    return principal * monthly_rate * growth / (growth - 1)


def annual_to_monthly_rate(annual_rate: float) -> float:
    if annual_rate <= 0:
        return 0.0
    return annual_rate / 12.0


def _parse_amortization_years(value: str) -> Optional[int]:
    # Leading whole years: "25" and "25.5" give 25
    if "_" in value:
        return None
    match = _LEADING_YEARS_PATTERN.match(value)
    if match is None:
        return None
    return int(match.group(1))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
