"""
Relocation comparison toolkit.

For each candidate home entered in a travel survey, this package estimates
the monthly cost of housing and of the vehicles the household would own
there, the share of income these costs represent, and the accessibility of
the location by walking, cycling, driving and transit.
"""

from .schemas import (
    AccessibilityResult,
    Address,
    CalculationResult,
    Destination,
    Interview,
    RoutingByModeDistanceAndTime,
    Vehicle,
)
from .model import calculate_monthly_cost
from .accessibility import calculate_accessibility_and_routing

__all__ = [
    "AccessibilityResult",
    "Address",
    "CalculationResult",
    "Destination",
    "Interview",
    "RoutingByModeDistanceAndTime",
    "Vehicle",
    "calculate_monthly_cost",
    "calculate_accessibility_and_routing",
]
