from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# GeoJSON feature, passed through untouched to the external services
Geography = Dict[str, Any]

CALCULATING = "calculating"


class Ownership(str, Enum):
    RENT = "rent"
    BUY = "buy"


class CarCategory(str, Enum):
    PASSENGER_CAR = "passengerCar"
    LUXURY_CAR = "luxuryCar"
    PICKUP = "pickup"
    SUV = "suv"
    OTHER = "other"


class CarEngine(str, Enum):
    ELECTRIC = "electric"
    PLUGIN_HYBRID = "pluginHybrid"
    HYBRID = "hybrid"
    GAS = "gas"


def is_point_feature(geography: Optional[Geography]) -> bool:
    if not isinstance(geography, dict):
        return False
    geometry = geography.get("geometry")
    return isinstance(geometry, dict) and geometry.get("type") == "Point"


def _sorted_entries(collection: Any) -> List[Dict[str, Any]]:
    """Keep the entries of an uuid-keyed response group that carry a sequence."""
    if not isinstance(collection, dict):
        return []
    entries = [
        entry
        for entry in collection.values()
        if isinstance(entry, dict)
        and isinstance(entry.get("_sequence"), int)
        and not isinstance(entry.get("_sequence"), bool)
    ]
    return sorted(entries, key=lambda entry: entry["_sequence"])


@dataclass
class Person:
    uuid: str
    sequence: int
    driving_license_ownership: Optional[str] = None

    @property
    def has_driving_license(self) -> bool:
        return self.driving_license_ownership == "yes"

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Person":
        return cls(
            uuid=data.get("_uuid", ""),
            sequence=data["_sequence"],
            driving_license_ownership=data.get("drivingLicenseOwnership"),
        )


@dataclass
class Vehicle:
    """A vehicle currently owned by the household.

    ``category`` and ``engine_type`` keep the raw answers, which may be
    missing or outside the known enums.
    """

    sequence: int
    uuid: str
    nickname: Optional[str] = None
    category: Optional[str] = None
    engine_type: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Vehicle":
        return cls(
            sequence=data["_sequence"],
            uuid=data.get("_uuid", ""),
            nickname=data.get("nickname"),
            category=data.get("category"),
            engine_type=data.get("engineType"),
        )


@dataclass
class Destination:
    sequence: int
    uuid: str
    name: Optional[str] = None
    geography: Optional[Geography] = None
    frequency_weekly: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Destination":
        return cls(
            sequence=data["_sequence"],
            uuid=data.get("_uuid", ""),
            name=data.get("name"),
            geography=data.get("geography"),
            frequency_weekly=data.get("frequencyWeekly"),
        )


@dataclass
class Address:
    """A candidate home location and its housing cost answers.

    Only the field group matching ``ownership`` is read: rent fields for
    ``"rent"``, mortgage fields for ``"buy"``.
    """

    sequence: int
    uuid: str
    name: Optional[str] = None
    geography: Optional[Geography] = None
    ownership: Optional[str] = None
    rent_monthly: Any = None
    are_utilities_included: Optional[bool] = None
    utilities_monthly: Any = None
    mortgage: Any = None
    interest_rate: Any = None  # yearly, as a percentage
    amortization_period_in_years: Any = None  # numeric string, e.g. "25"
    taxes_yearly: Any = None
    monthly_cost: Optional["CalculationResult"] = None
    accessibility_maps_by_mode: Union[None, str, Dict[str, Any]] = None
    routing_time_distances: Union[None, str, Dict[str, Any]] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Address":
        return cls(
            sequence=data["_sequence"],
            uuid=data.get("_uuid", ""),
            name=data.get("name"),
            geography=data.get("geography"),
            ownership=data.get("ownership"),
            rent_monthly=data.get("rentMonthly"),
            are_utilities_included=data.get("areUtilitiesIncluded"),
            utilities_monthly=data.get("utilitiesMonthly"),
            mortgage=data.get("mortgage"),
            interest_rate=data.get("interestRate"),
            amortization_period_in_years=data.get("amortizationPeriodInYears"),
            taxes_yearly=data.get("taxesYearly"),
            accessibility_maps_by_mode=data.get("accessibilityMapsByMode"),
            routing_time_distances=data.get("routingTimeDistances"),
        )


@dataclass
class Interview:
    """Read-only view of the survey response used by the calculations."""

    persons: List[Person] = field(default_factory=list)
    vehicles: List[Vehicle] = field(default_factory=list)
    destinations: List[Destination] = field(default_factory=list)
    addresses: List[Address] = field(default_factory=list)
    income: Any = None

    @property
    def household_size(self) -> int:
        return len(self.persons)

    @property
    def number_of_permits(self) -> int:
        return sum(1 for person in self.persons if person.has_driving_license)

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "Interview":
        household = response.get("household") or {}
        return cls(
            persons=[
                Person.from_response(entry)
                for entry in _sorted_entries(household.get("persons"))
            ],
            vehicles=[
                Vehicle.from_response(entry)
                for entry in _sorted_entries(response.get("cars"))
            ],
            destinations=[
                Destination.from_response(entry)
                for entry in _sorted_entries(response.get("destinations"))
            ],
            addresses=[
                Address.from_response(entry)
                for entry in _sorted_entries(response.get("addresses"))
            ],
            income=household.get("income"),
        )


@dataclass(frozen=True)
class CarCostEstimate:
    monthly_cost: Optional[float]
    current_number_of_vehicles: int
    predicted_number_of_vehicles: Optional[int]


@dataclass(frozen=True)
class CalculationResult:
    housing_cost_monthly: Optional[float]
    car_cost_monthly: Optional[float]
    housing_and_transport_cost_percentage_of_income: Optional[int]
    total_cost_monthly: Optional[float]
    current_number_of_vehicles: Optional[int]
    predicted_number_of_vehicles: Optional[int]

    def to_response(self) -> Dict[str, Any]:
        return {
            "housingCostMonthly": self.housing_cost_monthly,
            "carCostMonthly": self.car_cost_monthly,
            "housingAndTransportCostPercentageOfIncome": (
                self.housing_and_transport_cost_percentage_of_income
            ),
            "totalCostMonthly": self.total_cost_monthly,
            "currentNumberOfVehicles": self.current_number_of_vehicles,
            "predictedNumberOfVehicles": self.predicted_number_of_vehicles,
        }


@dataclass(frozen=True)
class TimeAndDistance:
    """Travel time and distance for one mode.

    An unresolved mode keeps only its identity: no sequence, distance or time.
    """

    mode: str
    sequence: Optional[int] = None
    distance_meters: Optional[float] = None
    travel_time_seconds: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.distance_meters is not None and self.travel_time_seconds is not None

    def to_response(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"_uuid": self.mode}
        if self.sequence is not None:
            payload["_sequence"] = self.sequence
        if self.distance_meters is not None:
            payload["distanceMeters"] = self.distance_meters
        if self.travel_time_seconds is not None:
            payload["travelTimeSeconds"] = self.travel_time_seconds
        return payload


@dataclass(frozen=True)
class RoutingByModeDistanceAndTime:
    uuid: str
    sequence: int
    results_by_mode: Dict[str, TimeAndDistance]

    def to_response(self) -> Dict[str, Any]:
        return {
            "_uuid": self.uuid,
            "_sequence": self.sequence,
            "resultsByMode": {
                mode: result.to_response()
                for mode, result in self.results_by_mode.items()
            },
        }


@dataclass(frozen=True)
class AccessibilityMapDurations:
    """Isochrone polygons bound to the nominal 15, 30 and 45 minute buckets."""

    duration_15_minutes: Optional[Geography] = None
    duration_30_minutes: Optional[Geography] = None
    duration_45_minutes: Optional[Geography] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "duration15Minutes": self.duration_15_minutes,
            "duration30Minutes": self.duration_30_minutes,
            "duration45Minutes": self.duration_45_minutes,
        }


@dataclass(frozen=True)
class AccessibilityResult:
    accessibility_maps_by_mode: Optional[Dict[str, Optional[AccessibilityMapDurations]]]
    routing_time_distances: Optional[Dict[str, Optional[RoutingByModeDistanceAndTime]]]

    def to_response(self) -> Dict[str, Any]:
        maps = None
        if self.accessibility_maps_by_mode is not None:
            maps = {
                mode: durations.to_response() if durations is not None else None
                for mode, durations in self.accessibility_maps_by_mode.items()
            }
        routing = None
        if self.routing_time_distances is not None:
            routing = {
                uuid: result.to_response() if result is not None else None
                for uuid, result in self.routing_time_distances.items()
            }
        return {"accessibilityMapsByMode": maps, "routingTimeDistances": routing}
