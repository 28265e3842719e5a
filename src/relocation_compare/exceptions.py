"""Exception hierarchy for the relocation cost and accessibility calculations."""


class RelocationCalculationError(Exception):
    """Base exception for all calculation errors."""


class ConfigurationError(RelocationCalculationError):
    """Raised when configuration is invalid or missing."""


class IncompleteVehicleDataError(RelocationCalculationError):
    """Raised when a vehicle cannot be costed (missing or unmapped category/engine)."""


class CarOwnershipPredictionError(RelocationCalculationError):
    """Base exception for car ownership prediction failures."""


class PointNotCoveredError(CarOwnershipPredictionError):
    """Raised when no imported zone contains the address location."""


class InvalidHouseholdError(CarOwnershipPredictionError):
    """Raised when the household attributes cannot feed the model."""


class InferenceError(CarOwnershipPredictionError):
    """Raised when the model output cannot be read as a vehicle count."""


class ModelLoadError(RelocationCalculationError):
    """Raised when the inference session cannot be created."""


class RoutingServiceError(RelocationCalculationError):
    """Raised when the routing service cannot be reached or answers garbage."""
