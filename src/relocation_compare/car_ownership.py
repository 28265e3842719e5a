from __future__ import annotations

import asyncio
import logging
import math
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from .exceptions import (
    InferenceError,
    InvalidHouseholdError,
    ModelLoadError,
    PointNotCoveredError,
)
from .income import map_income_to_model_level
from .schemas import Geography, is_point_feature

logger = logging.getLogger(__name__)

# Model input name -> field of the zone data payload
PROXIMITY_INDEX_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("idx_prox_emp", "prox_idx_emp"),
    ("idx_prox_pharma", "prox_idx_pharma"),
    ("idx_prox_garderie", "prox_idx_childcare"),
    ("idx_prox_sante", "prox_idx_health"),
    ("idx_prox_epicerie", "prox_idx_grocery"),
    ("idx_prox_educpri", "prox_idx_educpri"),
    ("idx_prox_educsec", "prox_idx_educsec"),
    ("idx_prox_bibl", "prox_idx_lib"),
    ("idx_prox_parcs", "prox_idx_parks"),
    ("idx_prox_transit", "prox_idx_transit"),
)

LABEL_OUTPUT = "label"


class ZoneLookup(Protocol):
    def get_zones_containing(self, geography: Geography) -> List[Dict[str, Any]]:
        ...


class InferenceSession(Protocol):
    def run(
        self, output_names: Optional[Sequence[str]], input_feed: Dict[str, Any]
    ) -> List[Any]:
        ...


SessionLoader = Callable[[str], InferenceSession]


class ModelHandle:
    """Inference session created on first use and reused afterwards.

    Loading happens under a lock so concurrent first callers wait for the
    same load instead of each creating a session. A failed load leaves the
    handle uninitialized and the next caller retries.
    """

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"

    def __init__(self, model_path: str, loader: Optional[SessionLoader] = None) -> None:
        self.model_path = model_path
        self._loader = loader or _default_loader
        self._session: Optional[InferenceSession] = None
        self._state = self.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    def get_session(self) -> InferenceSession:
        session = self._session
        if session is not None:
            return session
        with self._lock:
            if self._session is None:
                self._state = self.LOADING
                try:
                    self._session = self._loader(self.model_path)
                except ModelLoadError:
                    self._state = self.UNINITIALIZED
                    raise
                except Exception as exc:
                    self._state = self.UNINITIALIZED
                    raise ModelLoadError(
                        f"Could not load car ownership model from {self.model_path}"
                    ) from exc
                self._state = self.READY
                logger.info("Car ownership model loaded from %s", self.model_path)
            return self._session


def _default_loader(model_path: str) -> InferenceSession:
    from .data_sources import load_onnx_session

    return load_onnx_session(model_path)


class CarOwnershipPredictor:
    """Predict the number of vehicles a household would own at a location."""

    def __init__(self, zone_lookup: ZoneLookup, model: ModelHandle) -> None:
        self.zone_lookup = zone_lookup
        self.model = model

    async def predict(
        self,
        *,
        geography: Optional[Geography],
        household_size: int,
        number_permits: int,
        income: Any,
    ) -> int:
        if not is_point_feature(geography):
            raise PointNotCoveredError("Address has no point geography.")

        zones = await asyncio.to_thread(self.zone_lookup.get_zones_containing, geography)
        if not zones:
            raise PointNotCoveredError("Input point is not within any of the imported zones.")
        # Zones of a single data source do not overlap, take the first one
        proximity_indexes = proximity_indexes_from_zone(zones[0].get("data") or {})

        income_level = map_income_to_model_level(income)

        if number_permits > household_size:
            raise InvalidHouseholdError("Number of permits is higher than household size")

        session = await asyncio.to_thread(self.model.get_session)
        inputs = build_model_inputs(
            household_size=household_size,
            number_permits=number_permits,
            income_level=income_level,
            proximity_indexes=proximity_indexes,
        )
        outputs = await asyncio.to_thread(session.run, [LABEL_OUTPUT], inputs)
        return parse_vehicle_count(outputs)


def proximity_indexes_from_zone(zone_data: Dict[str, Any]) -> Dict[str, float]:
    indexes: Dict[str, float] = {}
    for input_name, data_field in PROXIMITY_INDEX_FIELDS:
        value = zone_data.get(data_field)
        try:
            indexes[input_name] = float(value) if value is not None else 0.0
        except (TypeError, ValueError):
            logger.warning("Non numeric proximity index %s=%r, using 0", data_field, value)
            indexes[input_name] = 0.0
    return indexes


def build_model_inputs(
    *,
    household_size: int,
    number_permits: int,
    income_level: int,
    proximity_indexes: Dict[str, float],
) -> Dict[str, np.ndarray]:
    inputs = {
        "perslogi": _float_tensor(household_size),
        "nbPermis": _float_tensor(number_permits),
        # The model was trained with the income level as a categorical string
        "revenu": np.array([[str(income_level)]], dtype=object),
    }
    for name, value in proximity_indexes.items():
        inputs[name] = _float_tensor(value)
    return inputs


def parse_vehicle_count(outputs: Sequence[Any]) -> int:
    if not outputs:
        raise InferenceError("Car Ownership Model returned invalid label")
    label = np.asarray(outputs[0]).ravel()
    if label.size == 0:
        raise InferenceError("Car Ownership Model returned invalid label")

    raw = label[0]
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise InferenceError(f"Invalid car prediction value: {raw!r}") from exc
    if not math.isfinite(value) or value < 0:
        raise InferenceError(f"Invalid car prediction value: {raw!r}")
    return int(value)


def _float_tensor(value: float) -> np.ndarray:
    return np.array([[value]], dtype=np.float32)
