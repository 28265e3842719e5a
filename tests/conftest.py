"""Shared fixtures for the relocation-compare tests."""

import copy
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from relocation_compare.car_ownership import CarOwnershipPredictor


def point(longitude, latitude):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [longitude, latitude]},
        "properties": {},
    }


def polygon(duration_seconds, area=1000000):
    return {
        "type": "Feature",
        "geometry": {
            "type": "MultiPolygon",
            "coordinates": [[[[-73.51, 45.51], [-73.49, 45.51], [-73.49, 45.49], [-73.51, 45.51]]]],
        },
        "properties": {"durationSeconds": duration_seconds, "areaSqM": area},
    }


ZONE_DATA = {
    "prox_idx_emp": 1,
    "prox_idx_pharma": 0.5,
    "prox_idx_childcare": None,
    "prox_idx_health": 0.1,
    "prox_idx_grocery": 0.9,
    "prox_idx_educpri": 0.8,
    "prox_idx_educsec": 1,
    "prox_idx_lib": None,
    "prox_idx_parks": 0.2,
    "prox_idx_transit": 0.3,
}


class FakeSession:
    """Stands in for an ONNX inference session."""

    def __init__(self, label=(1,)):
        self.label = label
        self.calls = []

    def run(self, output_names, input_feed):
        self.calls.append((output_names, input_feed))
        return [np.array(self.label)]


@pytest.fixture
def home_point():
    return point(-73.5, 45.5)


@pytest.fixture
def zone_lookup():
    lookup = MagicMock()
    lookup.get_zones_containing.return_value = [{"id": 1, "data": dict(ZONE_DATA)}]
    return lookup


@pytest.fixture
def predictor():
    """Predictor whose model always predicts no vehicle."""
    mocked = MagicMock(spec=CarOwnershipPredictor)
    mocked.predict = AsyncMock(return_value=0)
    return mocked


@pytest.fixture
def base_response():
    return copy.deepcopy(
        {
            "household": {
                "income": 60000,
                "persons": {
                    "person-1": {"_uuid": "person-1", "_sequence": 1, "drivingLicenseOwnership": "yes"},
                    "person-2": {"_uuid": "person-2", "_sequence": 2, "drivingLicenseOwnership": "no"},
                },
            },
        }
    )
