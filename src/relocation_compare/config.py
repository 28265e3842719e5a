"""Configuration for the cost and accessibility calculations."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_MODEL_PATH = "models/xgb_car_ownership_model.onnx"
# 8 AM
DEFAULT_DEPARTURE_SECONDS = 8 * 3600


@dataclass
class CalculationConfig:
    """Settings shared by the calculations and their external services."""

    transit_scenario_id: Optional[str] = None
    simple_modes_scenario_id: Optional[str] = None
    routing_api_url: str = "http://localhost:8080"
    routing_api_token: Optional[str] = None
    routing_timeout_seconds: float = 60.0
    car_ownership_model_path: str = DEFAULT_MODEL_PATH
    zones_table: Optional[str] = None
    gcp_project: Optional[str] = None
    departure_seconds_since_midnight: int = DEFAULT_DEPARTURE_SECONDS
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        if not 0 <= self.departure_seconds_since_midnight < 24 * 3600:
            raise ValueError("departure_seconds_since_midnight must be within a day")
        if self.routing_timeout_seconds <= 0:
            raise ValueError("routing_timeout_seconds must be positive")

    @classmethod
    def from_env(cls) -> "CalculationConfig":
        """Create config from environment variables."""
        return cls(
            transit_scenario_id=os.getenv("TRANSIT_SCENARIO_ID") or None,
            simple_modes_scenario_id=os.getenv("SIMPLE_MODES_SCENARIO_ID") or None,
            routing_api_url=os.getenv("TRANSITION_API_URL", "http://localhost:8080"),
            routing_api_token=os.getenv("TRANSITION_API_TOKEN") or None,
            routing_timeout_seconds=float(os.getenv("TRANSITION_API_TIMEOUT", "60")),
            car_ownership_model_path=os.getenv(
                "CAR_OWNERSHIP_MODEL_PATH", DEFAULT_MODEL_PATH
            ),
            zones_table=os.getenv("ZONES_TABLE") or None,
            gcp_project=os.getenv("GCP_PROJECT") or None,
            departure_seconds_since_midnight=int(
                os.getenv(
                    "DEPARTURE_SECONDS_SINCE_MIDNIGHT", str(DEFAULT_DEPARTURE_SECONDS)
                )
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
