from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import requests
from google.cloud import bigquery

from .exceptions import ModelLoadError, RoutingServiceError
from .schemas import Geography, is_point_feature


class TransitionRoutingClient:
    """Thin wrapper around the routing service API (isochrones and routes)."""

    ACCESSIBILITY_PATH = "/api/v1/accessibility"
    ROUTE_PATH = "/api/v1/route"

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        *,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_accessibility_map(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """Request isochrone polygons around a point.

        The answer has a ``status`` and, on success, a ``polygons`` feature
        collection whose features carry ``durationSeconds`` and ``areaSqM``.
        """
        return self._post(self.ACCESSIBILITY_PATH, parameters)

    def calculate_time_distance_by_mode(
        self, modes: Sequence[str], parameters: Dict[str, Any]
    ) -> Dict[str, Dict[str, Any]]:
        """Request travel time and distance between two points for each mode.

        The answer maps each mode to ``{"status", "distanceM", "travelTimeS"}``.
        """
        payload = dict(parameters)
        payload["routingModes"] = list(modes)
        data = self._post(self.ROUTE_PATH, payload)
        results = data.get("resultsByMode", data)
        return {mode: results.get(mode) or {"status": "error"} for mode in modes}

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(
                url, json=payload, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise RoutingServiceError(f"Routing service request to {url} failed") from exc
        except ValueError as exc:
            raise RoutingServiceError(f"Routing service at {url} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise RoutingServiceError(f"Unexpected routing service answer from {url}")
        return data


class BigQueryZoneLookup:
    """Find the imported zones (with proximity indexes) containing a point."""

    def __init__(
        self,
        *,
        table: str,
        client: Optional[bigquery.Client] = None,
        project: Optional[str] = None,
    ) -> None:
        if client is None:
            self.client = bigquery.Client(project=project)
        else:
            self.client = client
        self.table = table

    def get_zones_containing(self, geography: Geography) -> List[Dict[str, Any]]:
        if not is_point_feature(geography):
            raise ValueError("Zone lookup requires a point feature")
        longitude, latitude = geography["geometry"]["coordinates"][:2]
        query = f"""
            SELECT
              id,
              TO_JSON_STRING(data) AS data
            FROM `{self.table}`
            WHERE ST_CONTAINS(geography, ST_GEOGPOINT(@longitude, @latitude))
            ORDER BY id
        """
        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter("longitude", "FLOAT64", float(longitude)),
                bigquery.ScalarQueryParameter("latitude", "FLOAT64", float(latitude)),
            ]
        )
        query_job = self.client.query(query, job_config=job_config)
        return [
            {"id": row["id"], "data": _zone_data(row["data"])}
            for row in query_job.result()
        ]


def load_onnx_session(model_path: str) -> Any:
    """Create an ONNX runtime inference session for the car ownership model."""
    import onnxruntime

    try:
        return onnxruntime.InferenceSession(
            model_path, providers=["CPUExecutionProvider"]
        )
    except Exception as exc:
        raise ModelLoadError(f"Could not load ONNX model {model_path}") from exc


def _zone_data(value: Any) -> Dict[str, Any]:
    if value in (None, "", "null"):
        return {}
    if isinstance(value, dict):
        return value
    try:
        data = json.loads(value)
    except ValueError as exc:
        raise ValueError(f"Could not decode zone data '{value}'") from exc
    return data if isinstance(data, dict) else {}
