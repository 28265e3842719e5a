"""Server-side update of the results section of the survey.

Costs are computed right away for every address. Accessibility and routing
can be slow, so they are registered as deferred background operations and
the fields hold the ``"calculating"`` sentinel until they complete.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .accessibility import calculate_accessibility_and_routing
from .car_ownership import CarOwnershipPredictor, ModelHandle
from .config import CalculationConfig
from .data_sources import BigQueryZoneLookup, TransitionRoutingClient
from .exceptions import ConfigurationError
from .model import calculate_monthly_cost
from .schemas import (
    CALCULATING,
    AccessibilityResult,
    Address,
    CalculationResult,
    Interview,
    is_point_feature,
)

logger = logging.getLogger(__name__)

RESULTS_SECTION = "results"

IsCancelled = Callable[[], bool]
Operation = Callable[[IsCancelled], Awaitable[Dict[str, Any]]]


@dataclass
class AddressCalculator:
    """Bundle of the collaborators needed to calculate results for addresses."""

    predictor: CarOwnershipPredictor
    client: TransitionRoutingClient
    config: CalculationConfig

    @classmethod
    def from_config(cls, config: CalculationConfig) -> "AddressCalculator":
        if not config.zones_table:
            raise ConfigurationError("ZONES_TABLE must be set to predict car ownership")
        zone_lookup = BigQueryZoneLookup(table=config.zones_table, project=config.gcp_project)
        predictor = CarOwnershipPredictor(
            zone_lookup=zone_lookup,
            model=ModelHandle(config.car_ownership_model_path),
        )
        client = TransitionRoutingClient(
            config.routing_api_url,
            config.routing_api_token,
            timeout=config.routing_timeout_seconds,
        )
        return cls(predictor=predictor, client=client, config=config)

    async def monthly_cost(self, address: Address, interview: Interview) -> CalculationResult:
        return await calculate_monthly_cost(address, interview, predictor=self.predictor)

    async def accessibility_and_routing(
        self, address: Address, interview: Interview
    ) -> AccessibilityResult:
        return await calculate_accessibility_and_routing(
            address, interview, client=self.client, config=self.config
        )


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def is_cancelled(self) -> bool:
        return self._cancelled


@dataclass
class DeferredOperation:
    op_name: str
    operation: Operation
    op_unique_id: int = 1


@dataclass
class OperationHandle:
    operation: DeferredOperation
    token: CancellationToken
    task: "asyncio.Task[Dict[str, Any]]"


class OperationScheduler:
    """Run deferred operations as tasks of the running event loop.

    Registering an operation under a name already in use cancels the token
    of the previous one. Cancellation is cooperative: the operation receives
    ``token.is_cancelled`` and a running operation is never interrupted, but
    results of cancelled operations are discarded.
    """

    def __init__(self) -> None:
        self._handles: Dict[str, OperationHandle] = {}
        self._superseded: List[OperationHandle] = []

    def register(self, operation: DeferredOperation) -> OperationHandle:
        previous = self._handles.pop(operation.op_name, None)
        if previous is not None:
            previous.token.cancel()
            self._superseded.append(previous)
        token = CancellationToken()
        task = asyncio.get_running_loop().create_task(
            operation.operation(token.is_cancelled), name=operation.op_name
        )
        handle = OperationHandle(operation=operation, token=token, task=task)
        self._handles[operation.op_name] = handle
        return handle

    def cancel(self, op_name: str) -> bool:
        handle = self._handles.get(op_name)
        if handle is None:
            return False
        handle.token.cancel()
        return True

    async def wait(self) -> Dict[str, Any]:
        """Wait for every registered operation and merge their updated values."""
        handles, self._handles = list(self._handles.values()), {}
        superseded, self._superseded = self._superseded, []
        results = await asyncio.gather(
            *(handle.task for handle in handles + superseded), return_exceptions=True
        )
        updated_values: Dict[str, Any] = {}
        for handle, result in zip(handles, results):
            if handle.token.is_cancelled():
                continue
            if isinstance(result, BaseException):
                logger.error(
                    "Deferred operation %s failed", handle.operation.op_name, exc_info=result
                )
                continue
            updated_values.update(result)
        return updated_values


async def update_results_section(
    interview: Interview,
    actions: Any,
    *,
    calculator: AddressCalculator,
    scheduler: Optional[OperationScheduler] = None,
) -> Dict[str, Any]:
    """Updated response values when the respondent enters the results section.

    ``actions`` is the section navigation history; nothing is calculated
    unless its last entry targets the results section.
    """
    try:
        if not _entering_results_section(actions):
            return {}

        addresses = interview.addresses
        costs = await asyncio.gather(
            *(calculator.monthly_cost(address, interview) for address in addresses)
        )

        updated_values: Dict[str, Any] = {}
        for address, cost in zip(addresses, costs):
            prefix = f"addresses.{address.uuid}"
            updated_values[f"{prefix}.monthlyCost"] = cost.to_response()

            if scheduler is None:
                logger.warning(
                    "No operation scheduler provided, accessibility and routing not calculated for address %s",
                    address.uuid,
                )
                pending: Optional[str] = None
            elif is_point_feature(address.geography):
                scheduler.register(
                    DeferredOperation(
                        op_name=f"addressCalculations{address.uuid}",
                        operation=_accessibility_operation(calculator, address, interview),
                    )
                )
                pending = CALCULATING
            else:
                logger.warning(
                    "Address %s does not have a point geography, skipping accessibility and routing",
                    address.uuid,
                )
                pending = None
            updated_values[f"{prefix}.accessibilityMapsByMode"] = pending
            updated_values[f"{prefix}.routingTimeDistances"] = pending
        return updated_values
    except Exception:
        logger.exception("Error calculating results section values")
        return {}


def _entering_results_section(actions: Any) -> bool:
    if not isinstance(actions, list) or not actions:
        return False
    last_action = actions[-1]
    return isinstance(last_action, dict) and last_action.get("section") == RESULTS_SECTION


def _accessibility_operation(
    calculator: AddressCalculator, address: Address, interview: Interview
) -> Operation:
    async def operation(is_cancelled: IsCancelled) -> Dict[str, Any]:
        # TODO: check is_cancelled between the isochrone and routing batches
        prefix = f"addresses.{address.uuid}"
        try:
            result = (
                await calculator.accessibility_and_routing(address, interview)
            ).to_response()
        except Exception:
            logger.exception(
                "Error calculating accessibility and routing for address %s", address.uuid
            )
            result = {"accessibilityMapsByMode": None, "routingTimeDistances": None}
        return {
            f"{prefix}.accessibilityMapsByMode": result["accessibilityMapsByMode"],
            f"{prefix}.routingTimeDistances": result["routingTimeDistances"],
        }

    return operation
