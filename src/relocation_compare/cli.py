from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config import CalculationConfig
from .logging import setup_logging
from .operations import AddressCalculator, OperationScheduler, update_results_section
from .schemas import Address, Interview

app = typer.Typer(help="Compare housing, car and accessibility outcomes of candidate homes.")


def _load_interview(path: Path) -> Interview:
    with path.open(encoding="utf-8") as handle:
        response = json.load(handle)
    if not isinstance(response, dict):
        raise typer.BadParameter("The interview file must contain a JSON object.")
    return Interview.from_response(response)


def _selected_addresses(interview: Interview, address_uuid: Optional[str]) -> List[Address]:
    if address_uuid is None:
        return interview.addresses
    selected = [address for address in interview.addresses if address.uuid == address_uuid]
    if not selected:
        raise typer.BadParameter(f"No address {address_uuid} in the interview.")
    return selected


def _build_calculator(
    transit_scenario: Optional[str], log_level: Optional[str]
) -> AddressCalculator:
    config = CalculationConfig.from_env()
    if transit_scenario is not None:
        config.transit_scenario_id = transit_scenario
    if log_level is not None:
        config.log_level = log_level
    setup_logging(config.log_level, config.log_format)
    return AddressCalculator.from_config(config)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def costs(
    interview_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Interview response JSON."),
    address: Optional[str] = typer.Option(None, help="Only this address uuid."),
    log_level: Optional[str] = typer.Option(None, help="Log level (env LOG_LEVEL if omitted)."),
) -> None:
    """
    Monthly housing and car costs for each candidate address.
    """
    interview = _load_interview(interview_file)
    addresses = _selected_addresses(interview, address)
    calculator = _build_calculator(None, log_level)

    async def run() -> Dict[str, Any]:
        results = await asyncio.gather(
            *(calculator.monthly_cost(candidate, interview) for candidate in addresses)
        )
        return {
            candidate.uuid: result.to_response()
            for candidate, result in zip(addresses, results)
        }

    _echo_json(asyncio.run(run()))


@app.command()
def accessibility(
    interview_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Interview response JSON."),
    address: Optional[str] = typer.Option(None, help="Only this address uuid."),
    transit_scenario: Optional[str] = typer.Option(
        None, help="Transit scenario id (env TRANSIT_SCENARIO_ID if omitted)."
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level (env LOG_LEVEL if omitted)."),
) -> None:
    """
    Accessibility maps and travel times to declared destinations.
    """
    interview = _load_interview(interview_file)
    addresses = _selected_addresses(interview, address)
    calculator = _build_calculator(transit_scenario, log_level)

    async def run() -> Dict[str, Any]:
        results = await asyncio.gather(
            *(
                calculator.accessibility_and_routing(candidate, interview)
                for candidate in addresses
            )
        )
        return {
            candidate.uuid: result.to_response()
            for candidate, result in zip(addresses, results)
        }

    _echo_json(asyncio.run(run()))


@app.command()
def results(
    interview_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Interview response JSON."),
    transit_scenario: Optional[str] = typer.Option(
        None, help="Transit scenario id (env TRANSIT_SCENARIO_ID if omitted)."
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level (env LOG_LEVEL if omitted)."),
) -> None:
    """
    Every response value written when entering the results section.
    """
    interview = _load_interview(interview_file)
    calculator = _build_calculator(transit_scenario, log_level)

    async def run() -> Dict[str, Any]:
        scheduler = OperationScheduler()
        updated_values = await update_results_section(
            interview,
            [{"section": "results"}],
            calculator=calculator,
            scheduler=scheduler,
        )
        updated_values.update(await scheduler.wait())
        return updated_values

    _echo_json(asyncio.run(run()))


if __name__ == "__main__":
    app()
