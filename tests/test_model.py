"""Tests for housing cost, share of income and the monthly cost orchestration."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from relocation_compare import model
from relocation_compare.exceptions import PointNotCoveredError
from relocation_compare.model import (
    calculate_monthly_cost,
    calculate_monthly_housing_cost,
    calculate_percentage_income_for_housing_and_transport,
    monthly_mortgage_payment,
)
from relocation_compare.schemas import Address, Interview


def _address(**fields):
    return Address(sequence=1, uuid="address-1", **fields)


def _rent(rent=1200, **fields):
    return _address(ownership="rent", rent_monthly=rent, are_utilities_included=True, **fields)


def _run(address, interview, predictor):
    return asyncio.run(calculate_monthly_cost(address, interview, predictor=predictor))


class TestMonthlyMortgagePayment:
    def test_standard_amortization(self):
        assert monthly_mortgage_payment(300000, 0.05, 300) == pytest.approx(1753.77, abs=0.01)

    @pytest.mark.parametrize("principal,months", [(300000, 300), (1000, 7), (250000.5, 360)])
    def test_zero_interest_is_principal_over_term(self, principal, months):
        assert monthly_mortgage_payment(principal, 0, months) == principal / months

    def test_payments_repay_the_loan(self):
        principal, rate, months = 200000, 0.045, 240
        payment = monthly_mortgage_payment(principal, rate, months)
        balance = principal
        for _ in range(months):
            balance = balance * (1 + rate / 12) - payment
        assert balance == pytest.approx(0, abs=1e-6)

    def test_non_positive_term_is_rejected(self):
        with pytest.raises(ValueError):
            monthly_mortgage_payment(1000, 0.05, 0)


class TestRentHousingCost:
    def test_utilities_included(self):
        assert calculate_monthly_housing_cost(_rent()) == 1200

    def test_utilities_not_included(self):
        address = _address(ownership="rent", rent_monthly=1200, are_utilities_included=False, utilities_monthly=150)
        assert calculate_monthly_housing_cost(address) == 1350

    def test_unset_utilities_flag_counts_as_included(self):
        address = _address(ownership="rent", rent_monthly=1200, utilities_monthly=150)
        assert calculate_monthly_housing_cost(address) == 1200

    def test_missing_rent(self):
        assert calculate_monthly_housing_cost(_address(ownership="rent", are_utilities_included=True)) is None

    def test_rent_must_be_a_number(self):
        assert calculate_monthly_housing_cost(_rent(rent="1200")) is None

    def test_utilities_not_included_but_missing(self):
        address = _address(ownership="rent", rent_monthly=1200, are_utilities_included=False)
        assert calculate_monthly_housing_cost(address) is None


class TestBuyHousingCost:
    def _buy(self, **fields):
        values = {
            "ownership": "buy",
            "mortgage": 300000,
            "interest_rate": 5,
            "amortization_period_in_years": "25",
        }
        values.update(fields)
        return _address(**values)

    def test_mortgage_taxes_and_utilities(self):
        with patch.object(model, "monthly_mortgage_payment", return_value=1000) as payment:
            cost = calculate_monthly_housing_cost(self._buy(taxes_yearly=3600, utilities_monthly=200))
        assert cost == 1500
        payment.assert_called_once_with(300000, 0.05, 300)

    def test_without_taxes(self):
        with patch.object(model, "monthly_mortgage_payment", return_value=1000):
            assert calculate_monthly_housing_cost(self._buy(utilities_monthly=200)) == 1200

    def test_without_utilities(self):
        with patch.object(model, "monthly_mortgage_payment", return_value=1000):
            assert calculate_monthly_housing_cost(self._buy(taxes_yearly=3600)) == 1300

    def test_zero_mortgage_skips_amortization(self):
        with patch.object(model, "monthly_mortgage_payment") as payment:
            cost = calculate_monthly_housing_cost(self._buy(mortgage=0, taxes_yearly=3600, utilities_monthly=200))
        assert cost == 500
        payment.assert_not_called()

    def test_paid_off_home_ignores_amortization_period(self):
        with patch.object(model, "monthly_mortgage_payment") as payment:
            cost = calculate_monthly_housing_cost(
                self._buy(mortgage=0, interest_rate=0, amortization_period_in_years="0", taxes_yearly=3600, utilities_monthly=200)
            )
        assert cost == 500
        payment.assert_not_called()

    @pytest.mark.parametrize("period", ["25.5", " 25", "25 years"])
    def test_amortization_period_uses_leading_years(self, period):
        with patch.object(model, "monthly_mortgage_payment", return_value=1000) as payment:
            assert calculate_monthly_housing_cost(self._buy(amortization_period_in_years=period)) == 1000
        payment.assert_called_once_with(300000, 0.05, 300)

    def test_zero_interest_rate(self):
        with patch.object(model, "monthly_mortgage_payment", return_value=1000) as payment:
            assert calculate_monthly_housing_cost(self._buy(interest_rate=0)) == 1000
        payment.assert_called_once_with(300000, 0, 300)

    def test_real_amortization(self):
        assert calculate_monthly_housing_cost(self._buy(interest_rate=0)) == 1000

    @pytest.mark.parametrize(
        "fields",
        [
            {"mortgage": None},
            {"interest_rate": None},
            {"amortization_period_in_years": None},
            {"amortization_period_in_years": 25},
            {"amortization_period_in_years": "invalid"},
            {"amortization_period_in_years": "0"},
            {"amortization_period_in_years": "2_5"},
        ],
    )
    def test_incomplete_mortgage_information(self, fields):
        with patch.object(model, "monthly_mortgage_payment") as payment:
            assert calculate_monthly_housing_cost(self._buy(**fields)) is None
        payment.assert_not_called()


class TestUnknownOwnership:
    @pytest.mark.parametrize("ownership", ["lease", None, ""])
    def test_returns_none(self, ownership):
        address = _address(ownership=ownership, rent_monthly=1200, are_utilities_included=True)
        assert calculate_monthly_housing_cost(address) is None


class TestPercentageOfIncome:
    @pytest.mark.parametrize("income", [60000, "60000"])
    def test_numeric_income(self, income):
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=1200, monthly_transport_cost=0, income=income
            )
            == 24
        )

    def test_income_bracket(self):
        # 24000 / 54999.5 -> 43.6%
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=2000, monthly_transport_cost=0, income="050000_059999"
            )
            == 44
        )

    def test_open_ended_bracket_uses_lower_bound(self):
        # 24000 / 210000 -> 11.4%, the midpoint would give 4%
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=2000, monthly_transport_cost=0, income="210000_999999"
            )
            == 11
        )

    def test_transport_cost_is_included(self):
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=1000, monthly_transport_cost=500, income=60000
            )
            == 30
        )

    def test_half_percent_rounds_up(self):
        # 15000 / 120000 = 12.5%
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=1250, monthly_transport_cost=0, income=120000
            )
            == 13
        )

    @pytest.mark.parametrize("income", [None, 0, "dontKnow", "refusal", "60,000", -1000])
    def test_unusable_income(self, income):
        assert (
            calculate_percentage_income_for_housing_and_transport(
                monthly_housing_cost=1200, monthly_transport_cost=0, income=income
            )
            is None
        )


class TestCalculateMonthlyCost:
    def test_rent_without_vehicles(self, base_response, predictor):
        interview = Interview.from_response(base_response)

        result = _run(_rent(), interview, predictor)

        assert result.housing_cost_monthly == 1200
        assert result.car_cost_monthly == 0
        assert result.total_cost_monthly == 1200
        assert result.housing_and_transport_cost_percentage_of_income == 24
        assert result.current_number_of_vehicles == 0
        assert result.predicted_number_of_vehicles == 0

    def test_mortgage_end_to_end(self, base_response, predictor):
        address = _address(
            ownership="buy",
            mortgage=300000,
            interest_rate=5,
            amortization_period_in_years="25",
            taxes_yearly=3600,
            utilities_monthly=200,
        )
        with patch.object(model, "monthly_mortgage_payment", return_value=1000):
            result = _run(address, Interview.from_response(base_response), predictor)

        assert result.housing_cost_monthly == 1500
        assert result.total_cost_monthly == 1500

    def test_incomplete_vehicle_keeps_housing_and_counts(self, base_response, predictor):
        base_response["cars"] = {
            "car-1": {"_sequence": 1, "_uuid": "car-1", "category": "passengerCar", "engineType": "electric"},
            "car-2": {"_sequence": 2, "_uuid": "car-2", "category": "suv"},
            "car-3": {"_sequence": 3, "_uuid": "car-3", "category": "pickup", "engineType": "electric"},
        }

        result = _run(_rent(), Interview.from_response(base_response), predictor)

        assert result.car_cost_monthly is None
        assert result.total_cost_monthly is None
        assert result.housing_and_transport_cost_percentage_of_income is None
        assert result.housing_cost_monthly == 1200
        assert result.current_number_of_vehicles == 3
        assert result.predicted_number_of_vehicles == 0

    def test_prediction_failure_keeps_housing(self, base_response, predictor):
        predictor.predict = AsyncMock(side_effect=PointNotCoveredError("outside"))

        result = _run(_rent(), Interview.from_response(base_response), predictor)

        assert result.housing_cost_monthly == 1200
        assert result.car_cost_monthly is None
        assert result.total_cost_monthly is None
        assert result.predicted_number_of_vehicles is None
        assert result.current_number_of_vehicles == 0

    def test_missing_housing_cost_blocks_total_and_percentage(self, base_response, predictor):
        result = _run(_address(ownership="lease"), Interview.from_response(base_response), predictor)

        assert result.housing_cost_monthly is None
        assert result.car_cost_monthly == 0
        assert result.total_cost_monthly is None
        assert result.housing_and_transport_cost_percentage_of_income is None

    def test_predicted_vehicle_priced_at_reference_car(self, base_response, predictor):
        predictor.predict = AsyncMock(return_value=1)

        result = _run(_rent(1500), Interview.from_response(base_response), predictor)

        # 9399.17 / 12
        assert result.car_cost_monthly == pytest.approx(783.26, abs=0.01)
        assert result.total_cost_monthly == pytest.approx(2283.26, abs=0.01)
        assert result.predicted_number_of_vehicles == 1

    def test_predictor_receives_household_attributes(self, base_response, predictor, home_point):
        base_response["household"]["income"] = "060000_069999"

        _run(_rent(geography=home_point), Interview.from_response(base_response), predictor)

        predictor.predict.assert_awaited_once_with(
            geography=home_point, household_size=2, number_permits=1, income="060000_069999"
        )
