"""
Tests for the home-buyer calculators.
"""

from decimal import Decimal

import pytest

from bond_calc.calculators import (
    DEEDS_OFFICE_FEE,
    affordability,
    bond_repayment,
    deposit_savings,
    present_value,
    term_comparison,
    transfer_costs,
    transfer_duty,
)
from bond_calc.engine import build_schedule, compute_installment
from bond_calc.errors import InvalidParameterError
from bond_calc.utils import to_cents


class TestBondRepayment:
    def test_deposit_reduces_loan(self):
        result = bond_repayment(1_200_000, "11.25", 20, deposit=200_000)
        assert result.loan_amount == Decimal("1000000.00")
        assert result.monthly_repayment == compute_installment(1_000_000, "11.25", 240)
        assert result.total_repayment == result.loan_amount + result.total_interest

    def test_without_deposit(self):
        result = bond_repayment(750_000, 10, 30)
        assert result.loan_amount == Decimal("750000.00")
        assert result.total_interest > 0

    @pytest.mark.parametrize("deposit", [1_000_000, 1_500_000, -1])
    def test_deposit_must_leave_a_loan(self, deposit):
        with pytest.raises(InvalidParameterError):
            bond_repayment(1_000_000, 10, 20, deposit=deposit)

    def test_term_in_whole_years(self):
        with pytest.raises(InvalidParameterError):
            bond_repayment(1_000_000, 10, 0)


class TestAffordability:
    def test_capped_by_debt_to_income_ratio(self):
        result = affordability(50_000, 20_000, 5_000, "11.25")
        assert result.disposable_income == Decimal("25000.00")
        assert result.max_monthly_payment == Decimal("15000.00")
        assert result.available_for_loan == Decimal("15000.00")
        # The maximum loan is exactly what the affordable payment services.
        installment = build_schedule(result.max_loan_amount, "11.25", 300).monthly_installment
        assert abs(installment - Decimal("15000")) <= Decimal("0.02")
        assert result.recommended_property_price == to_cents(result.max_loan_amount / Decimal("0.9"))

    def test_capped_by_disposable_income(self):
        result = affordability(40_000, 25_000, 5_000, 10)
        assert result.available_for_loan == Decimal("10000.00")

    def test_no_disposable_income(self):
        result = affordability(20_000, 18_000, 5_000, 10)
        assert result.disposable_income == Decimal("-3000.00")
        assert result.available_for_loan == Decimal("0")
        assert result.max_loan_amount == Decimal("0")

    def test_zero_rate(self):
        assert present_value(Decimal("1000"), Decimal("0"), 12) == Decimal("12000.00")

    def test_income_required(self):
        with pytest.raises(InvalidParameterError):
            affordability(0, 0, 0, 10)


class TestDepositSavings:
    def test_zero_rate(self):
        result = deposit_savings(1_000_000, 10, 5_000, 0)
        assert result.deposit_amount == Decimal("100000.00")
        assert result.months_to_save == 20
        assert result.years == 1
        assert result.months == 8
        assert result.total_contributions == Decimal("100000.00")
        assert result.interest_earned == Decimal("0.00")

    def test_interest_shortens_saving(self):
        result = deposit_savings(1_000_000, 10, 5_000, 6)
        assert result.months_to_save < 20
        assert result.final_balance >= result.deposit_amount
        assert result.interest_earned > 0
        assert result.final_balance == result.total_contributions + result.interest_earned

    def test_rounds_up_to_whole_month(self):
        result = deposit_savings(1_000_000, 10, 7_000, 0)
        assert result.months_to_save == 15

    @pytest.mark.parametrize(
        "price, percent, saving, rate",
        [(0, 10, 5000, 0), (1_000_000, 0, 5000, 0), (1_000_000, 120, 5000, 0), (1_000_000, 10, 0, 0), (1_000_000, 10, 5000, -1)],
    )
    def test_invalid_inputs(self, price, percent, saving, rate):
        with pytest.raises(InvalidParameterError):
            deposit_savings(price, percent, saving, rate)


class TestTransferCosts:
    @pytest.mark.parametrize(
        "price, duty",
        [
            (900_000, "0.00"),
            (1_000_000, "0.00"),
            (1_200_000, "6000.00"),
            (1_375_000, "11250.00"),
            (1_500_000, "18750.00"),
            (2_000_000, "50250.00"),
            (3_000_000, "146000.00"),
            (12_000_000, "1156000.00"),
        ],
    )
    def test_transfer_duty_brackets(self, price, duty):
        assert transfer_duty(price) == Decimal(duty)

    def test_total_costs(self):
        result = transfer_costs(2_000_000)
        assert result.transfer_duty == Decimal("50250.00")
        assert result.transfer_attorney_fee == Decimal("30000.00")
        assert result.bond_registration_fee == Decimal("24000.00")
        assert result.deeds_office_fee == DEEDS_OFFICE_FEE
        assert result.total_costs == Decimal("105750.00")

    def test_price_required(self):
        with pytest.raises(InvalidParameterError):
            transfer_costs(0)

    @pytest.mark.parametrize("price", [Decimal("1e27"), "1e16"])
    def test_price_above_maximum(self, price):
        with pytest.raises(InvalidParameterError) as excinfo:
            transfer_costs(price)
        assert excinfo.value.name == "purchase_price"


class TestTermComparison:
    def test_longer_terms_cost_more_interest(self):
        options = term_comparison(1_000_000, "11.25")
        assert [o.term_years for o in options] == [10, 15, 20, 25, 30]
        installments = [o.monthly_installment for o in options]
        interest = [o.total_interest for o in options]
        assert installments == sorted(installments, reverse=True)
        assert interest == sorted(interest)
        for option in options:
            assert option.total_paid == Decimal("1000000.00") + option.total_interest

    def test_custom_terms(self):
        options = term_comparison(500_000, 9, [5, 20])
        assert [o.term_years for o in options] == [5, 20]
        assert options[1].monthly_installment == compute_installment(500_000, 9, 240)

    def test_invalid_term(self):
        with pytest.raises(InvalidParameterError):
            term_comparison(500_000, 9, [0])
