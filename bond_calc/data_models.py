"""Data models for the bond calculator.

This module defines the value records passed into and returned from the
amortization engine: the loan parameters, the optional additional monthly
payment, one row of a payment schedule and the aggregate results. All
currency amounts are ``Decimal`` values quantized to cents. Records are frozen
dataclasses; they are created fresh for each calculation and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Tuple


@dataclass(frozen=True)
class LoanParameters:
    """Principal, nominal annual rate and term of a bond.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed (after any deposit).
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent, e.g. ``Decimal("11.25")``.
    term_months: int
        Number of monthly installments.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_months: int


@dataclass(frozen=True)
class AdditionalPayment:
    """An extra amount paid on top of every installment from period one."""

    extra_monthly_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentPeriod:
    """One row of an amortization schedule.

    ``payment`` is the cash paid in the period and always equals
    ``interest_portion + principal_portion``.
    """

    period_index: int
    payment: Decimal
    interest_portion: Decimal
    principal_portion: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class AmortizationResult:
    """A complete (or, when ``converged`` is False, partial) schedule."""

    principal: Decimal
    annual_rate_percent: Decimal
    term_months: int
    extra_monthly_amount: Decimal
    monthly_installment: Decimal
    total_paid: Decimal
    total_interest: Decimal
    periods: Tuple[PaymentPeriod, ...] = field(default_factory=tuple)
    converged: bool = True

    @property
    def months(self) -> int:
        """Number of periods until the balance reached zero."""
        return len(self.periods)

    @property
    def monthly_payment(self) -> Decimal:
        """Regular cash outflow: installment plus any additional payment."""
        return self.monthly_installment + self.extra_monthly_amount

    @property
    def final_balance(self) -> Decimal:
        if not self.periods:
            return self.principal
        return self.periods[-1].remaining_balance

    def __iter__(self) -> Iterator[PaymentPeriod]:
        return iter(self.periods)


@dataclass(frozen=True)
class ComparisonResult:
    """Baseline schedule versus the same loan with an additional payment."""

    baseline: AmortizationResult
    accelerated: AmortizationResult
    months_saved: int
    interest_saved: Decimal


@dataclass(frozen=True)
class YearSummary:
    """Twelve periods of a schedule folded into one row.

    ``interest_paid`` and ``principal_paid`` cover the year itself, the
    ``*_to_date`` fields are cumulative from the first period.
    """

    year: int
    interest_paid: Decimal
    principal_paid: Decimal
    interest_to_date: Decimal
    principal_to_date: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class BondRepaymentResult:
    """Monthly repayment and totals for a property bought with a bond."""

    loan_amount: Decimal
    monthly_repayment: Decimal
    total_repayment: Decimal
    total_interest: Decimal


@dataclass(frozen=True)
class AffordabilityResult:
    """How large a bond a household can carry.

    ``available_for_loan`` is the lower of disposable income and the maximum
    recommended repayment, never negative. ``max_loan_amount`` is the
    principal that repayment services over the assumed term.
    """

    disposable_income: Decimal
    max_monthly_payment: Decimal
    available_for_loan: Decimal
    max_loan_amount: Decimal
    recommended_property_price: Decimal


@dataclass(frozen=True)
class DepositSavingsResult:
    """Time needed to save a deposit with regular monthly contributions."""

    deposit_amount: Decimal
    months_to_save: int
    total_contributions: Decimal
    final_balance: Decimal
    interest_earned: Decimal

    @property
    def years(self) -> int:
        return self.months_to_save // 12

    @property
    def months(self) -> int:
        return self.months_to_save % 12


@dataclass(frozen=True)
class TransferCostsResult:
    """Once-off costs of transferring a property and registering a bond."""

    purchase_price: Decimal
    transfer_duty: Decimal
    transfer_attorney_fee: Decimal
    bond_registration_fee: Decimal
    deeds_office_fee: Decimal

    @property
    def total_costs(self) -> Decimal:
        return (
            self.transfer_duty
            + self.transfer_attorney_fee
            + self.bond_registration_fee
            + self.deeds_office_fee
        )


@dataclass(frozen=True)
class TermOption:
    """One row of a loan-term comparison."""

    term_years: int
    monthly_installment: Decimal
    total_interest: Decimal
    total_paid: Decimal
