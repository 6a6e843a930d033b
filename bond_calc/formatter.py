"""Output helpers for the bond calculator.

This module provides simple functions to render schedules, summaries and
calculator results in a tabular text format. Amounts are shown in rand with
thousands separators; the engine itself never formats currency.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Tuple

from .data_models import (
    AffordabilityResult,
    AmortizationResult,
    BondRepaymentResult,
    ComparisonResult,
    DepositSavingsResult,
    PaymentPeriod,
    TermOption,
    TransferCostsResult,
    YearSummary,
)


def format_rand(amount: Decimal) -> str:
    """Format an amount as rand, e.g. ``R1,234,567.89``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}R{abs(amount):,.2f}"


def format_duration(months: int) -> str:
    years, remainder = divmod(months, 12)
    if remainder:
        return f"{years} years, {remainder} months"
    return f"{years} years"


def _print_rows(title: str, rows: List[Tuple[str, str]]) -> None:
    print(title)
    print("-" * 72)
    for label, value in rows:
        print(f"{label:<27s}: {value}")
    print("-" * 72)


def print_summary(result: AmortizationResult) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    rows = [
        ("Principal", format_rand(result.principal)),
        ("Interest rate", f"{result.annual_rate_percent}%"),
        ("Monthly installment", format_rand(result.monthly_installment)),
    ]
    if result.extra_monthly_amount:
        rows.append(("Additional payment", format_rand(result.extra_monthly_amount)))
        rows.append(("Total monthly payment", format_rand(result.monthly_payment)))
    rows.extend(
        [
            ("Total interest", format_rand(result.total_interest)),
            ("Total paid", format_rand(result.total_paid)),
            ("Term", format_duration(result.term_months)),
            ("Paid off after", format_duration(result.months)),
        ]
    )
    _print_rows("Summary", rows)


def print_schedule(periods: Iterable[PaymentPeriod]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Payment", "Interest", "Principal", "Balance"]
    print("\t".join(headers))
    for period in periods:
        row = [
            str(period.period_index),
            f"{period.payment:.2f}",
            f"{period.interest_portion:.2f}",
            f"{period.principal_portion:.2f}",
            f"{period.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_yearly(years: Iterable[YearSummary]) -> None:
    """Print a yearly roll-up of a schedule."""
    headers = ["Year", "Interest", "Principal", "InterestToDate", "PrincipalToDate", "Balance"]
    print("\t".join(headers))
    for year in years:
        row = [
            str(year.year),
            f"{year.interest_paid:.2f}",
            f"{year.principal_paid:.2f}",
            f"{year.interest_to_date:.2f}",
            f"{year.principal_to_date:.2f}",
            f"{year.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_comparison(comparison: ComparisonResult) -> None:
    """Print the baseline and accelerated schedules side by side.

    The difference column is accelerated minus baseline, so savings show as
    negative numbers.
    """
    baseline = comparison.baseline
    accelerated = comparison.accelerated
    print("Additional payment comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Standard':>15s} {'With extra':>15s} {'Difference':>15s}")
    metrics = [
        ("monthly_payment", baseline.monthly_payment, accelerated.monthly_payment),
        ("total_interest", baseline.total_interest, accelerated.total_interest),
        ("total_paid", baseline.total_paid, accelerated.total_paid),
        ("months", Decimal(baseline.months), Decimal(accelerated.months)),
    ]
    for key, v1, v2 in metrics:
        diff = v2 - v1
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print("=" * 72)
    print(f"Interest saved : {format_rand(comparison.interest_saved)}")
    print(f"Time saved     : {format_duration(comparison.months_saved)}")


def print_bond_repayment(result: BondRepaymentResult) -> None:
    _print_rows(
        "Bond repayment",
        [
            ("Loan amount", format_rand(result.loan_amount)),
            ("Monthly repayment", format_rand(result.monthly_repayment)),
            ("Total repayment", format_rand(result.total_repayment)),
            ("Total interest", format_rand(result.total_interest)),
        ],
    )


def print_affordability(result: AffordabilityResult) -> None:
    _print_rows(
        "Affordability",
        [
            ("Disposable income", format_rand(result.disposable_income)),
            ("Maximum repayment", format_rand(result.max_monthly_payment)),
            ("Affordable monthly payment", format_rand(result.available_for_loan)),
            ("Maximum loan amount", format_rand(result.max_loan_amount)),
            ("Recommended property price", format_rand(result.recommended_property_price)),
        ],
    )


def print_deposit_savings(result: DepositSavingsResult) -> None:
    _print_rows(
        "Deposit savings",
        [
            ("Deposit required", format_rand(result.deposit_amount)),
            ("Time to save", format_duration(result.months_to_save)),
            ("Total contributions", format_rand(result.total_contributions)),
            ("Interest earned", format_rand(result.interest_earned)),
        ],
    )


def print_transfer_costs(result: TransferCostsResult) -> None:
    _print_rows(
        "Transfer and bond costs",
        [
            ("Purchase price", format_rand(result.purchase_price)),
            ("Transfer duty", format_rand(result.transfer_duty)),
            ("Transfer attorney fees", format_rand(result.transfer_attorney_fee)),
            ("Bond registration fee", format_rand(result.bond_registration_fee)),
            ("Deeds office fee", format_rand(result.deeds_office_fee)),
            ("Total costs", format_rand(result.total_costs)),
        ],
    )


def print_term_options(options: Iterable[TermOption]) -> None:
    print(f"{'Term':>6s} {'Installment':>15s} {'Interest':>18s} {'Total paid':>18s}")
    for option in options:
        print(
            f"{option.term_years:>4d} y {option.monthly_installment:15.2f} "
            f"{option.total_interest:18.2f} {option.total_paid:18.2f}"
        )
