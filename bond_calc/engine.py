"""Core calculation engine for the bond calculator.

This module implements the amortization logic shared by every calculator:
the fixed monthly installment of an annuity loan, the month-by-month payment
schedule (optionally with an additional monthly payment), the comparison of a
schedule with and without that additional payment, and a yearly roll-up of a
schedule for display.

All arithmetic is done in ``Decimal`` and every interest charge, installment
and balance is held in cents, so totals add up exactly no matter how many
periods a schedule has. The functions are pure: they keep no state between
calls and perform no I/O.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from itertools import accumulate, groupby, islice
from typing import Iterable, Iterator, List, Optional, Tuple

from .data_models import (
    AdditionalPayment,
    AmortizationResult,
    ComparisonResult,
    LoanParameters,
    PaymentPeriod,
    YearSummary,
)
from .errors import DidNotConvergeError, InvalidParameterError
from .utils import Number, to_cents, to_decimal

logger = logging.getLogger(__name__)

# Ceiling on schedule length. A schedule that still carries a balance after
# this many periods is reported as non-convergent, never truncated. Schedules
# with a fixed term always get at least ``term_months`` periods.
MAX_PERIODS = 1000

# Largest accepted currency amount. Beyond this, cents no longer fit in the
# 28-digit decimal context.
MAX_AMOUNT = Decimal("1e15")

MONTHS_PER_YEAR = 12

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _as_decimal(name: str, value: Number) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise InvalidParameterError(name, value, "must be a number") from exc


def _as_amount(name: str, value: Number) -> Decimal:
    amount = _as_decimal(name, value)
    if abs(amount) > MAX_AMOUNT:
        raise InvalidParameterError(name, value, f"must not exceed {MAX_AMOUNT:,f}")
    return to_cents(amount)


def _as_months(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(name, value, "must be a whole number of months")
    if value <= 0:
        raise InvalidParameterError(name, value, "must be positive")
    return value


def validate_parameters(
    principal: Number, annual_rate_percent: Number, term_months: int
) -> LoanParameters:
    """Check loan inputs and return them as a ``LoanParameters`` record.

    Raises
    ------
    InvalidParameterError
        If the principal is not positive or exceeds ``MAX_AMOUNT``, the rate
        is negative or not below 100 %, or the term is not a positive whole
        number of months.
    """
    principal_value = _as_amount("principal", principal)
    if principal_value <= 0:
        raise InvalidParameterError("principal", principal, "must be positive")
    rate_value = _as_decimal("annual_rate_percent", annual_rate_percent)
    if rate_value < 0:
        raise InvalidParameterError(
            "annual_rate_percent", annual_rate_percent, "must not be negative"
        )
    if rate_value >= HUNDRED:
        raise InvalidParameterError(
            "annual_rate_percent", annual_rate_percent, "must be below 100"
        )
    months = _as_months("term_months", term_months)
    return LoanParameters(
        principal=principal_value,
        annual_rate_percent=rate_value,
        term_months=months,
    )


def _validate_extra(extra_monthly_amount: Number) -> Decimal:
    extra = _as_amount("extra_monthly_amount", extra_monthly_amount)
    if extra < 0:
        raise InvalidParameterError(
            "extra_monthly_amount", extra_monthly_amount, "must not be negative"
        )
    return extra


def _validate_ceiling(max_periods: Optional[int], term_months: int = 0) -> int:
    if max_periods is None:
        return max(MAX_PERIODS, term_months)
    if isinstance(max_periods, bool) or not isinstance(max_periods, int) or max_periods <= 0:
        raise InvalidParameterError("max_periods", max_periods, "must be a positive integer")
    return max_periods


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert a nominal annual percentage into a monthly fraction."""
    return annual_rate_percent / HUNDRED / MONTHS_PER_YEAR


def _installment(params: LoanParameters) -> Decimal:
    """Return the annuity installment for already validated parameters.

    The formula is:

        installment = P * r / (1 - (1 + r)^-n)

    where ``P`` is the principal, ``r`` the monthly rate and ``n`` the number
    of payments. When the rate is zero, the installment is ``P / n``.
    """
    rate = monthly_rate(params.annual_rate_percent)
    if rate == 0:
        return to_cents(params.principal / params.term_months)
    discount = 1 - (1 + rate) ** -params.term_months
    return to_cents(params.principal * rate / discount)


def compute_installment(
    principal: Number, annual_rate_percent: Number, term_months: int
) -> Decimal:
    """Return the fixed monthly installment of an annuity loan, in cents."""
    return _installment(validate_parameters(principal, annual_rate_percent, term_months))


def _amortize(
    principal: Decimal,
    annual_rate_percent: Decimal,
    payment: Decimal,
    max_periods: int,
    settle_at: Optional[int] = None,
) -> Tuple[Tuple[PaymentPeriod, ...], Decimal, Decimal]:
    """Run the period loop and return ``(periods, total_interest, total_paid)``.

    ``payment`` is the regular cash paid each period. In period ``settle_at``
    the whole outstanding balance is repaid, which absorbs the cents lost or
    gained by rounding the installment.
    """
    rate = monthly_rate(annual_rate_percent)
    balance = principal
    total_interest = ZERO
    total_paid = ZERO
    periods: List[PaymentPeriod] = []
    for index in range(1, max_periods + 1):
        interest = to_cents(balance * rate)
        principal_portion = payment - interest
        if principal_portion > balance or index == settle_at:
            principal_portion = balance
        balance -= principal_portion
        total_interest += interest
        total_paid += interest + principal_portion
        periods.append(
            PaymentPeriod(
                period_index=index,
                payment=interest + principal_portion,
                interest_portion=interest,
                principal_portion=principal_portion,
                remaining_balance=balance,
            )
        )
        if balance <= 0:
            break
    return tuple(periods), total_interest, total_paid


def _result_or_raise(result: AmortizationResult, max_periods: int) -> AmortizationResult:
    if result.final_balance <= 0:
        return result
    partial = AmortizationResult(
        principal=result.principal,
        annual_rate_percent=result.annual_rate_percent,
        term_months=result.term_months,
        extra_monthly_amount=result.extra_monthly_amount,
        monthly_installment=result.monthly_installment,
        total_paid=result.total_paid,
        total_interest=result.total_interest,
        periods=result.periods,
        converged=False,
    )
    logger.warning(
        "Schedule did not converge within %d periods (balance %s)",
        max_periods,
        result.final_balance,
    )
    raise DidNotConvergeError(max_periods, result.final_balance, partial)


def build_schedule(
    principal: Number,
    annual_rate_percent: Number,
    term_months: int,
    extra_monthly_amount: Number = 0,
    *,
    max_periods: Optional[int] = None,
) -> AmortizationResult:
    """Compute the full amortization schedule for a loan.

    Parameters
    ----------
    principal, annual_rate_percent, term_months
        The loan. The rate is a nominal annual percentage (``11.25``).
    extra_monthly_amount
        Paid on top of every installment from the first period onward. The
        installment itself is unchanged, so the loan is repaid sooner.
    max_periods
        Iteration ceiling. Defaults to the larger of ``MAX_PERIODS`` and
        ``term_months``, so a schedule without an additional payment always
        completes.

    Returns
    -------
    AmortizationResult
        The schedule, ending with a zero balance. Without an additional
        payment it has exactly ``term_months`` periods.

    Raises
    ------
    InvalidParameterError
        If any input violates its precondition.
    DidNotConvergeError
        If the balance is still positive after ``max_periods`` periods. The
        partial schedule is attached to the exception.
    """
    params = validate_parameters(principal, annual_rate_percent, term_months)
    extra = _validate_extra(extra_monthly_amount)
    ceiling = _validate_ceiling(max_periods, params.term_months)
    installment = _installment(params)
    periods, total_interest, total_paid = _amortize(
        params.principal,
        params.annual_rate_percent,
        installment + extra,
        ceiling,
        settle_at=params.term_months,
    )
    logger.debug(
        "Built schedule: principal=%s rate=%s%% term=%d extra=%s -> %d periods",
        params.principal,
        params.annual_rate_percent,
        params.term_months,
        extra,
        len(periods),
    )
    result = AmortizationResult(
        principal=params.principal,
        annual_rate_percent=params.annual_rate_percent,
        term_months=params.term_months,
        extra_monthly_amount=extra,
        monthly_installment=installment,
        total_paid=total_paid,
        total_interest=total_interest,
        periods=periods,
    )
    return _result_or_raise(result, ceiling)


def schedule_for_payment(
    principal: Number,
    annual_rate_percent: Number,
    monthly_payment: Number,
    *,
    max_periods: int = MAX_PERIODS,
) -> AmortizationResult:
    """Amortize a loan with a fixed, caller-chosen monthly payment.

    The number of periods is whatever it takes for the payment to clear the
    balance; it is reported as the result's ``term_months``. A payment that
    does not cover the first month's interest can never repay the loan and
    ends in ``DidNotConvergeError`` once ``max_periods`` is reached.
    """
    # The term is unknown until the loop ends; one month passes the check.
    params = validate_parameters(principal, annual_rate_percent, 1)
    payment = _as_amount("monthly_payment", monthly_payment)
    if payment <= 0:
        raise InvalidParameterError("monthly_payment", monthly_payment, "must be positive")
    ceiling = _validate_ceiling(max_periods)
    periods, total_interest, total_paid = _amortize(
        params.principal, params.annual_rate_percent, payment, ceiling
    )
    result = AmortizationResult(
        principal=params.principal,
        annual_rate_percent=params.annual_rate_percent,
        term_months=len(periods),
        extra_monthly_amount=ZERO,
        monthly_installment=payment,
        total_paid=total_paid,
        total_interest=total_interest,
        periods=periods,
    )
    return _result_or_raise(result, ceiling)


def compare_with_additional_payment(
    params: LoanParameters,
    extra: AdditionalPayment,
    *,
    max_periods: Optional[int] = None,
) -> ComparisonResult:
    """Compare a loan's schedule with and without an additional payment.

    Both schedules share the same installment; the accelerated one adds
    ``extra.extra_monthly_amount`` to every period. ``months_saved`` and
    ``interest_saved`` are the differences in period count and total
    interest, both of which are positive for any positive extra amount at a
    positive rate.
    """
    baseline = build_schedule(
        params.principal,
        params.annual_rate_percent,
        params.term_months,
        max_periods=max_periods,
    )
    accelerated = build_schedule(
        params.principal,
        params.annual_rate_percent,
        params.term_months,
        extra.extra_monthly_amount,
        max_periods=max_periods,
    )
    return ComparisonResult(
        baseline=baseline,
        accelerated=accelerated,
        months_saved=baseline.months - accelerated.months,
        interest_saved=baseline.total_interest - accelerated.total_interest,
    )


def _year_of(period: PaymentPeriod) -> int:
    return (period.period_index - 1) // MONTHS_PER_YEAR + 1


def _year_buckets(
    periods: Iterable[PaymentPeriod],
) -> Iterator[Tuple[int, Decimal, Decimal, Decimal]]:
    for year, rows in groupby(periods, key=_year_of):
        rows = tuple(rows)
        yield (
            year,
            sum((p.interest_portion for p in rows), ZERO),
            sum((p.principal_portion for p in rows), ZERO),
            rows[-1].remaining_balance,
        )


def _fold_year(
    previous: YearSummary, bucket: Tuple[int, Decimal, Decimal, Decimal]
) -> YearSummary:
    year, interest, principal, balance = bucket
    return YearSummary(
        year=year,
        interest_paid=interest,
        principal_paid=principal,
        interest_to_date=previous.interest_to_date + interest,
        principal_to_date=previous.principal_to_date + principal,
        remaining_balance=balance,
    )


class YearlySummary:
    """Restartable view of a schedule rolled up into calendar-free years.

    Every iteration re-derives the rows from the result's immutable periods;
    the view itself holds nothing else. The last year may cover fewer than
    twelve periods.
    """

    def __init__(self, result: AmortizationResult) -> None:
        self._result = result

    def __iter__(self) -> Iterator[YearSummary]:
        start = YearSummary(
            year=0,
            interest_paid=ZERO,
            principal_paid=ZERO,
            interest_to_date=ZERO,
            principal_to_date=ZERO,
            remaining_balance=self._result.principal,
        )
        rows = accumulate(_year_buckets(self._result.periods), _fold_year, initial=start)
        return islice(rows, 1, None)

    def __len__(self) -> int:
        return -(-self._result.months // MONTHS_PER_YEAR)

    def __repr__(self) -> str:
        return f"YearlySummary(years={len(self)})"


def yearly_summary(result: AmortizationResult) -> YearlySummary:
    """Aggregate a schedule into twelve-period buckets for display."""
    return YearlySummary(result)
