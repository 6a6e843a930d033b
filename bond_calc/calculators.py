"""Home-buyer calculators built on the amortization engine.

Each calculator takes plain numeric inputs (already stripped of currency
formatting) and returns a result record from ``data_models``. Anything that
involves a bond installment goes through ``engine`` so every calculator
agrees on the same figures to the cent.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_CEILING
from typing import Iterable, List, Tuple

from .data_models import (
    AffordabilityResult,
    BondRepaymentResult,
    DepositSavingsResult,
    TermOption,
    TransferCostsResult,
)
from .engine import (
    HUNDRED,
    MAX_AMOUNT,
    MONTHS_PER_YEAR,
    ZERO,
    build_schedule,
    monthly_rate,
    validate_parameters,
)
from .errors import InvalidParameterError
from .utils import Number, to_cents, to_decimal

# Share of gross monthly income a lender will allow for the bond repayment.
MAX_DEBT_TO_INCOME = Decimal("0.30")
# Deposit assumed when turning a maximum loan into a property price.
DEFAULT_DEPOSIT_RATIO = Decimal("0.10")
DEFAULT_AFFORDABILITY_TERM_MONTHS = 25 * MONTHS_PER_YEAR

DEFAULT_COMPARISON_TERMS = (10, 15, 20, 25, 30)

# Transfer duty as (threshold, base duty, marginal rate on the excess),
# highest bracket first. Prices up to R1 000 000 attract no duty.
TRANSFER_DUTY_BRACKETS: Tuple[Tuple[Decimal, Decimal, Decimal], ...] = (
    (Decimal("11000000"), Decimal("1026000"), Decimal("0.13")),
    (Decimal("2475000"), Decimal("88250"), Decimal("0.11")),
    (Decimal("1925000"), Decimal("44250"), Decimal("0.08")),
    (Decimal("1375000"), Decimal("11250"), Decimal("0.06")),
    (Decimal("1000000"), Decimal("0"), Decimal("0.03")),
)
TRANSFER_ATTORNEY_RATE = Decimal("0.015")
BOND_REGISTRATION_RATE = Decimal("0.012")
DEEDS_OFFICE_FEE = Decimal("1500.00")


def _amount(name: str, value: Number, *, allow_zero: bool = False) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError as exc:
        raise InvalidParameterError(name, value, "must be a number") from exc
    if amount > MAX_AMOUNT:
        raise InvalidParameterError(name, value, f"must not exceed {MAX_AMOUNT:,f}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidParameterError(
            name, value, "must not be negative" if allow_zero else "must be positive"
        )
    return amount


def _years(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidParameterError(name, value, "must be a positive number of years")
    return value


def present_value(payment: Decimal, annual_rate_percent: Decimal, term_months: int) -> Decimal:
    """Principal that ``payment`` per month repays over ``term_months``.

    This is the inverse of the annuity installment:
    ``P = M * (1 - (1 + r)^-n) / r``, or ``M * n`` at a zero rate.
    """
    rate = monthly_rate(annual_rate_percent)
    if rate == 0:
        return to_cents(payment * term_months)
    return to_cents(payment * (1 - (1 + rate) ** -term_months) / rate)


def bond_repayment(
    property_value: Number,
    annual_rate_percent: Number,
    term_years: int,
    deposit: Number = 0,
) -> BondRepaymentResult:
    """Monthly repayment on a property after the deposit is paid."""
    price = _amount("property_value", property_value)
    deposit_value = _amount("deposit", deposit, allow_zero=True)
    if deposit_value >= price:
        raise InvalidParameterError("deposit", deposit, "must be less than the property value")
    years = _years("term_years", term_years)
    result = build_schedule(price - deposit_value, annual_rate_percent, years * MONTHS_PER_YEAR)
    return BondRepaymentResult(
        loan_amount=result.principal,
        monthly_repayment=result.monthly_installment,
        total_repayment=result.total_paid,
        total_interest=result.total_interest,
    )


def affordability(
    gross_income: Number,
    monthly_expenses: Number,
    existing_debt: Number,
    annual_rate_percent: Number,
    term_months: int = DEFAULT_AFFORDABILITY_TERM_MONTHS,
) -> AffordabilityResult:
    """Estimate the largest bond a household can afford.

    The repayment is capped at ``MAX_DEBT_TO_INCOME`` of gross monthly income
    and at what is left after expenses and existing debt, whichever is lower.
    The recommended property price assumes a ``DEFAULT_DEPOSIT_RATIO``
    deposit on top of the loan.
    """
    income = _amount("gross_income", gross_income)
    expenses = _amount("monthly_expenses", monthly_expenses, allow_zero=True)
    debt = _amount("existing_debt", existing_debt, allow_zero=True)
    # Principal is irrelevant here; a placeholder lets the rate and term be checked.
    params = validate_parameters(1, annual_rate_percent, term_months)

    disposable = to_cents(income - expenses - debt)
    max_payment = to_cents(income * MAX_DEBT_TO_INCOME)
    available = to_cents(max(min(disposable, max_payment), ZERO))
    max_loan = present_value(available, params.annual_rate_percent, params.term_months)
    return AffordabilityResult(
        disposable_income=disposable,
        max_monthly_payment=max_payment,
        available_for_loan=available,
        max_loan_amount=max_loan,
        recommended_property_price=to_cents(max_loan / (1 - DEFAULT_DEPOSIT_RATIO)),
    )


def _savings_balance(monthly_saving: Decimal, rate: Decimal, months: int) -> Decimal:
    """Future value of ``months`` end-of-month contributions."""
    if rate == 0:
        return monthly_saving * months
    return monthly_saving * ((1 + rate) ** months - 1) / rate


def deposit_savings(
    property_price: Number,
    deposit_percent: Number,
    monthly_saving: Number,
    savings_rate_percent: Number = 0,
) -> DepositSavingsResult:
    """How many months of saving it takes to reach a deposit.

    Solves ``FV = PMT * ((1 + r)^n - 1) / r`` for ``n`` and rounds up to a
    whole month, so the savings balance after ``months_to_save`` months is at
    least the deposit.
    """
    price = _amount("property_price", property_price)
    percent = _amount("deposit_percent", deposit_percent)
    if percent > HUNDRED:
        raise InvalidParameterError("deposit_percent", deposit_percent, "must not exceed 100")
    saving = _amount("monthly_saving", monthly_saving)
    savings_rate = _amount("savings_rate_percent", savings_rate_percent, allow_zero=True)
    if savings_rate >= HUNDRED:
        raise InvalidParameterError("savings_rate_percent", savings_rate_percent, "must be below 100")

    deposit = to_cents(price * percent / HUNDRED)
    rate = monthly_rate(savings_rate)
    if rate == 0:
        exact_months = deposit / saving
    else:
        exact_months = (deposit * rate / saving + 1).ln() / (1 + rate).ln()
    months = int(exact_months.to_integral_value(rounding=ROUND_CEILING))
    balance = to_cents(_savings_balance(saving, rate, months))
    contributions = to_cents(saving * months)
    return DepositSavingsResult(
        deposit_amount=deposit,
        months_to_save=months,
        total_contributions=contributions,
        final_balance=balance,
        interest_earned=balance - contributions,
    )


def transfer_duty(purchase_price: Number) -> Decimal:
    """Transfer duty payable on a residential purchase."""
    price = _amount("purchase_price", purchase_price)
    for threshold, base, rate in TRANSFER_DUTY_BRACKETS:
        if price > threshold:
            return to_cents(base + (price - threshold) * rate)
    return to_cents(ZERO)


def transfer_costs(purchase_price: Number) -> TransferCostsResult:
    """Transfer duty plus the approximate attorney, bond and deeds office fees."""
    price = _amount("purchase_price", purchase_price)
    return TransferCostsResult(
        purchase_price=to_cents(price),
        transfer_duty=transfer_duty(price),
        transfer_attorney_fee=to_cents(price * TRANSFER_ATTORNEY_RATE),
        bond_registration_fee=to_cents(price * BOND_REGISTRATION_RATE),
        deeds_office_fee=DEEDS_OFFICE_FEE,
    )


def term_comparison(
    principal: Number,
    annual_rate_percent: Number,
    terms_years: Iterable[int] = DEFAULT_COMPARISON_TERMS,
) -> List[TermOption]:
    """Installment and total cost of the same loan over several terms."""
    options: List[TermOption] = []
    for years in terms_years:
        years = _years("term_years", years)
        result = build_schedule(principal, annual_rate_percent, years * MONTHS_PER_YEAR)
        options.append(
            TermOption(
                term_years=years,
                monthly_installment=result.monthly_installment,
                total_interest=result.total_interest,
                total_paid=result.total_paid,
            )
        )
    return options
