"""Command-line interface for the bond calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view summaries,
see what an additional monthly payment saves and run the home-buyer
calculators. Schedules can be printed to the terminal or exported to
JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

import click

from .calculators import (
    DEFAULT_AFFORDABILITY_TERM_MONTHS,
    DEFAULT_COMPARISON_TERMS,
    affordability,
    bond_repayment,
    deposit_savings,
    term_comparison,
    transfer_costs,
)
from .data_models import AdditionalPayment, AmortizationResult, LoanParameters
from .engine import build_schedule, compare_with_additional_payment, yearly_summary
from .errors import DidNotConvergeError, InvalidParameterError
from .formatter import (
    print_affordability,
    print_bond_repayment,
    print_comparison,
    print_deposit_savings,
    print_schedule,
    print_summary,
    print_term_options,
    print_transfer_costs,
    print_yearly,
)
from .serialization import result_to_dict, summary_to_dict
from .utils import parse_amount, parse_percent

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def amount_option(value: Optional[str]) -> Optional[Decimal]:
    """Parse an amount such as "R1,500,000", "1.5m" or "850k"."""
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def percent_option(value: str) -> Decimal:
    try:
        return parse_percent(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def run_calculation(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call into the engine, turning its errors into click errors."""
    logger.debug("Running %s%r", func.__name__, args)
    try:
        return func(*args, **kwargs)
    except InvalidParameterError as exc:
        raise click.BadParameter(exc.reason, param_hint=exc.name)
    except DidNotConvergeError as exc:
        raise click.ClickException(f"Calculation could not complete: {exc}")


def export_to_json(path: Path, result: AmortizationResult) -> None:
    """Export summary, yearly roll-up and schedule to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f, indent=2)


def export_to_csv(path: Path, result: AmortizationResult) -> None:
    """Export the schedule to a CSV file."""
    header = ["Period", "Payment", "Interest", "Principal", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for p in result.periods:
            writer.writerow(
                [
                    p.period_index,
                    p.payment,
                    p.interest_portion,
                    p.principal_portion,
                    p.remaining_balance,
                ]
            )


def loan_options(command: Callable) -> Callable:
    """Attach the principal/rate/term/extra options shared by loan commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 1.2m or R850,000"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=click.IntRange(min=1), help="Loan term in months"),
        click.option("--extra", "-e", "extra", default=None, help="Additional amount paid every month"),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """Bond (home loan) calculator for repayments, schedules and savings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--yearly", is_flag=True, help="Show a yearly roll-up instead of monthly rows")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    term: int,
    extra: Optional[str],
    yearly: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    result = run_calculation(
        build_schedule,
        amount_option(principal),
        percent_option(rate),
        term,
        amount_option(extra) or 0,
    )
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    if yearly:
        print_yearly(yearly_summary(result))
    elif result.months > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {result.months} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(result.periods[:MAX_PRINTED_ROWS])
    else:
        print_schedule(result.periods)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    term: int,
    extra: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    result = run_calculation(
        build_schedule,
        amount_option(principal),
        percent_option(rate),
        term,
        amount_option(extra) or 0,
    )
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_to_dict(result)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=click.IntRange(min=1), help="Loan term in months")
@click.option("--extra", "-e", "extra", required=True, help="Additional amount paid every month")
def compare(principal: str, rate: str, term: int, extra: str) -> None:
    """Show what an additional monthly payment saves.

    Example:

        bond-calc compare -p 900k -r 11.25 -t 240 -e 1000
    """
    params = LoanParameters(amount_option(principal), percent_option(rate), term)
    comparison = run_calculation(
        compare_with_additional_payment, params, AdditionalPayment(amount_option(extra))
    )
    print_comparison(comparison)


@cli.command()
@click.option("--price", "price", required=True, help="Property value")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--years", "-y", "years", type=click.IntRange(min=1), default=20, show_default=True, help="Loan term in years")
@click.option("--deposit", "-d", "deposit", default=None, help="Deposit amount")
def repayment(price: str, rate: str, years: int, deposit: Optional[str]) -> None:
    """Monthly repayment on a property after the deposit."""
    result = run_calculation(
        bond_repayment,
        amount_option(price),
        percent_option(rate),
        years,
        amount_option(deposit) or 0,
    )
    print_bond_repayment(result)


@cli.command(name="affordability")
@click.option("--income", "income", required=True, help="Gross monthly income")
@click.option("--expenses", "expenses", default="0", show_default=True, help="Monthly living expenses")
@click.option("--debt", "debt", default="0", show_default=True, help="Existing monthly debt repayments")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option(
    "--term",
    "-t",
    "term",
    type=click.IntRange(min=1),
    default=DEFAULT_AFFORDABILITY_TERM_MONTHS,
    show_default=True,
    help="Loan term in months",
)
def affordability_command(income: str, expenses: str, debt: str, rate: str, term: int) -> None:
    """Estimate how large a bond you can afford."""
    result = run_calculation(
        affordability,
        amount_option(income),
        amount_option(expenses),
        amount_option(debt),
        percent_option(rate),
        term,
    )
    print_affordability(result)


@cli.command()
@click.option("--price", "price", required=True, help="Property price")
@click.option("--percent", "percent", default="10", show_default=True, help="Deposit as a percentage of the price")
@click.option("--saving", "saving", required=True, help="Amount saved every month")
@click.option("--rate", "-r", "rate", default="0", show_default=True, help="Savings interest rate (percent)")
def deposit(price: str, percent: str, saving: str, rate: str) -> None:
    """How long it takes to save a deposit."""
    result = run_calculation(
        deposit_savings,
        amount_option(price),
        percent_option(percent),
        amount_option(saving),
        percent_option(rate),
    )
    print_deposit_savings(result)


@cli.command(name="transfer-costs")
@click.option("--price", "price", required=True, help="Purchase price")
def transfer_costs_command(price: str) -> None:
    """Transfer duty and bond registration costs for a purchase."""
    print_transfer_costs(run_calculation(transfer_costs, amount_option(price)))


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--years", "-y", "years", type=click.IntRange(min=1), multiple=True, help="Term in years (repeatable)")
def terms(principal: str, rate: str, years: Tuple[int, ...]) -> None:
    """Compare installments and interest across loan terms."""
    options = run_calculation(
        term_comparison,
        amount_option(principal),
        percent_option(rate),
        years or DEFAULT_COMPARISON_TERMS,
    )
    print_term_options(options)


if __name__ == "__main__":
    cli()
