"""Utility functions for the bond calculator.

This module provides helpers for turning user input into ``Decimal`` values
and for rounding currency amounts to cents. Form and CLI input commonly comes
with a rand prefix, thousands separators or ``k``/``m`` shorthand, all of
which are stripped here so the engine only ever sees plain numbers.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENTS = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_cents(value: Decimal) -> Decimal:
    """Round a Decimal to the nearest cent, halves away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` into a ``Decimal`` without binary float artefacts.

    Floats are converted through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    Raises ``ValueError`` for values that are not numbers or are not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = decimal_from_str(value)
    else:
        raise ValueError(f"Invalid numeric value: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips whitespace and commas and handles both integer and
    float-like strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.strip().replace(",", "").replace(" ", "")
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def parse_amount(value: str) -> Decimal:
    """Parse a currency string with optional prefix and suffixes.

    Accepts plain numbers ("500000"), formatted rand amounts ("R 1,250,000.00")
    and shorthand with ``k``/``m`` suffixes (e.g. "500k" meaning 500 000).
    """
    cleaned = value.strip().lower().replace(",", "").replace(" ", "")
    if cleaned.startswith("r"):
        cleaned = cleaned[1:]
    factor = Decimal("1")
    if cleaned.endswith("k"):
        factor = Decimal("1000")
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal("1000000")
        cleaned = cleaned[:-1]
    return decimal_from_str(cleaned) * factor


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string such as "11.75" or "11.75%"."""
    cleaned = value.strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    return decimal_from_str(cleaned)
