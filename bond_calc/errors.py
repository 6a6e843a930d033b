"""Exception classes for the bond calculator.

Every error raised by the engine and the calculators derives from
``BondCalcError`` so that the CLI and the web layer can translate the whole
family with a single ``except`` clause. Errors are raised synchronously to the
immediate caller; nothing is retried, since the same inputs always yield the
same outcome.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .data_models import AmortizationResult


class BondCalcError(Exception):
    """Base class for bond calculator errors."""


class InvalidParameterError(BondCalcError, ValueError):
    """Raised before any computation when an input violates a precondition.

    Examples are a non-positive principal or term, a negative interest rate or
    a negative additional payment. The caller is expected to correct the
    input and try again.
    """

    def __init__(self, name: str, value: object, reason: str) -> None:
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {name} {value!r}: {reason}")


class DidNotConvergeError(BondCalcError, ArithmeticError):
    """Raised when a schedule hits the iteration ceiling with a balance left.

    ``partial`` holds the periods computed before the ceiling was reached,
    flagged with ``converged=False``. It must never be presented as a paid-off
    schedule.
    """

    def __init__(
        self,
        max_periods: int,
        remaining_balance,
        partial: Optional["AmortizationResult"] = None,
    ) -> None:
        self.max_periods = max_periods
        self.remaining_balance = remaining_balance
        self.partial = partial
        super().__init__(
            f"Loan not repaid after {max_periods} periods; "
            f"outstanding balance {remaining_balance}"
        )
