"""Conversion of result records into JSON-friendly structures.

Decimal amounts are rendered as strings so cents survive the trip through
JSON unchanged. Used by the CLI exporters and the web API.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from decimal import Decimal
from typing import Any, Dict, List

from .data_models import AmortizationResult, ComparisonResult, PaymentPeriod
from .engine import yearly_summary

# Read-only properties exposed alongside the dataclass fields.
_DERIVED_FIELDS = {
    "AmortizationResult": ("months", "monthly_payment"),
    "DepositSavingsResult": ("years", "months"),
    "TransferCostsResult": ("total_costs",),
}


def to_jsonable(value: Any) -> Any:
    """Recursively convert records, Decimals and sequences for ``json.dumps``."""
    if isinstance(value, Decimal):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
        for name in _DERIVED_FIELDS.get(type(value).__name__, ()):
            data[name] = to_jsonable(getattr(value, name))
        return data
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def summary_to_dict(result: AmortizationResult) -> Dict[str, Any]:
    """Summary fields of a schedule without the per-period rows."""
    data = to_jsonable(result)
    data.pop("periods")
    return data


def schedule_to_rows(periods: List[PaymentPeriod]) -> List[Dict[str, Any]]:
    return [to_jsonable(period) for period in periods]


def result_to_dict(result: AmortizationResult, include_schedule: bool = True) -> Dict[str, Any]:
    """Summary, yearly roll-up and (optionally) the full schedule."""
    data: Dict[str, Any] = {"summary": summary_to_dict(result)}
    data["yearly"] = [to_jsonable(year) for year in yearly_summary(result)]
    if include_schedule:
        data["schedule"] = schedule_to_rows(list(result.periods))
    return data


def comparison_to_dict(comparison: ComparisonResult) -> Dict[str, Any]:
    return {
        "baseline": summary_to_dict(comparison.baseline),
        "accelerated": summary_to_dict(comparison.accelerated),
        "months_saved": comparison.months_saved,
        "interest_saved": str(comparison.interest_saved),
    }
