"""JSON API for the bond calculators.

Every calculator is exposed as ``POST /api/calculate/<type>`` and takes a JSON
object of plain numeric inputs. Visitors are identified by a random token kept
in the Flask session, which scopes the calculations they choose to save.

Configuration comes from the environment:

``FLASK_SECRET_KEY``
    Session signing key.
``BOND_CALC_DATABASE_URL``
    SQLAlchemy URL of the calculation store (SQLite file by default).
``BOND_CALC_MAX_SAVED``
    Saved calculations kept per visitor; older ones are trimmed.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from flask import Blueprint, Flask, current_app, jsonify, request, session

from bond_calc.calculators import (
    DEFAULT_AFFORDABILITY_TERM_MONTHS,
    DEFAULT_COMPARISON_TERMS,
    affordability,
    bond_repayment,
    deposit_savings,
    term_comparison,
    transfer_costs,
)
from bond_calc.data_models import AdditionalPayment
from bond_calc.engine import build_schedule, compare_with_additional_payment, validate_parameters
from bond_calc.errors import DidNotConvergeError, InvalidParameterError
from bond_calc.serialization import comparison_to_dict, result_to_dict, to_jsonable
from bond_calc.utils import parse_amount
from bond_calc_web.calculation_store import CalculationStore, create_store

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)

_MISSING = object()


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _store() -> CalculationStore:
    return current_app.extensions["calculation_store"]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidParameterError("body", None, "expected a JSON object")
    return data


def _value(data: Dict[str, Any], name: str, default: Any = _MISSING) -> Any:
    value = data.get(name)
    if value is None or value == "":
        if default is _MISSING:
            raise InvalidParameterError(name, None, "is required")
        return default
    return value


def _amount(data: Dict[str, Any], name: str, default: Any = _MISSING) -> Any:
    """Read a numeric field; strings may carry a rand prefix or separators."""
    value = _value(data, name, default)
    if isinstance(value, str):
        try:
            return parse_amount(value)
        except ValueError as exc:
            raise InvalidParameterError(name, value, "must be a number") from exc
    return value


def _whole(data: Dict[str, Any], name: str, default: Any = _MISSING) -> int:
    value = _value(data, name, default)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(name, value, "must be a whole number")
    return value


_TRUE_STRINGS = ("true", "yes", "1")
_FALSE_STRINGS = ("false", "no", "0")


def _flag(data: Dict[str, Any], name: str, default: bool) -> bool:
    """Read a boolean field; form-style strings such as "false" are understood."""
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS + _FALSE_STRINGS:
        return value.strip().lower() in _TRUE_STRINGS
    raise InvalidParameterError(name, value, "must be true or false")


def calculate_schedule(data: Dict[str, Any]) -> Dict[str, Any]:
    result = build_schedule(
        _amount(data, "principal"),
        _amount(data, "annual_rate_percent"),
        _whole(data, "term_months"),
        _amount(data, "extra_monthly_amount", 0),
    )
    return result_to_dict(result, include_schedule=_flag(data, "include_schedule", True))


def calculate_additional_payment(data: Dict[str, Any]) -> Dict[str, Any]:
    params = validate_parameters(
        _amount(data, "principal"),
        _amount(data, "annual_rate_percent"),
        _whole(data, "term_months"),
    )
    extra = AdditionalPayment(_amount(data, "extra_monthly_amount"))
    return comparison_to_dict(compare_with_additional_payment(params, extra))


def calculate_bond_repayment(data: Dict[str, Any]) -> Dict[str, Any]:
    return to_jsonable(
        bond_repayment(
            _amount(data, "property_value"),
            _amount(data, "annual_rate_percent"),
            _whole(data, "term_years"),
            _amount(data, "deposit", 0),
        )
    )


def calculate_affordability(data: Dict[str, Any]) -> Dict[str, Any]:
    return to_jsonable(
        affordability(
            _amount(data, "gross_income"),
            _amount(data, "monthly_expenses", 0),
            _amount(data, "existing_debt", 0),
            _amount(data, "annual_rate_percent"),
            _whole(data, "term_months", DEFAULT_AFFORDABILITY_TERM_MONTHS),
        )
    )


def calculate_deposit_savings(data: Dict[str, Any]) -> Dict[str, Any]:
    return to_jsonable(
        deposit_savings(
            _amount(data, "property_price"),
            _amount(data, "deposit_percent"),
            _amount(data, "monthly_saving"),
            _amount(data, "savings_rate_percent", 0),
        )
    )


def calculate_transfer_costs(data: Dict[str, Any]) -> Dict[str, Any]:
    return to_jsonable(transfer_costs(_amount(data, "purchase_price")))


def calculate_terms(data: Dict[str, Any]) -> Dict[str, Any]:
    years = data.get("terms_years") or DEFAULT_COMPARISON_TERMS
    if not isinstance(years, (list, tuple)):
        raise InvalidParameterError("terms_years", years, "must be a list of years")
    options = term_comparison(
        _amount(data, "principal"),
        _amount(data, "annual_rate_percent"),
        [_whole({"terms_years": y}, "terms_years") for y in years],
    )
    return {"options": to_jsonable(options)}


CALCULATORS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "schedule": calculate_schedule,
    "additional-payment": calculate_additional_payment,
    "bond-repayment": calculate_bond_repayment,
    "affordability": calculate_affordability,
    "deposit-savings": calculate_deposit_savings,
    "transfer-costs": calculate_transfer_costs,
    "terms": calculate_terms,
}


def _run(calculation_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    calculator = CALCULATORS.get(calculation_type)
    if calculator is None:
        raise InvalidParameterError("calculation_type", calculation_type, "unknown calculator")
    return calculator(data)


@api.post("/api/calculate/<calculation_type>")
def calculate(calculation_type: str):
    return jsonify(_run(calculation_type, _json_body()))


@api.get("/api/calculations")
def list_calculations():
    user_token = _ensure_user_token()
    return jsonify(_store().list_calculations(user_token))


@api.post("/api/calculations")
def save_calculation():
    data = _json_body()
    calculation_type = _value(data, "calculation_type")
    inputs = _value(data, "input")
    if not isinstance(inputs, dict):
        raise InvalidParameterError("input", inputs, "must be a JSON object")
    # Results are recomputed so stored figures always match the inputs.
    result = _run(calculation_type, inputs)
    calculation_id = uuid4().hex
    _store().add_calculation(_ensure_user_token(), calculation_id, calculation_type, inputs, result)
    return jsonify({"id": calculation_id, "calculation_type": calculation_type, "result": result}), 201


@api.delete("/api/calculations/<calculation_id>")
def remove_calculation(calculation_id: str):
    if not _store().remove_calculation(session.get("user_token"), calculation_id):
        return jsonify({"error": "Calculation not found"}), 404
    return "", 204


@api.delete("/api/calculations")
def clear_calculations():
    _store().clear_calculations(session.get("user_token"))
    return "", 204


@api.get("/healthz")
def healthz():
    return jsonify({"status": "ok"})


@api.app_errorhandler(InvalidParameterError)
def handle_invalid_parameter(exc: InvalidParameterError):
    logger.info("Rejected %s %s: %s", request.method, request.path, exc)
    return jsonify({"error": str(exc), "field": exc.name}), 400


@api.app_errorhandler(DidNotConvergeError)
def handle_did_not_converge(exc: DidNotConvergeError):
    logger.info("Calculation could not complete for %s: %s", request.path, exc)
    return jsonify({"error": "Calculation could not complete", "detail": str(exc)}), 422


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory used by ``flask --app bond_calc_web.app run``."""
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"),
        DATABASE_URL=os.environ.get("BOND_CALC_DATABASE_URL"),
        MAX_SAVED_PER_USER=int(os.environ.get("BOND_CALC_MAX_SAVED", "20")),
    )
    if test_config:
        app.config.update(test_config)
    app.extensions["calculation_store"] = create_store(
        app.config["DATABASE_URL"], app.config["MAX_SAVED_PER_USER"]
    )
    app.register_blueprint(api)
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting bond calculator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
