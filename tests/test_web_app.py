"""
Tests for the Flask JSON API and the calculation store.
"""

import pytest

from bond_calc.engine import build_schedule
from bond_calc.serialization import result_to_dict
from bond_calc_web.app import CALCULATORS, create_app
from bond_calc_web.calculation_store import CalculationStore

LOAN = {"principal": 1000000, "annual_rate_percent": 11.25, "term_months": 240}


@pytest.fixture
def app(tmp_path):
    return create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "DATABASE_URL": f"sqlite:///{tmp_path / 'calculations.sqlite3'}",
            "MAX_SAVED_PER_USER": 3,
        }
    )


@pytest.fixture
def client(app):
    return app.test_client()


class TestCalculateEndpoints:
    def test_schedule(self, client):
        response = client.post("/api/calculate/schedule", json=LOAN)
        assert response.status_code == 200
        data = response.get_json()
        assert data["summary"]["months"] == 240
        assert data["summary"]["principal"] == "1000000.00"
        assert len(data["schedule"]) == 240
        assert len(data["yearly"]) == 20
        assert data["schedule"][-1]["remaining_balance"] == "0.00"

    def test_schedule_without_rows(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "include_schedule": False})
        assert response.status_code == 200
        assert "schedule" not in response.get_json()

    @pytest.mark.parametrize("flag", ["false", "False", "no", "0"])
    def test_schedule_rows_off_by_string_flag(self, client, flag):
        response = client.post("/api/calculate/schedule", json={**LOAN, "include_schedule": flag})
        assert response.status_code == 200
        assert "schedule" not in response.get_json()

    def test_schedule_rows_on_by_string_flag(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "include_schedule": "true"})
        assert len(response.get_json()["schedule"]) == 240

    def test_formatted_strings_are_accepted(self, client):
        response = client.post(
            "/api/calculate/schedule",
            json={"principal": "R1,000,000", "annual_rate_percent": "11.25", "term_months": "240"},
        )
        assert response.status_code == 200
        expected = client.post("/api/calculate/schedule", json=LOAN).get_json()
        assert response.get_json()["summary"] == expected["summary"]

    def test_additional_payment(self, client):
        response = client.post(
            "/api/calculate/additional-payment",
            json={"principal": 900000, "annual_rate_percent": 11.25, "term_months": 240, "extra_monthly_amount": 1000},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["baseline"]["months"] == 240
        assert data["months_saved"] > 0
        assert float(data["interest_saved"]) > 0

    def test_transfer_costs(self, client):
        response = client.post("/api/calculate/transfer-costs", json={"purchase_price": "R2,000,000"})
        assert response.status_code == 200
        data = response.get_json()
        assert data["transfer_duty"] == "50250.00"
        assert data["total_costs"] == "105750.00"

    def test_bond_repayment(self, client):
        response = client.post(
            "/api/calculate/bond-repayment",
            json={"property_value": 1200000, "annual_rate_percent": 11.25, "term_years": 20, "deposit": 200000},
        )
        assert response.status_code == 200
        assert response.get_json()["loan_amount"] == "1000000.00"

    def test_affordability(self, client):
        response = client.post(
            "/api/calculate/affordability",
            json={"gross_income": 50000, "monthly_expenses": 20000, "existing_debt": 5000, "annual_rate_percent": 11.25},
        )
        assert response.status_code == 200
        assert response.get_json()["available_for_loan"] == "15000.00"

    def test_deposit_savings(self, client):
        response = client.post(
            "/api/calculate/deposit-savings",
            json={"property_price": 1000000, "deposit_percent": 10, "monthly_saving": 5000},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["months_to_save"] == 20
        assert data["years"] == 1
        assert data["months"] == 8

    def test_terms(self, client):
        response = client.post(
            "/api/calculate/terms",
            json={"principal": 1000000, "annual_rate_percent": 11.25, "terms_years": [10, 20]},
        )
        assert response.status_code == 200
        assert [o["term_years"] for o in response.get_json()["options"]] == [10, 20]


class TestErrors:
    def test_invalid_parameter(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "principal": -5})
        assert response.status_code == 400
        assert response.get_json()["field"] == "principal"

    def test_missing_parameter(self, client):
        response = client.post("/api/calculate/schedule", json={"principal": 1000, "annual_rate_percent": 10})
        assert response.status_code == 400
        assert response.get_json()["field"] == "term_months"

    def test_fractional_term(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "term_months": 240.5})
        assert response.status_code == 400

    def test_body_must_be_json_object(self, client):
        response = client.post("/api/calculate/schedule", data="not json", content_type="text/plain")
        assert response.status_code == 400
        assert response.get_json()["field"] == "body"

    def test_unknown_calculator(self, client):
        response = client.post("/api/calculate/lottery", json=LOAN)
        assert response.status_code == 400
        assert response.get_json()["field"] == "calculation_type"

    def test_long_term_schedule_completes(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "term_months": 1200, "include_schedule": False})
        assert response.status_code == 200
        assert response.get_json()["summary"]["months"] == 1200

    @pytest.mark.parametrize("principal", ["1e27", "R5,000,000,000,000,000"])
    def test_principal_above_maximum(self, client, principal):
        response = client.post("/api/calculate/schedule", json={**LOAN, "principal": principal})
        assert response.status_code == 400
        assert response.get_json()["field"] == "principal"

    def test_purchase_price_above_maximum(self, client):
        response = client.post("/api/calculate/transfer-costs", json={"purchase_price": "1e27"})
        assert response.status_code == 400
        assert response.get_json()["field"] == "purchase_price"

    def test_include_schedule_must_be_boolean(self, client):
        response = client.post("/api/calculate/schedule", json={**LOAN, "include_schedule": "sometimes"})
        assert response.status_code == 400
        assert response.get_json()["field"] == "include_schedule"

    def test_non_convergent_schedule(self, client, monkeypatch):
        monkeypatch.setitem(
            CALCULATORS,
            "schedule",
            lambda data: result_to_dict(build_schedule(100_000, 10, 240, max_periods=12)),
        )
        response = client.post("/api/calculate/schedule", json=LOAN)
        assert response.status_code == 422
        assert response.get_json()["error"] == "Calculation could not complete"

    def test_healthz(self, client):
        assert client.get("/healthz").get_json() == {"status": "ok"}


class TestSavedCalculations:
    def test_save_list_and_remove(self, client):
        response = client.post("/api/calculations", json={"calculation_type": "schedule", "input": LOAN})
        assert response.status_code == 201
        calculation_id = response.get_json()["id"]

        saved = client.get("/api/calculations").get_json()
        assert len(saved) == 1
        assert saved[0]["id"] == calculation_id
        assert saved[0]["calculation_type"] == "schedule"
        assert saved[0]["input"] == LOAN
        assert saved[0]["result"]["summary"]["months"] == 240
        assert "schedule" not in saved[0]["result"]

        assert client.delete(f"/api/calculations/{calculation_id}").status_code == 204
        assert client.get("/api/calculations").get_json() == []
        assert client.delete(f"/api/calculations/{calculation_id}").status_code == 404

    def test_visitors_are_isolated(self, app, client):
        client.post("/api/calculations", json={"calculation_type": "transfer-costs", "input": {"purchase_price": 2000000}})
        other = app.test_client()
        assert other.get("/api/calculations").get_json() == []
        assert len(client.get("/api/calculations").get_json()) == 1

    def test_clear(self, client):
        for price in (1500000, 2000000):
            client.post("/api/calculations", json={"calculation_type": "transfer-costs", "input": {"purchase_price": price}})
        assert client.delete("/api/calculations").status_code == 204
        assert client.get("/api/calculations").get_json() == []

    def test_invalid_input_is_not_saved(self, client):
        response = client.post(
            "/api/calculations", json={"calculation_type": "schedule", "input": {**LOAN, "principal": 0}}
        )
        assert response.status_code == 400
        assert client.get("/api/calculations").get_json() == []

    def test_per_user_cap(self, client):
        for price in (1100000, 1200000, 1300000, 1400000, 1500000):
            client.post("/api/calculations", json={"calculation_type": "transfer-costs", "input": {"purchase_price": price}})
        assert len(client.get("/api/calculations").get_json()) == 3


class TestCalculationStore:
    def test_requires_token(self, tmp_path):
        store = CalculationStore(f"sqlite:///{tmp_path / 'store.sqlite3'}")
        store.add_calculation("", "id-1", "schedule", {}, {})
        assert store.list_calculations("") == []
        assert store.remove_calculation(None, "id-1") is False

    def test_rejects_unknown_type(self, tmp_path):
        store = CalculationStore(f"sqlite:///{tmp_path / 'store.sqlite3'}")
        with pytest.raises(ValueError):
            store.add_calculation("user", "id-1", "lottery", {}, {})

    def test_drops_schedule_rows(self, tmp_path):
        store = CalculationStore(f"sqlite:///{tmp_path / 'store.sqlite3'}")
        store.add_calculation("user", "id-1", "schedule", {"principal": 1}, {"summary": {}, "schedule": [1, 2]})
        saved = store.list_calculations("user")
        assert saved[0]["result"] == {"summary": {}}

    def test_trim_keeps_newest(self, tmp_path):
        store = CalculationStore(f"sqlite:///{tmp_path / 'store.sqlite3'}", max_per_user=2)
        for index in range(4):
            store.add_calculation("user", f"id-{index}", "terms", {"n": index}, {})
        store.add_calculation("other", "id-other", "terms", {}, {})
        assert [row["id"] for row in store.list_calculations("user")] == ["id-2", "id-3"]
        assert len(store.list_calculations("other")) == 1

    def test_remove_is_scoped_to_owner(self, tmp_path):
        store = CalculationStore(f"sqlite:///{tmp_path / 'store.sqlite3'}")
        store.add_calculation("user", "id-1", "terms", {}, {})
        assert store.remove_calculation("intruder", "id-1") is False
        assert store.remove_calculation("user", "id-1") is True
        assert store.list_calculations("user") == []
