"""Integration tests for API endpoints"""

import uuid
import pytest
from datetime import date, timedelta
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from cash_planner.api.dependencies import get_receipt_storage
from cash_planner.domain.models import TaxSchedule, TaxType
from cash_planner.infrastructure.database.repositories import OperationRepository, TaxScheduleRepository
from cash_planner.infrastructure.storage.receipts import ReceiptStorage


@pytest.fixture
def stored_operations(db: Session, sample_operations):
    """Sample operations persisted in the test database"""
    operations = OperationRepository(db).create_many(sample_operations)
    db.commit()
    return operations


@pytest.fixture
def minio_client(client: TestClient):
    """Mock MinIO client wired into the receipt endpoints"""
    minio = MagicMock()
    minio.bucket_exists.return_value = True
    client.app.dependency_overrides[get_receipt_storage] = lambda: ReceiptStorage(
        minio, "receipts", "http://localhost:9000"
    )
    return minio


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.get("/v1/settings")
    client.get("/v1/forecast", params={"start": "2024-01", "horizon": 1})

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "cash_planner_command_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_operation_with_french_type(client: TestClient):
    """Test POST /v1/operations derives TTC from HT and VAT"""
    response = client.post(
        "/v1/operations",
        json={
            "invoice_date": "2024-03-05",
            "operation_type": "vente",
            "amount_ht_cents": 100000,
            "vat_amount_cents": 20000,
            "label": "F-2024-001",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["operation_type"] == "sale"
    assert data["amount_ttc_cents"] == 120000
    assert data["vat_on_payments"] is True

    fetched = client.get(f"/v1/operations/{data['id']}")
    assert fetched.json()["label"] == "F-2024-001"


def test_create_operation_from_ttc_uses_default_rate(client: TestClient):
    response = client.post(
        "/v1/operations",
        json={"invoice_date": "2024-03-05", "operation_type": "achat", "amount_ht_cents": 10000, "amount_ttc_cents": 12000},
    )

    assert response.status_code == 201
    assert response.json()["vat_amount_cents"] == 2000


def test_create_operation_inconsistent_amounts(client: TestClient):
    """Test POST /v1/operations rejects HT + VAT != TTC"""
    response = client.post(
        "/v1/operations",
        json={
            "invoice_date": "2024-03-05",
            "operation_type": "sale",
            "amount_ht_cents": 100000,
            "vat_amount_cents": 20000,
            "amount_ttc_cents": 130000,
        },
    )

    assert response.status_code == 422
    assert isinstance(response.json()["detail"], str)


def test_create_operation_unknown_type(client: TestClient):
    response = client.post(
        "/v1/operations",
        json={"invoice_date": "2024-03-05", "operation_type": "refund", "amount_ht_cents": 100},
    )
    assert response.status_code == 422


def test_update_and_delete_operation(client: TestClient, stored_operations):
    op_id = str(stored_operations[0].id)

    response = client.put(
        f"/v1/operations/{op_id}",
        json={
            "invoice_date": "2024-03-05",
            "payment_date": "2024-04-10",
            "operation_type": "sale",
            "amount_ht_cents": 500000,
            "vat_amount_cents": 50000,
        },
    )
    assert response.status_code == 200
    assert response.json()["amount_ttc_cents"] == 550000

    assert client.delete(f"/v1/operations/{op_id}").status_code == 204
    assert client.get(f"/v1/operations/{op_id}").status_code == 404


def test_list_operations_filters(client: TestClient, stored_operations):
    assert len(client.get("/v1/operations").json()) == 4
    assert len(client.get("/v1/operations", params={"month": "2024-03"}).json()) == 4
    assert len(client.get("/v1/operations", params={"month": "2024-04", "by": "payment"}).json()) == 1
    assert len(client.get("/v1/operations", params={"type": "purchase"}).json()) == 1

    response = client.get("/v1/operations", params={"month": "2024-03", "type": "sale"})
    assert response.status_code == 422


def test_unknown_operation_returns_404(client: TestClient):
    """Test error body shape for missing entities"""
    response = client.get(f"/v1/operations/{uuid.uuid4()}")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_vat_and_urssaf_reports(client: TestClient, stored_operations):
    vat = client.get("/v1/vat/2024/3").json()
    assert vat["month"] == "2024-03"
    assert vat["due_cents"] == -10000

    urssaf = client.get("/v1/urssaf/2024/4").json()
    assert urssaf["ca_encaisse_cents"] == 500000
    assert urssaf["due_cents"] == 110000


def test_invalid_month_in_path(client: TestClient):
    assert client.get("/v1/vat/2024/13").status_code == 422


def test_dashboard_and_recap(client: TestClient, stored_operations):
    """Test GET /v1/dashboard and /v1/recap with default settings"""
    dashboard = client.get("/v1/dashboard/2024/3").json()
    assert dashboard["encaissements_ht_cents"] == 300000
    assert dashboard["disponible_cents"] == 300000 + 10000 - 66000 - 30000

    recap = client.get("/v1/recap/2024/4").json()
    assert recap["receipts_ttc_cents"] == 600000
    assert recap["after_provisions_cents"] == 600000 - 100000 - 110000 - 30000


def test_dashboard_subtracts_provisions(client: TestClient, stored_operations):
    client.put(
        "/v1/provisions",
        json={"kind": "other", "period": "2024-03", "due_date": "2024-03-30", "amount_cents": 50000},
    )

    dashboard = client.get("/v1/dashboard/2024/3").json()
    assert dashboard["disponible_cents"] == 300000 + 10000 - 66000 - 50000 - 30000


def test_legacy_dashboard_and_migration(client: TestClient):
    client.post(
        "/v1/invoices",
        json={"service_date": "2024-02-25", "paid_at": "2024-03-04", "amount_ht_cents": 100000, "number": "F-1", "client": "ACME"},
    )
    client.post(
        "/v1/expenses",
        json={"booking_date": "2024-03-02", "paid_at": "2024-03-02", "amount_ht_cents": 10000, "label": "Train"},
    )

    legacy = client.get("/v1/dashboard/2024/3", params={"legacy": True}).json()
    assert legacy["tva_due_cents"] == 18000
    assert legacy["disponible_cents"] == 100000 - 18000 - 22000 - 30000

    migrated = client.post("/v1/operations/migrate-legacy").json()
    assert migrated["migrated_invoices"] == 1
    assert migrated["migrated_expenses"] == 1
    assert [op["label"] for op in migrated["operations"]] == ["F-1 - ACME", "Train"]


def test_forecast(client: TestClient):
    client.put("/v1/settings", json={"forecast_ht_cents": 1000000, "forecast_expenses_ttc_cents": 120000})

    response = client.get("/v1/forecast", params={"start": "2024-11", "horizon": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["start"] == "2024-11"
    assert [(m["year"], m["month"]) for m in data["months"]] == [(2024, 11), (2024, 12), (2025, 1)]
    assert data["months"][0]["urssaf_due_cents"] == 220000


def test_generate_and_pay_tax_schedules(client: TestClient, stored_operations):
    """Test schedule generation, overdue detection and payment"""
    response = client.post("/v1/tax-schedules/generate", json={"start_month": "2024-03", "horizon_months": 3})

    assert response.status_code == 201
    schedules = response.json()
    assert [(s["tax_type"], s["due_date"], s["amount_cents"]) for s in schedules] == [
        ("urssaf", "2024-04-05", 66000),
        ("urssaf", "2024-05-05", 110000),
        ("vat", "2024-05-20", 100000),
    ]

    paid = client.post(f"/v1/tax-schedules/{schedules[0]['id']}/pay").json()
    assert paid["status"] == "paid"

    overdue = client.get("/v1/tax-schedules/overdue", params={"as_of": "2024-05-10"}).json()
    assert [s["id"] for s in overdue] == [schedules[1]["id"]]
    assert overdue[0]["status"] == "overdue"

    listed = client.get("/v1/tax-schedules", params={"start": "2024-05-01", "end": "2024-05-31"}).json()
    assert len(listed) == 2


def test_generate_tax_schedules_rejects_bad_month(client: TestClient):
    response = client.post("/v1/tax-schedules/generate", json={"start_month": "2024-13"})
    assert response.status_code == 422


def test_regenerating_tax_schedules_keeps_one_per_period(client: TestClient, stored_operations):
    """Test generating the same window twice stores each obligation once"""
    request = {"start_month": "2024-03", "horizon_months": 3}
    client.post("/v1/tax-schedules/generate", json=request)
    response = client.post("/v1/tax-schedules/generate", json=request)
    assert response.status_code == 201

    window = {"start": "2024-04-01", "end": "2024-05-31"}
    listed = client.get("/v1/tax-schedules", params=window).json()
    assert [(s["tax_type"], s["amount_cents"]) for s in listed] == [
        ("urssaf", 66000),
        ("urssaf", 110000),
        ("vat", 100000),
    ]

    urssaf = client.get("/v1/tax-schedules", params={**window, "tax_type": "URSSAF", "status": "pending"}).json()
    assert len(urssaf) == 2
    assert client.get("/v1/tax-schedules", params={**window, "status": "late"}).status_code == 422


def test_overdue_listing_keeps_obligations_in_optimizer(client: TestClient, db: Session):
    """Test viewing overdue schedules does not remove them from the provision optimizer"""
    due = date.today() - timedelta(days=10)
    TaxScheduleRepository(db).save_all(
        [
            TaxSchedule(
                tax_type=TaxType.VAT,
                due_date=due,
                amount_cents=150000,
                period_start=due.replace(day=1),
                period_end=due,
            )
        ]
    )
    db.commit()

    before = client.post("/v1/provisions/optimize", json={"available_cash_cents": 100000}).json()
    overdue = client.get("/v1/tax-schedules/overdue").json()
    after = client.post("/v1/provisions/optimize", json={"available_cash_cents": 100000}).json()

    assert [s["status"] for s in overdue] == ["overdue"]
    assert before["upcoming_obligations_cents"] == 150000
    assert after["upcoming_obligations_cents"] == 150000
    assert after["outcome"] == "shortfall"


def test_optimize_provisions_shortfall(client: TestClient):
    response = client.post("/v1/provisions/optimize", json={"available_cash_cents": 10000})

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "shortfall"
    assert data["shortfall_cents"] == 20000
    assert data["required_provisions_cents"] == 30000


def test_settings_default_then_saved(client: TestClient):
    """Test GET /v1/settings falls back to defaults until saved"""
    assert client.get("/v1/settings").json()["buffer_cents"] == 30000

    response = client.put("/v1/settings", json={"buffer_cents": 80000, "urssaf_rate_ppm": 211000})
    assert response.status_code == 200

    saved = client.get("/v1/settings").json()
    assert saved["buffer_cents"] == 80000
    assert saved["urssaf_rate_ppm"] == 211000
    assert saved["vat_pay_day"] == 20


def test_close_month(client: TestClient):
    assert client.get("/v1/months/2024/3").json()["closed"] is False

    response = client.post("/v1/months/2024/3/close")

    assert response.status_code == 200
    assert response.json()["closed"] is True
    assert client.get("/v1/months/2024/3").json()["closed_at"] is not None


def test_working_days_analysis(client: TestClient, sample_working_days):
    for day in sample_working_days:
        client.post(
            "/v1/working-days",
            json={
                "date": day.date.isoformat(),
                "hours_worked": day.hours_worked,
                "billable_hours": day.billable_hours,
                "hourly_rate_cents": day.hourly_rate_cents,
            },
        )
    window = {"start": "2024-03-01", "end": "2024-03-31"}

    analysis = client.get("/v1/working-days/analysis", params=window).json()
    assert analysis["peak_productivity_day"] == "2024-03-12"
    assert analysis["total_revenue_cents"] == 180000
    assert [t["week_start"] for t in analysis["utilization_trends"]] == ["2024-03-04", "2024-03-11"]

    stats = client.get("/v1/working-days/stats", params=window).json()
    assert stats["average_hourly_rate_cents"] == 6000

    reversed_window = client.get("/v1/working-days", params={"start": "2024-03-31", "end": "2024-03-01"})
    assert reversed_window.status_code == 422


def test_compute_kpis_twice_replaces_snapshot(client: TestClient):
    first = client.post("/v1/kpis/2024/3/compute").json()
    second = client.post("/v1/kpis/2024/3/compute").json()

    assert second["id"] == first["id"]
    assert second["revenue_ht_cents"] == 0
    assert len(client.get("/v1/kpis", params={"year": 2024}).json()) == 1

    assert client.delete("/v1/kpis/2024/3").status_code == 204
    assert client.get("/v1/kpis/2024/3").status_code == 404


def test_run_simulation(client: TestClient):
    """Test simulation creation and run with snake_case scenario"""
    created = client.post(
        "/v1/simulations",
        json={
            "name": "TJM 2025",
            "scenario_type": "daily_rate_optimization",
            "parameters": {
                "target_annual_income_cents": 6000000,
                "working_days_per_month": 20,
                "working_hours_per_day": 8,
                "vat_rate_ppm": 0,
                "urssaf_rate_ppm": 220000,
                "monthly_fixed_costs_cents": 100000,
                "annual_variable_costs_cents": 300000,
            },
        },
    )
    assert created.status_code == 201
    assert created.json()["scenario_type"] == "DailyRateOptimization"
    assert created.json()["results"] is None

    response = client.post(f"/v1/simulations/{created.json()['id']}/run")

    assert response.status_code == 200
    results = response.json()["results"]
    assert results["optimal_daily_rate_cents"] == 38301
    assert results["working_days_needed"] == 240.0


def test_run_unsupported_simulation(client: TestClient):
    created = client.post("/v1/simulations", json={"name": "Later", "scenario_type": "TaxOptimization"}).json()

    response = client.post(f"/v1/simulations/{created['id']}/run")

    assert response.status_code == 422
    assert "not yet implemented" in response.json()["detail"]


def test_daily_rate_calculator(client: TestClient):
    response = client.post(
        "/v1/simulations/daily-rate",
        json={
            "target_annual_income_cents": 6000000,
            "working_days_per_year": 220,
            "annual_expenses_cents": 1500000,
            "urssaf_rate_ppm": 220000,
        },
    )

    assert response.status_code == 200
    assert response.json()["optimal_daily_rate_cents"] == 41783


def test_upload_receipt(client: TestClient, minio_client: MagicMock):
    """Test POST /v1/receipts stores the file under its month folder"""
    response = client.post(
        "/v1/receipts",
        files={"file": ("Ticket de caisse.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["url"].startswith("http://localhost:9000/receipts/")
    assert data["url"].endswith("_Ticket_de_caisse.pdf")
    assert data["size_bytes"] == 8
    minio_client.put_object.assert_called_once()


def test_upload_empty_receipt(client: TestClient, minio_client: MagicMock):
    response = client.post("/v1/receipts", files={"file": ("empty.pdf", b"", "application/pdf")})

    assert response.status_code == 422
    minio_client.put_object.assert_not_called()


def test_delete_receipt_with_foreign_url(client: TestClient, minio_client: MagicMock):
    response = client.delete("/v1/receipts", params={"url": "https://example.com/file.pdf"})

    assert response.status_code == 422
    minio_client.remove_object.assert_not_called()
