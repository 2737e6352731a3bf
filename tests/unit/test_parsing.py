"""Unit tests for boundary parsing and legacy migration"""

import pytest
from datetime import date
from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.migration import migrate_legacy_records, operation_from_expense, operation_from_invoice
from cash_planner.domain.models import (
    Expense,
    Invoice,
    MonthId,
    OperationType,
    ProvisionKind,
    SimulationScenario,
    TaxScheduleStatus,
    TaxType,
)
from cash_planner.domain.parsing import (
    month_id,
    parse_iso_date,
    parse_month_id,
    parse_operation_type,
    parse_provision_kind,
    parse_scenario,
    parse_schedule_status,
    parse_tax_type,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("sale", OperationType.SALE),
        ("Vente", OperationType.SALE),
        ("PURCHASE", OperationType.PURCHASE),
        (" achat ", OperationType.PURCHASE),
    ],
)
def test_parse_operation_type(value, expected):
    assert parse_operation_type(value) == expected


def test_parse_tax_type_aliases():
    assert parse_tax_type("TVA") == TaxType.VAT
    assert parse_tax_type("urssaf") == TaxType.URSSAF
    assert parse_tax_type("IncomeTax") == TaxType.INCOME_TAX
    assert parse_tax_type("income_tax") == TaxType.INCOME_TAX


def test_parse_status_and_kind():
    assert parse_schedule_status("Overdue") == TaxScheduleStatus.OVERDUE
    assert parse_provision_kind("vat") == ProvisionKind.VAT


def test_parse_scenario_accepts_both_spellings():
    assert parse_scenario("DailyRateOptimization") == SimulationScenario.DAILY_RATE_OPTIMIZATION
    assert parse_scenario("daily_rate_optimization") == SimulationScenario.DAILY_RATE_OPTIMIZATION
    assert parse_scenario("working_days_impact") == SimulationScenario.WORKING_DAYS_IMPACT


def test_parse_unknown_tags():
    with pytest.raises(ValidationError):
        parse_operation_type("refund")
    with pytest.raises(ValidationError):
        parse_tax_type("")
    with pytest.raises(ValidationError):
        parse_scenario("Unknown")
    with pytest.raises(ValidationError):
        parse_provision_kind(None)


def test_parse_iso_date():
    assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    for value in ("2023-02-29", "29/02/2024", "", None):
        with pytest.raises(ValidationError):
            parse_iso_date(value)


def test_parse_month_id():
    assert parse_month_id("2024-03") == MonthId(2024, 3)

    for value in ("2024-13", "2024-00", "2024-3", "2024/03", None):
        with pytest.raises(ValidationError):
            parse_month_id(value)


def test_month_id_validates_month_number():
    assert month_id(2024, 12) == MonthId(2024, 12)
    with pytest.raises(ValidationError):
        month_id(2024, 0)


def test_invoice_becomes_sale_on_collection_basis():
    invoice = Invoice(
        service_date=date(2024, 3, 1),
        amount_ht=100000,
        vat_rate_ppm=200000,
        paid_at=date(2024, 4, 2),
        number="F-2024-007",
        client="ACME",
    )

    op = operation_from_invoice(invoice)

    assert op.operation_type == OperationType.SALE
    assert op.invoice_date == date(2024, 3, 1)
    assert op.payment_date == date(2024, 4, 2)
    assert op.vat_on_payments is True
    assert op.amount_ttc_cents == 120000
    assert op.label == "F-2024-007 - ACME"


def test_invoice_without_number_or_client_has_no_label():
    invoice = Invoice(service_date=date(2024, 3, 1), amount_ht=100000, vat_rate_ppm=200000)
    assert operation_from_invoice(invoice).label is None


def test_expense_becomes_purchase_keeping_receipt():
    expense = Expense(
        booking_date=date(2024, 3, 3),
        amount_ht=5000,
        vat_rate_ppm=200000,
        label="Train",
        receipt_path="http://localhost:9000/receipts/2024-03/ticket.pdf",
    )

    op = operation_from_expense(expense)

    assert op.operation_type == OperationType.PURCHASE
    assert op.vat_amount_cents == 1000
    assert op.payment_date is None
    assert op.label == "Train"
    assert op.receipt_url == expense.receipt_path


def test_migrate_legacy_records_keeps_invoices_first():
    invoices = [Invoice(service_date=date(2024, 3, 1), amount_ht=100, vat_rate_ppm=0)]
    expenses = [
        Expense(booking_date=date(2024, 2, 1), amount_ht=50, vat_rate_ppm=0),
        Expense(booking_date=date(2024, 2, 2), amount_ht=60, vat_rate_ppm=0),
    ]

    operations = migrate_legacy_records(invoices, expenses)

    assert [op.operation_type for op in operations] == [
        OperationType.SALE,
        OperationType.PURCHASE,
        OperationType.PURCHASE,
    ]
    assert migrate_legacy_records([], []) == []
