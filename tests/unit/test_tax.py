"""Unit tests for VAT and URSSAF computations"""

from dataclasses import replace
from datetime import date
from cash_planner.domain.models import Expense, Invoice, MonthId, Operation, OperationType
from cash_planner.domain.tax import (
    compute_urssaf_for_month,
    compute_urssaf_for_month_v2,
    compute_urssaf_reports,
    compute_vat_for_month,
    compute_vat_for_month_v2,
    compute_vat_reports,
)


def _sale(**overrides) -> Operation:
    fields = dict(
        invoice_date=date(2024, 3, 5),
        operation_type=OperationType.SALE,
        amount_ht_cents=100000,
        vat_amount_cents=20000,
        vat_on_payments=False,
    )
    fields.update(overrides)
    return Operation(**fields)


def test_vat_invoicing_basis_uses_invoice_date():
    """Sale on the invoicing basis is chargeable in its invoice month"""
    report = compute_vat_for_month_v2(MonthId(2024, 3), [_sale()])

    assert report.collected_cents == 20000
    assert report.deductible_cents == 0
    assert report.due_cents == 20000


def test_vat_collection_basis_without_payment_is_never_counted():
    """An unpaid sale on the collection basis contributes nothing, whatever the month"""
    op = _sale(vat_on_payments=True, payment_date=None)

    for i in range(-12, 13):
        report = compute_vat_for_month_v2(MonthId(2024, 3).plus(i), [op])
        assert report.collected_cents == 0
        assert report.deductible_cents == 0
        assert report.due_cents == 0


def test_vat_collection_basis_uses_payment_date():
    op = _sale(vat_on_payments=True, payment_date=date(2024, 5, 2))

    assert compute_vat_for_month_v2(MonthId(2024, 3), [op]).due_cents == 0
    assert compute_vat_for_month_v2(MonthId(2024, 5), [op]).due_cents == 20000


def test_vat_invoicing_basis_ignores_payment_date():
    op = _sale(payment_date=date(2024, 5, 2))

    assert compute_vat_for_month_v2(MonthId(2024, 3), [op]).due_cents == 20000
    assert compute_vat_for_month_v2(MonthId(2024, 5), [op]).due_cents == 0


def test_vat_purchases_are_deductible_and_can_produce_credit(sample_operations):
    """March: 200.00 collected on the invoicing-basis sale, 300.00 deductible on the laptop"""
    report = compute_vat_for_month_v2(MonthId(2024, 3), sample_operations)

    assert report.collected_cents == 20000
    assert report.deductible_cents == 30000
    assert report.due_cents == -10000


def test_vat_reports_one_per_month(sample_operations):
    months = [MonthId(2024, 3), MonthId(2024, 4), MonthId(2024, 5)]
    reports = compute_vat_reports(months, sample_operations)

    assert [r.month for r in reports] == months
    assert [r.due_cents for r in reports] == [-10000, 100000, 0]


def test_urssaf_on_payment_date():
    """22% of 5000.00 encaissed in April"""
    op = _sale(payment_date=date(2024, 4, 10), amount_ht_cents=500000, vat_amount_cents=100000)
    report = compute_urssaf_for_month_v2(MonthId(2024, 4), [op], 220000)

    assert report.ca_encaisse_cents == 500000
    assert report.rate_ppm == 220000
    assert report.due_cents == 110000


def test_urssaf_falls_back_to_invoice_date_without_payment():
    op = _sale(vat_on_payments=True, payment_date=None)

    assert compute_urssaf_for_month_v2(MonthId(2024, 3), [op], 220000).ca_encaisse_cents == 100000


def test_urssaf_ignores_vat_regime_and_purchases(sample_operations):
    """March: invoicing-basis sale paid 28th + unpaid sale counted on its invoice date"""
    report = compute_urssaf_for_month_v2(MonthId(2024, 3), sample_operations, 220000)

    assert report.ca_encaisse_cents == 300000
    assert report.due_cents == 66000


def test_urssaf_reports_one_per_month(sample_operations):
    reports = compute_urssaf_reports([MonthId(2024, 3), MonthId(2024, 4)], sample_operations, 220000)

    assert [r.due_cents for r in reports] == [66000, 110000]


def test_urssaf_due_truncates():
    op = _sale(payment_date=date(2024, 4, 1), amount_ht_cents=333)
    assert compute_urssaf_for_month_v2(MonthId(2024, 4), [op], 220000).due_cents == 73  # 73.26


def test_legacy_vat_counts_paid_invoices_and_expenses():
    invoices = [
        Invoice(service_date=date(2024, 2, 20), amount_ht=100000, vat_rate_ppm=200000, paid_at=date(2024, 3, 3)),
        Invoice(service_date=date(2024, 3, 10), amount_ht=50000, vat_rate_ppm=200000),  # unpaid
    ]
    expenses = [
        Expense(booking_date=date(2024, 3, 1), amount_ht=10000, vat_rate_ppm=200000, paid_at=date(2024, 3, 1)),
        Expense(booking_date=date(2024, 3, 1), amount_ht=10000, vat_rate_ppm=200000, paid_at=date(2024, 4, 1)),
    ]

    report = compute_vat_for_month(MonthId(2024, 3), invoices, expenses)

    assert report.collected_cents == 20000
    assert report.deductible_cents == 2000
    assert report.due_cents == 18000


def test_legacy_urssaf_counts_paid_invoices_only():
    invoices = [
        Invoice(service_date=date(2024, 3, 1), amount_ht=500000, vat_rate_ppm=200000, paid_at=date(2024, 3, 20)),
        Invoice(service_date=date(2024, 3, 1), amount_ht=500000, vat_rate_ppm=200000),
    ]

    report = compute_urssaf_for_month(MonthId(2024, 3), invoices, 220000)

    assert report.ca_encaisse_cents == 500000
    assert report.due_cents == 110000


def test_empty_inputs_yield_zero_reports():
    assert compute_vat_for_month_v2(MonthId(2024, 3), []).due_cents == 0
    assert compute_urssaf_for_month_v2(MonthId(2024, 3), [], 220000).due_cents == 0
    assert compute_vat_for_month(MonthId(2024, 3), [], []).due_cents == 0


def test_operation_replace_keeps_vat_report_consistent():
    op = replace(_sale(), vat_amount_cents=5500)
    assert compute_vat_for_month_v2(MonthId(2024, 3), [op]).collected_cents == 5500
