"""Dashboard and month recap aggregation"""

from typing import Sequence

from cash_planner.domain.models import Expense, Invoice, MonthId, Operation, OperationType, Provision, Settings
from cash_planner.domain.reports import DashboardSummary, MonthRecap
from cash_planner.domain.tax import (
    collected_sales,
    compute_urssaf_for_month,
    compute_urssaf_for_month_v2,
    compute_vat_for_month,
    compute_vat_for_month_v2,
    encaissement_date,
    paid_expenses,
    paid_invoices,
)


def _disponible(encaissements_ht: int, vat_due: int, urssaf_due: int, provisions: Sequence[Provision], buffer_cents: int) -> int:
    future_provisions = sum(p.amount_cents for p in provisions)
    return encaissements_ht - vat_due - urssaf_due - future_provisions - buffer_cents


def compute_dashboard(
    month: MonthId,
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    provisions: Sequence[Provision],
    settings: Settings,
) -> DashboardSummary:
    """
    Cash available this month after taxes, reserved provisions and buffer.

    Every provision handed in is treated as upcoming; the caller picks the
    window.
    """
    vat = compute_vat_for_month(month, invoices, expenses)
    urssaf = compute_urssaf_for_month(month, invoices, settings.urssaf_rate_ppm)
    encaissements_ht_cents = sum(i.amount_ht for i in paid_invoices(month, invoices))

    return DashboardSummary(
        month=month,
        encaissements_ht_cents=encaissements_ht_cents,
        tva_due_cents=vat.due_cents,
        urssaf_due_cents=urssaf.due_cents,
        disponible_cents=_disponible(
            encaissements_ht_cents, vat.due_cents, urssaf.due_cents, provisions, settings.buffer_cents
        ),
    )


def compute_dashboard_v2(
    month: MonthId,
    operations: Sequence[Operation],
    provisions: Sequence[Provision],
    settings: Settings,
) -> DashboardSummary:
    """Dashboard over unified operations"""
    vat = compute_vat_for_month_v2(month, operations)
    urssaf = compute_urssaf_for_month_v2(month, operations, settings.urssaf_rate_ppm)
    encaissements_ht_cents = sum(op.amount_ht_cents for op in collected_sales(month, operations))

    return DashboardSummary(
        month=month,
        encaissements_ht_cents=encaissements_ht_cents,
        tva_due_cents=vat.due_cents,
        urssaf_due_cents=urssaf.due_cents,
        disponible_cents=_disponible(
            encaissements_ht_cents, vat.due_cents, urssaf.due_cents, provisions, settings.buffer_cents
        ),
    )


def _recap(
    month: MonthId,
    receipts_ht: int,
    receipts_tva: int,
    expenses_ttc: int,
    vat_due: int,
    urssaf_due: int,
    buffer_cents: int,
) -> MonthRecap:
    receipts_ttc = receipts_ht + receipts_tva
    net_from_month = receipts_ttc - expenses_ttc

    return MonthRecap(
        month=month,
        receipts_ht_cents=receipts_ht,
        receipts_tva_cents=receipts_tva,
        receipts_ttc_cents=receipts_ttc,
        expenses_ttc_cents=expenses_ttc,
        vat_due_cents=vat_due,
        urssaf_due_cents=urssaf_due,
        net_from_month_cents=net_from_month,
        after_provisions_cents=net_from_month - vat_due - urssaf_due - buffer_cents,
    )


def compute_month_recap(
    month: MonthId,
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    settings: Settings,
) -> MonthRecap:
    """Net cash of the month (paid invoices minus paid expenses) after taxes and buffer"""
    vat = compute_vat_for_month(month, invoices, expenses)
    urssaf = compute_urssaf_for_month(month, invoices, settings.urssaf_rate_ppm)
    receipts = paid_invoices(month, invoices)

    return _recap(
        month,
        receipts_ht=sum(i.amount_ht for i in receipts),
        receipts_tva=sum(i.amount_tva for i in receipts),
        expenses_ttc=sum(e.amount_ttc for e in paid_expenses(month, expenses)),
        vat_due=vat.due_cents,
        urssaf_due=urssaf.due_cents,
        buffer_cents=settings.buffer_cents,
    )


def compute_month_recap_v2(month: MonthId, operations: Sequence[Operation], settings: Settings) -> MonthRecap:
    """
    Month recap over unified operations.

    Receipts are sales encaissed in the month, expenses are purchases paid in
    the month (payment date, else invoice date).
    """
    vat = compute_vat_for_month_v2(month, operations)
    urssaf = compute_urssaf_for_month_v2(month, operations, settings.urssaf_rate_ppm)
    receipts = collected_sales(month, operations)
    expenses_ttc = sum(
        op.amount_ttc_cents for op in operations
        if op.operation_type == OperationType.PURCHASE and month.contains(encaissement_date(op))
    )

    return _recap(
        month,
        receipts_ht=sum(op.amount_ht_cents for op in receipts),
        receipts_tva=sum(op.vat_amount_cents for op in receipts),
        expenses_ttc=expenses_ttc,
        vat_due=vat.due_cents,
        urssaf_due=urssaf.due_cents,
        buffer_cents=settings.buffer_cents,
    )
