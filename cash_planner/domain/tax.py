"""VAT (TVA) and URSSAF computations - core business logic for declarations"""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from cash_planner.domain.amounts import apply_rate_ppm
from cash_planner.domain.models import Expense, Invoice, MonthId, Operation, OperationType
from cash_planner.domain.reports import UrssafReport, VatReport


def vat_timing_date(op: Operation) -> Optional[date]:
    """
    Date that makes an operation's VAT chargeable.

    - TVA sur encaissements (vat_on_payments): payment_date only. Without a
      payment date the VAT is not chargeable in any month.
    - TVA sur facturation: invoice_date only.
    """
    if op.vat_on_payments:
        return op.payment_date
    return op.invoice_date


def encaissement_date(op: Operation) -> date:
    """
    Cash-receipt date used for URSSAF and cash recaps.

    Falls back to invoice_date when no payment was recorded, treating the
    invoice as collected on its own date.
    """
    return op.payment_date if op.payment_date is not None else op.invoice_date


def paid_invoices(month: MonthId, invoices: Iterable[Invoice]) -> List[Invoice]:
    return [i for i in invoices if month.contains(i.paid_at)]


def paid_expenses(month: MonthId, expenses: Iterable[Expense]) -> List[Expense]:
    return [e for e in expenses if month.contains(e.paid_at)]


def collected_sales(month: MonthId, operations: Iterable[Operation]) -> List[Operation]:
    """Sales encaissed in the month (payment date, else invoice date)"""
    return [
        op for op in operations
        if op.operation_type == OperationType.SALE and month.contains(encaissement_date(op))
    ]


def compute_vat_for_month(
    month: MonthId,
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
) -> VatReport:
    """Legacy VAT: collected on invoices paid in the month minus VAT on expenses paid in the month"""
    collected_cents = sum(i.amount_tva for i in paid_invoices(month, invoices))
    deductible_cents = sum(e.amount_tva for e in paid_expenses(month, expenses))

    return VatReport(
        month=month,
        collected_cents=collected_cents,
        deductible_cents=deductible_cents,
        due_cents=collected_cents - deductible_cents,
    )


def compute_vat_for_month_v2(month: MonthId, operations: Sequence[Operation]) -> VatReport:
    """
    VAT for the month over unified operations, regime-aware per operation.

    Sales add to collected VAT, purchases to deductible VAT. due_cents may be
    negative (a credit carried by the caller, not clamped here).
    """
    collected_cents = 0
    deductible_cents = 0

    for op in operations:
        if not month.contains(vat_timing_date(op)):
            continue

        if op.operation_type == OperationType.SALE:
            collected_cents += op.vat_amount_cents
        else:
            deductible_cents += op.vat_amount_cents

    return VatReport(
        month=month,
        collected_cents=collected_cents,
        deductible_cents=deductible_cents,
        due_cents=collected_cents - deductible_cents,
    )


def compute_urssaf_for_month(month: MonthId, invoices: Sequence[Invoice], rate_ppm: int) -> UrssafReport:
    """Legacy URSSAF: flat rate on HT revenue of invoices paid in the month"""
    ca_encaisse_cents = sum(i.amount_ht for i in paid_invoices(month, invoices))

    return UrssafReport(
        month=month,
        ca_encaisse_cents=ca_encaisse_cents,
        rate_ppm=rate_ppm,
        due_cents=apply_rate_ppm(ca_encaisse_cents, rate_ppm),
    )


def compute_urssaf_for_month_v2(month: MonthId, operations: Sequence[Operation], rate_ppm: int) -> UrssafReport:
    """
    URSSAF over unified operations.

    Always cash basis whatever the operation's VAT regime: HT of sales
    encaissed in the month. Purchases never count.
    """
    ca_encaisse_cents = sum(op.amount_ht_cents for op in collected_sales(month, operations))

    return UrssafReport(
        month=month,
        ca_encaisse_cents=ca_encaisse_cents,
        rate_ppm=rate_ppm,
        due_cents=apply_rate_ppm(ca_encaisse_cents, rate_ppm),
    )


def compute_vat_reports(months: Iterable[MonthId], operations: Sequence[Operation]) -> List[VatReport]:
    """One v2 VAT report per month, in the given month order"""
    return [compute_vat_for_month_v2(m, operations) for m in months]


def compute_urssaf_reports(
    months: Iterable[MonthId],
    operations: Sequence[Operation],
    rate_ppm: int,
) -> List[UrssafReport]:
    """One v2 URSSAF report per month, in the given month order"""
    return [compute_urssaf_for_month_v2(m, operations, rate_ppm) for m in months]
