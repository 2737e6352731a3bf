"""Conversion of legacy invoices and expenses into unified operations"""

from typing import List, Sequence

from cash_planner.domain.models import Expense, Invoice, Operation, OperationType


def operation_from_invoice(invoice: Invoice) -> Operation:
    """Sale on the collection basis: VAT follows the payment date"""
    label = " - ".join(part for part in (invoice.number, invoice.client) if part) or None
    return Operation(
        invoice_date=invoice.service_date,
        operation_type=OperationType.SALE,
        amount_ht_cents=invoice.amount_ht,
        vat_amount_cents=invoice.amount_tva,
        payment_date=invoice.paid_at,
        vat_on_payments=True,
        label=label,
    )


def operation_from_expense(expense: Expense) -> Operation:
    return Operation(
        invoice_date=expense.booking_date,
        operation_type=OperationType.PURCHASE,
        amount_ht_cents=expense.amount_ht,
        vat_amount_cents=expense.amount_tva,
        payment_date=expense.paid_at,
        vat_on_payments=True,
        label=expense.label or None,
        receipt_url=expense.receipt_path,
    )


def migrate_legacy_records(invoices: Sequence[Invoice], expenses: Sequence[Expense]) -> List[Operation]:
    """All legacy records as operations, invoices first"""
    return [operation_from_invoice(i) for i in invoices] + [operation_from_expense(e) for e in expenses]
