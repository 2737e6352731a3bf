"""Invoices, expenses and unified operations"""

import uuid
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import (
    ExpenseRequest,
    ExpenseResponse,
    InvoiceRequest,
    InvoiceResponse,
    MigrationResponse,
    OperationRequest,
    OperationResponse,
)
from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.migration import migrate_legacy_records
from cash_planner.domain.models import Expense, Invoice, Operation, Settings
from cash_planner.domain.parsing import parse_month_id, parse_operation_type
from cash_planner.infrastructure.database.repositories import (
    ExpenseRepository,
    InvoiceRepository,
    OperationRepository,
)
from cash_planner.infrastructure.database.session import get_db

router = APIRouter()


# ============ Invoices ============


def _invoice_from_request(body: InvoiceRequest, settings: Settings, invoice_id: Optional[uuid.UUID] = None) -> Invoice:
    ht, tva, _ = body.resolved_amounts(settings.default_vat_rate_ppm)
    invoice = Invoice(
        number=body.number,
        client=body.client,
        service_date=body.service_date,
        amount_ht=ht,
        vat_rate_ppm=body.vat_rate_ppm if body.vat_rate_ppm is not None else settings.default_vat_rate_ppm,
        amount_tva=tva,
        paid_at=body.paid_at,
        source=body.source,
    )
    return replace(invoice, id=invoice_id) if invoice_id else invoice


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    body: InvoiceRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    with tracked_command(request, "create_invoice"):
        invoice = InvoiceRepository(db).create(_invoice_from_request(body, settings))
        db.commit()
    return InvoiceResponse.model_validate(invoice)


@router.get("/invoices", response_model=List[InvoiceResponse])
def list_invoices(db: Session = Depends(get_db)):
    return [InvoiceResponse.model_validate(i) for i in InvoiceRepository(db).list_all()]


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db)):
    return InvoiceResponse.model_validate(InvoiceRepository(db).get(invoice_id))


@router.put("/invoices/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: uuid.UUID,
    body: InvoiceRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    with tracked_command(request, "update_invoice"):
        invoice = InvoiceRepository(db).update(_invoice_from_request(body, settings, invoice_id))
        db.commit()
    return InvoiceResponse.model_validate(invoice)


@router.delete("/invoices/{invoice_id}", status_code=204)
def delete_invoice(invoice_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_invoice"):
        InvoiceRepository(db).delete(invoice_id)
        db.commit()


# ============ Expenses ============


def _expense_from_request(body: ExpenseRequest, settings: Settings, expense_id: Optional[uuid.UUID] = None) -> Expense:
    ht, tva, _ = body.resolved_amounts(settings.default_vat_rate_ppm)
    expense = Expense(
        label=body.label,
        category=body.category,
        booking_date=body.booking_date,
        amount_ht=ht,
        vat_rate_ppm=body.vat_rate_ppm if body.vat_rate_ppm is not None else settings.default_vat_rate_ppm,
        amount_tva=tva,
        paid_at=body.paid_at,
        receipt_path=body.receipt_path,
    )
    return replace(expense, id=expense_id) if expense_id else expense


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    body: ExpenseRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    with tracked_command(request, "create_expense"):
        expense = ExpenseRepository(db).create(_expense_from_request(body, settings))
        db.commit()
    return ExpenseResponse.model_validate(expense)


@router.get("/expenses", response_model=List[ExpenseResponse])
def list_expenses(db: Session = Depends(get_db)):
    return [ExpenseResponse.model_validate(e) for e in ExpenseRepository(db).list_all()]


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
def get_expense(expense_id: uuid.UUID, db: Session = Depends(get_db)):
    return ExpenseResponse.model_validate(ExpenseRepository(db).get(expense_id))


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: uuid.UUID,
    body: ExpenseRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    with tracked_command(request, "update_expense"):
        expense = ExpenseRepository(db).update(_expense_from_request(body, settings, expense_id))
        db.commit()
    return ExpenseResponse.model_validate(expense)


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(expense_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_expense"):
        ExpenseRepository(db).delete(expense_id)
        db.commit()


# ============ Operations ============


def _operation_from_request(body: OperationRequest, settings: Settings) -> Operation:
    ht, tva, _ = body.resolved_amounts(settings.default_vat_rate_ppm)
    return Operation(
        invoice_date=body.invoice_date,
        operation_type=body.operation_type,
        amount_ht_cents=ht,
        vat_amount_cents=tva,
        payment_date=body.payment_date,
        vat_on_payments=body.vat_on_payments,
        label=body.label,
        receipt_url=body.receipt_url,
    )


@router.post("/operations", response_model=OperationResponse, status_code=201)
def create_operation(
    body: OperationRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Record a sale or purchase; TTC is always HT + VAT"""
    with tracked_command(request, "create_operation", operation_type=body.operation_type.value):
        operation = OperationRepository(db).create(_operation_from_request(body, settings))
        db.commit()
    return OperationResponse.model_validate(operation)


@router.get("/operations", response_model=List[OperationResponse])
def list_operations(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    by: str = Query("invoice", pattern="^(invoice|payment)$"),
    operation_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
):
    """
    List operations, optionally for one month (by invoice or payment date) or one type.

    Month and type filters cannot be combined.
    """
    repo = OperationRepository(db)
    if month is not None and operation_type is not None:
        raise ValidationError("Filter by month or by type, not both")

    if month is not None:
        target = parse_month_id(month)
        operations = repo.list_by_payment_month(target) if by == "payment" else repo.list_by_invoice_month(target)
    elif operation_type is not None:
        operations = repo.list_by_type(parse_operation_type(operation_type))
    else:
        operations = repo.list_all()

    return [OperationResponse.model_validate(op) for op in operations]


@router.get("/operations/{operation_id}", response_model=OperationResponse)
def get_operation(operation_id: uuid.UUID, db: Session = Depends(get_db)):
    return OperationResponse.model_validate(OperationRepository(db).get(operation_id))


@router.put("/operations/{operation_id}", response_model=OperationResponse)
def update_operation(
    operation_id: uuid.UUID,
    body: OperationRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    repo = OperationRepository(db)
    with tracked_command(request, "update_operation"):
        existing = repo.get(operation_id)
        updated = replace(
            _operation_from_request(body, settings),
            id=existing.id,
            created_at=existing.created_at,
        )
        operation = repo.update(updated)
        db.commit()
    return OperationResponse.model_validate(operation)


@router.delete("/operations/{operation_id}", status_code=204)
def delete_operation(operation_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_operation"):
        OperationRepository(db).delete(operation_id)
        db.commit()


@router.post("/operations/migrate-legacy", response_model=MigrationResponse)
def migrate_legacy(request: Request, db: Session = Depends(get_db)):
    """
    Copy every legacy invoice and expense into operations.

    Legacy rows are left in place; running twice duplicates operations.
    """
    invoices = InvoiceRepository(db).list_all()
    expenses = ExpenseRepository(db).list_all()
    with tracked_command(request, "migrate_legacy", invoices=len(invoices), expenses=len(expenses)):
        operations = OperationRepository(db).create_many(migrate_legacy_records(invoices, expenses))
        db.commit()

    return MigrationResponse(
        migrated_invoices=len(invoices),
        migrated_expenses=len(expenses),
        operations=[OperationResponse.model_validate(op) for op in operations],
    )
