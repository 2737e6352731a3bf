"""VAT / URSSAF reports and the tax schedule"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import (
    ScheduleGenerateRequest,
    TaxScheduleResponse,
    UrssafReportResponse,
    VatReportResponse,
)
from cash_planner.domain.models import Settings
from cash_planner.domain.parsing import (
    month_id,
    parse_iso_date,
    parse_month_id,
    parse_schedule_status,
    parse_tax_type,
)
from cash_planner.domain.schedule import compute_tax_schedule
from cash_planner.domain.tax import (
    compute_urssaf_for_month,
    compute_urssaf_for_month_v2,
    compute_urssaf_reports,
    compute_vat_for_month,
    compute_vat_for_month_v2,
    compute_vat_reports,
)
from cash_planner.infrastructure.database.repositories import (
    ExpenseRepository,
    InvoiceRepository,
    OperationRepository,
    TaxScheduleRepository,
)
from cash_planner.infrastructure.database.session import get_db
from cash_planner.infrastructure.observability.metrics import record_schedules

router = APIRouter()


@router.get("/vat/{year}/{month}", response_model=VatReportResponse)
def get_vat_report(year: int, month: int, request: Request, legacy: bool = False, db: Session = Depends(get_db)):
    """Collected, deductible and due VAT for the month (due may be negative: a credit)"""
    target = month_id(year, month)
    with tracked_command(request, "vat_report", month=str(target), legacy=legacy):
        if legacy:
            report = compute_vat_for_month(
                target,
                InvoiceRepository(db).list_paid_in_month(target),
                ExpenseRepository(db).list_paid_in_month(target),
            )
        else:
            operations = OperationRepository(db).list_touching_window(target.first_day, target.last_day)
            report = compute_vat_for_month_v2(target, operations)

    return VatReportResponse.model_validate(report)


@router.get("/urssaf/{year}/{month}", response_model=UrssafReportResponse)
def get_urssaf_report(
    year: int,
    month: int,
    request: Request,
    legacy: bool = False,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """URSSAF contribution on revenue encaissed in the month"""
    target = month_id(year, month)
    with tracked_command(request, "urssaf_report", month=str(target), legacy=legacy):
        if legacy:
            report = compute_urssaf_for_month(
                target, InvoiceRepository(db).list_paid_in_month(target), settings.urssaf_rate_ppm
            )
        else:
            operations = OperationRepository(db).list_touching_window(target.first_day, target.last_day)
            report = compute_urssaf_for_month_v2(target, operations, settings.urssaf_rate_ppm)

    return UrssafReportResponse.model_validate(report)


@router.post("/tax-schedules/generate", response_model=List[TaxScheduleResponse], status_code=201)
def generate_tax_schedules(
    body: ScheduleGenerateRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Compute VAT and URSSAF obligations for each month of the horizon and store them.

    Only periods with a positive amount due produce a schedule. Regenerating a
    period replaces its pending schedule; a paid period is kept and skipped.
    """
    start = parse_month_id(body.start_month)
    months = [start.plus(i) for i in range(body.horizon_months)]

    with tracked_command(request, "generate_tax_schedules", start=str(start), horizon=body.horizon_months):
        operations = OperationRepository(db).list_touching_window(start.first_day, months[-1].last_day)
        schedules = compute_tax_schedule(
            start,
            body.horizon_months,
            compute_vat_reports(months, operations),
            compute_urssaf_reports(months, operations, settings.urssaf_rate_ppm),
            settings,
        )
        saved = TaxScheduleRepository(db).save_all(schedules)
        db.commit()

    record_schedules(saved)
    return [TaxScheduleResponse.model_validate(s) for s in saved]


@router.get("/tax-schedules", response_model=List[TaxScheduleResponse])
def list_tax_schedules(
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    tax_type: Optional[str] = Query(None, description="vat, tva, urssaf, income_tax, other"),
    status: Optional[str] = Query(None, description="pending or paid"),
    db: Session = Depends(get_db),
):
    schedules = TaxScheduleRepository(db).list_between(
        parse_iso_date(start),
        parse_iso_date(end),
        tax_type=parse_tax_type(tax_type) if tax_type else None,
        status=parse_schedule_status(status) if status else None,
    )
    return [TaxScheduleResponse.model_validate(s) for s in schedules]


@router.get("/tax-schedules/overdue", response_model=List[TaxScheduleResponse])
def list_overdue_tax_schedules(
    request: Request,
    as_of: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    db: Session = Depends(get_db),
):
    """Unpaid schedules past their due date"""
    as_of_date = parse_iso_date(as_of) if as_of else date.today()
    with tracked_command(request, "overdue_tax_schedules", as_of=as_of_date.isoformat()):
        schedules = TaxScheduleRepository(db).list_overdue(as_of_date)
    return [TaxScheduleResponse.model_validate(s) for s in schedules]


@router.post("/tax-schedules/{schedule_id}/pay", response_model=TaxScheduleResponse)
def pay_tax_schedule(schedule_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "pay_tax_schedule"):
        schedule = TaxScheduleRepository(db).mark_as_paid(schedule_id)
        db.commit()
    return TaxScheduleResponse.model_validate(schedule)


@router.delete("/tax-schedules/{schedule_id}", status_code=204)
def delete_tax_schedule(schedule_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_tax_schedule"):
        TaxScheduleRepository(db).delete(schedule_id)
        db.commit()
