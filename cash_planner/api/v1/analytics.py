"""Working-day tracking, productivity analysis and monthly KPIs"""

import uuid
from dataclasses import replace
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import (
    MonthlyKPIResponse,
    WorkingDayRequest,
    WorkingDayResponse,
    WorkingDaysStatsResponse,
    WorkingPatternResponse,
)
from cash_planner.domain.analytics import analyze_working_patterns, compute_monthly_kpis, compute_working_days_stats
from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.models import Settings, WorkingDay
from cash_planner.domain.parsing import month_id, parse_iso_date
from cash_planner.infrastructure.database.repositories import (
    ExpenseRepository,
    InvoiceRepository,
    KPIRepository,
    WorkingDayRepository,
)
from cash_planner.infrastructure.database.session import get_db

router = APIRouter()


def _window(start: str, end: str):
    start_date, end_date = parse_iso_date(start), parse_iso_date(end)
    if end_date < start_date:
        raise ValidationError("end must not be before start")
    return start_date, end_date


def _working_day_from_request(body: WorkingDayRequest) -> WorkingDay:
    return WorkingDay(
        date=body.date,
        hours_worked=body.hours_worked,
        billable_hours=body.billable_hours,
        hourly_rate_cents=body.hourly_rate_cents,
        description=body.description,
    )


# ============ Working days ============


@router.post("/working-days", response_model=WorkingDayResponse, status_code=201)
def create_working_day(body: WorkingDayRequest, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "create_working_day"):
        day = WorkingDayRepository(db).create(_working_day_from_request(body))
        db.commit()
    return WorkingDayResponse.model_validate(day)


@router.get("/working-days", response_model=List[WorkingDayResponse])
def list_working_days(
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    days = WorkingDayRepository(db).list_between(*_window(start, end))
    return [WorkingDayResponse.model_validate(d) for d in days]


@router.get("/working-days/stats", response_model=WorkingDaysStatsResponse)
def get_working_days_stats(
    request: Request,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    with tracked_command(request, "working_days_stats", start=start, end=end):
        stats = compute_working_days_stats(WorkingDayRepository(db).list_between(*_window(start, end)))
    return WorkingDaysStatsResponse.model_validate(stats)


@router.get("/working-days/analysis", response_model=WorkingPatternResponse)
def get_working_pattern_analysis(
    request: Request,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """Productivity over the window: peak day, revenue per day, weekly utilization"""
    with tracked_command(request, "working_pattern_analysis", start=start, end=end):
        analysis = analyze_working_patterns(WorkingDayRepository(db).list_between(*_window(start, end)))
    return WorkingPatternResponse.model_validate(analysis)


@router.get("/working-days/{day_id}", response_model=WorkingDayResponse)
def get_working_day(day_id: uuid.UUID, db: Session = Depends(get_db)):
    return WorkingDayResponse.model_validate(WorkingDayRepository(db).get(day_id))


@router.put("/working-days/{day_id}", response_model=WorkingDayResponse)
def update_working_day(day_id: uuid.UUID, body: WorkingDayRequest, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "update_working_day"):
        day = WorkingDayRepository(db).update(replace(_working_day_from_request(body), id=day_id))
        db.commit()
    return WorkingDayResponse.model_validate(day)


@router.delete("/working-days/{day_id}", status_code=204)
def delete_working_day(day_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_working_day"):
        WorkingDayRepository(db).delete(day_id)
        db.commit()


# ============ KPIs ============


@router.post("/kpis/{year}/{month}/compute", response_model=MonthlyKPIResponse)
def compute_kpis(
    year: int,
    month: int,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Recompute the month's KPI snapshot from paid invoices, paid expenses and working days, replacing any previous one"""
    target = month_id(year, month)
    with tracked_command(request, "compute_kpis", month=str(target)):
        kpi = compute_monthly_kpis(
            target,
            InvoiceRepository(db).list_paid_in_month(target),
            ExpenseRepository(db).list_paid_in_month(target),
            WorkingDayRepository(db).list_for_month(target),
            settings,
        )
        saved = KPIRepository(db).upsert(kpi)
        db.commit()
    return MonthlyKPIResponse.model_validate(saved)


@router.get("/kpis/{year}/{month}", response_model=MonthlyKPIResponse)
def get_kpis(year: int, month: int, db: Session = Depends(get_db)):
    return MonthlyKPIResponse.model_validate(KPIRepository(db).get(month_id(year, month)))


@router.get("/kpis", response_model=List[MonthlyKPIResponse])
def list_kpis(year: int = Query(...), db: Session = Depends(get_db)):
    return [MonthlyKPIResponse.model_validate(k) for k in KPIRepository(db).list_for_year(year)]


@router.delete("/kpis/{year}/{month}", status_code=204)
def delete_kpis(year: int, month: int, request: Request, db: Session = Depends(get_db)):
    target = month_id(year, month)
    with tracked_command(request, "delete_kpis", month=str(target)):
        KPIRepository(db).delete(target)
        db.commit()
