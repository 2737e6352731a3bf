"""Dashboard, month recap and cash-flow forecast"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import DashboardResponse, ForecastResponse, MonthRecapResponse
from cash_planner.config import config
from cash_planner.domain.forecast import forecast_cashflow
from cash_planner.domain.models import MonthId, Settings
from cash_planner.domain.parsing import month_id, parse_month_id
from cash_planner.domain.recap import (
    compute_dashboard,
    compute_dashboard_v2,
    compute_month_recap,
    compute_month_recap_v2,
)
from cash_planner.infrastructure.database.repositories import (
    ExpenseRepository,
    InvoiceRepository,
    OperationRepository,
    ProvisionRepository,
)
from cash_planner.infrastructure.database.session import get_db

router = APIRouter()


def _month_operations(db: Session, month: MonthId):
    return OperationRepository(db).list_touching_window(month.first_day, month.last_day)


@router.get("/dashboard/{year}/{month}", response_model=DashboardResponse)
def get_dashboard(
    year: int,
    month: int,
    request: Request,
    legacy: bool = False,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Cash available for the month once VAT, URSSAF, provisions and buffer are reserved.

    Provisions due on or after the first day of the month count as upcoming.
    `legacy=true` reads invoices/expenses instead of unified operations.
    """
    target = month_id(year, month)
    with tracked_command(request, "dashboard", month=str(target), legacy=legacy):
        provisions = ProvisionRepository(db).list_due_from(target.first_day)
        if legacy:
            summary = compute_dashboard(
                target,
                InvoiceRepository(db).list_paid_in_month(target),
                ExpenseRepository(db).list_paid_in_month(target),
                provisions,
                settings,
            )
        else:
            summary = compute_dashboard_v2(target, _month_operations(db, target), provisions, settings)

    return DashboardResponse.model_validate(summary)


@router.get("/recap/{year}/{month}", response_model=MonthRecapResponse)
def get_month_recap(
    year: int,
    month: int,
    request: Request,
    legacy: bool = False,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Receipts, expenses and taxes of the month, net of provisions"""
    target = month_id(year, month)
    with tracked_command(request, "month_recap", month=str(target), legacy=legacy):
        if legacy:
            recap = compute_month_recap(
                target,
                InvoiceRepository(db).list_paid_in_month(target),
                ExpenseRepository(db).list_paid_in_month(target),
                settings,
            )
        else:
            recap = compute_month_recap_v2(target, _month_operations(db, target), settings)

    return MonthRecapResponse.model_validate(recap)


@router.get("/forecast", response_model=ForecastResponse)
def get_forecast(
    request: Request,
    start: str = Query(..., description="First month, YYYY-MM"),
    horizon: Optional[int] = Query(None, ge=0, le=60),
    settings: Settings = Depends(get_settings),
):
    """Flat projection of the forecast assumptions stored in settings"""
    start_month = parse_month_id(start)
    months = horizon if horizon is not None else config.default_forecast_horizon
    with tracked_command(request, "forecast", start=str(start_month), horizon=months):
        result = forecast_cashflow(start_month, months, settings)

    return ForecastResponse.model_validate(result)
