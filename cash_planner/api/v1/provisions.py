"""Provisions and the provision optimizer"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import (
    OptimizeProvisionsRequest,
    ProvisionOptimizationResponse,
    ProvisionRequest,
    ProvisionResponse,
)
from cash_planner.config import config
from cash_planner.domain.models import Provision, Settings
from cash_planner.domain.parsing import parse_iso_date, parse_month_id
from cash_planner.domain.provisions import optimize_provisions
from cash_planner.infrastructure.database.repositories import ProvisionRepository, TaxScheduleRepository
from cash_planner.infrastructure.database.session import get_db
from cash_planner.infrastructure.observability.metrics import record_provision_outcome

router = APIRouter()


@router.get("/provisions", response_model=List[ProvisionResponse])
def list_provisions(
    due_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    repo = ProvisionRepository(db)
    provisions = repo.list_due_from(parse_iso_date(due_from)) if due_from else repo.list_all()
    return [ProvisionResponse.model_validate(p) for p in provisions]


@router.put("/provisions", response_model=ProvisionResponse)
def upsert_provision(body: ProvisionRequest, request: Request, db: Session = Depends(get_db)):
    """Create or replace the provision for (kind, period)"""
    period = parse_month_id(body.period)
    with tracked_command(request, "upsert_provision", kind=body.kind.value, period=str(period)):
        provision = ProvisionRepository(db).upsert(
            Provision(
                kind=body.kind,
                period=period,
                due_date=body.due_date,
                amount_cents=body.amount_cents,
                label=body.label,
            )
        )
        db.commit()
    return ProvisionResponse.model_validate(provision)


@router.delete("/provisions/{provision_id}", status_code=204)
def delete_provision(provision_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_provision"):
        ProvisionRepository(db).delete(provision_id)
        db.commit()


@router.post("/provisions/optimize", response_model=ProvisionOptimizationResponse)
def optimize(
    body: OptimizeProvisionsRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Compare available cash with pending tax schedules due within the horizon plus the buffer.

    Returns a shortfall, a distributable surplus, or confirms current provisions.
    """
    horizon_days = body.horizon_days if body.horizon_days is not None else config.provision_horizon_days
    with tracked_command(request, "optimize_provisions", horizon_days=horizon_days):
        result = optimize_provisions(
            body.available_cash_cents,
            TaxScheduleRepository(db).list_pending(),
            settings.buffer_cents,
            horizon_days,
            today=date.today(),
        )

    record_provision_outcome(result.outcome)
    return ProvisionOptimizationResponse.model_validate(result)
