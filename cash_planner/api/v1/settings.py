"""Financial settings and month closure"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import get_settings, tracked_command
from cash_planner.api.v1.schemas import MonthStatusResponse, SettingsSchema
from cash_planner.domain.models import MonthStatus, Settings
from cash_planner.domain.parsing import month_id
from cash_planner.infrastructure.database.repositories import MonthRepository, SettingsRepository
from cash_planner.infrastructure.database.session import get_db

router = APIRouter()


def _status_response(status: MonthStatus) -> MonthStatusResponse:
    return MonthStatusResponse(month=str(status.month), closed=status.is_closed, closed_at=status.closed_at)


@router.get("/settings", response_model=SettingsSchema)
def read_settings(settings: Settings = Depends(get_settings)):
    """Saved settings, or the defaults when nothing was saved yet"""
    return SettingsSchema.model_validate(settings)


@router.put("/settings", response_model=SettingsSchema)
def save_settings(body: SettingsSchema, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "save_settings"):
        saved = SettingsRepository(db).save(Settings(**body.model_dump()))
        db.commit()
    return SettingsSchema.model_validate(saved)


@router.get("/months/{year}/{month}", response_model=MonthStatusResponse)
def get_month_status(year: int, month: int, db: Session = Depends(get_db)):
    return _status_response(MonthRepository(db).get_status(month_id(year, month)))


@router.post("/months/{year}/{month}/close", response_model=MonthStatusResponse)
def close_month(year: int, month: int, request: Request, db: Session = Depends(get_db)):
    """Mark the month closed; closing again refreshes the closing time"""
    target = month_id(year, month)
    with tracked_command(request, "close_month", month=str(target)):
        status = MonthRepository(db).close(target)
        db.commit()
    return _status_response(status)
