"""Provision optimizer - nets available cash against upcoming tax obligations"""

from datetime import date, timedelta
from typing import Optional, Sequence

from cash_planner.domain.models import TaxSchedule, TaxScheduleStatus
from cash_planner.domain.reports import ProvisionOptimization, ProvisionOutcome


def upcoming_obligations(schedules: Sequence[TaxSchedule], cutoff: date) -> int:
    """Total of pending schedules due on or before cutoff"""
    return sum(
        s.amount_cents for s in schedules
        if s.status == TaxScheduleStatus.PENDING and s.due_date <= cutoff
    )


def optimize_provisions(
    available_cash_cents: int,
    upcoming_schedules: Sequence[TaxSchedule],
    buffer_cents: int,
    horizon_days: int,
    today: Optional[date] = None,
) -> ProvisionOptimization:
    """
    Decide how much cash can be distributed once obligations are covered.

    required = pending obligations due within horizon_days + buffer
    surplus  = available cash - required

    Outcomes:
    - surplus < 0: SHORTFALL, shortfall_cents = -surplus
    - surplus > 2 x buffer: DISTRIBUTE the surplus
    - otherwise: OPTIMAL, keep provisions as they are

    Example:
        cash 1000.00, obligations 1500.00, buffer 500.00
        -> required 2000.00, shortfall 1000.00, nothing to distribute
    """
    today = today or date.today()
    cutoff = today + timedelta(days=horizon_days)

    obligations = upcoming_obligations(upcoming_schedules, cutoff)
    required = obligations + buffer_cents
    surplus = available_cash_cents - required

    if surplus < 0:
        outcome = ProvisionOutcome.SHORTFALL
        message = f"Besoin de {(-surplus) // 100} € supplémentaires pour couvrir les obligations fiscales"
    elif surplus > buffer_cents * 2:
        outcome = ProvisionOutcome.DISTRIBUTE
        message = f"Possibilité de distribuer {surplus // 100} € après provisions"
    else:
        outcome = ProvisionOutcome.OPTIMAL
        message = "Provisions optimales maintenues"

    return ProvisionOptimization(
        available_cash_cents=available_cash_cents,
        upcoming_obligations_cents=obligations,
        required_provisions_cents=required,
        available_for_distribution_cents=max(surplus, 0),
        shortfall_cents=max(-surplus, 0),
        outcome=outcome,
        recommendations=[message],
        optimization_date=today,
    )
