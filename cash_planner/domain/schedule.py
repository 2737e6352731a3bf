"""Tax schedule generation for VAT and URSSAF payments"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from cash_planner.domain.models import MonthId, Settings, TaxSchedule, TaxScheduleStatus, TaxType, utcnow
from cash_planner.domain.reports import UrssafReport, VatReport
from cash_planner.utils.date_utils import clamped_date

logger = logging.getLogger(__name__)


def due_date_for_period(period: MonthId, pay_day: int) -> date:
    """
    Payment date for a period: `pay_day` of the following month.

    A pay day beyond the month's length is clamped to its last day
    (pay_day=31 with a February due month -> Feb 28, or 29 in leap years).
    """
    due_month = period.next()
    return clamped_date(due_month.year, due_month.month, pay_day)


def _schedule_for(
    tax_type: TaxType,
    period: MonthId,
    amount_cents: int,
    pay_day: int,
    created_at: datetime,
) -> TaxSchedule:
    return TaxSchedule(
        tax_type=tax_type,
        due_date=due_date_for_period(period, pay_day),
        amount_cents=amount_cents,
        period_start=period.first_day,
        period_end=period.last_day,
        status=TaxScheduleStatus.PENDING,
        created_at=created_at,
    )


def compute_tax_schedule(
    current_month: MonthId,
    horizon_months: int,
    vat_reports: Sequence[VatReport],
    urssaf_reports: Sequence[UrssafReport],
    settings: Settings,
    now: Optional[datetime] = None,
) -> List[TaxSchedule]:
    """
    Turn monthly VAT/URSSAF reports into dated obligations.

    Requirements:
    - Covers current_month and the following horizon_months - 1 months
    - One entry per tax and period whose report shows due_cents > 0
      (credits and zero amounts produce nothing)
    - VAT due on settings.vat_pay_day, URSSAF on settings.urssaf_pay_day,
      of the month after the period
    - Sorted by due date ascending

    Reports for months outside the horizon are ignored.
    """
    created_at = now or utcnow()
    vat_by_month: Dict[MonthId, VatReport] = {}
    for report in vat_reports:
        vat_by_month.setdefault(report.month, report)
    urssaf_by_month: Dict[MonthId, UrssafReport] = {}
    for report in urssaf_reports:
        urssaf_by_month.setdefault(report.month, report)

    schedules = []
    for i in range(max(horizon_months, 0)):
        period = current_month.plus(i)

        vat_report = vat_by_month.get(period)
        if vat_report is not None and vat_report.due_cents > 0:
            schedules.append(
                _schedule_for(TaxType.VAT, period, vat_report.due_cents, settings.vat_pay_day, created_at)
            )

        urssaf_report = urssaf_by_month.get(period)
        if urssaf_report is not None and urssaf_report.due_cents > 0:
            schedules.append(
                _schedule_for(TaxType.URSSAF, period, urssaf_report.due_cents, settings.urssaf_pay_day, created_at)
            )

    schedules.sort(key=lambda s: s.due_date)
    logger.debug("Generated %d tax schedules from %s over %d months", len(schedules), current_month, horizon_months)
    return schedules


def find_overdue(schedules: Sequence[TaxSchedule], as_of: date) -> List[TaxSchedule]:
    """Pending schedules whose due date has passed, flagged as overdue (copies)"""
    return [
        replace(s, status=TaxScheduleStatus.OVERDUE)
        for s in sorted(schedules, key=lambda s: s.due_date)
        if s.status == TaxScheduleStatus.PENDING and s.due_date < as_of
    ]


def mark_paid(schedule: TaxSchedule) -> TaxSchedule:
    """Copy of the schedule with status PAID"""
    return replace(schedule, status=TaxScheduleStatus.PAID)
