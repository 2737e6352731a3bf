"""Productivity analytics and monthly KPIs"""

from datetime import date, datetime
from typing import List, Optional, Sequence

from cash_planner.domain.amounts import apply_rate_ppm
from cash_planner.domain.models import Expense, Invoice, MonthId, MonthlyKPI, Settings, WorkingDay, utcnow
from cash_planner.domain.reports import WeeklyUtilization, WorkingDaysStats, WorkingPatternAnalysis
from cash_planner.domain.tax import paid_expenses, paid_invoices
from cash_planner.utils.date_utils import week_start


def day_revenue_cents(day: WorkingDay) -> int:
    """Billed amount for a day: billable hours x hourly rate, truncated to the cent"""
    return int(day.billable_hours * day.hourly_rate_cents)


def _billable_ratio(day: WorkingDay) -> float:
    return day.billable_hours / day.hours_worked if day.hours_worked > 0 else 0.0


def _utilization(days: Sequence[WorkingDay]) -> float:
    worked = sum(d.hours_worked for d in days)
    billable = sum(d.billable_hours for d in days)
    return billable / worked if worked > 0 else 0.0


def weekly_utilization(working_days: Sequence[WorkingDay]) -> List[WeeklyUtilization]:
    """
    Utilization per Monday-anchored week.

    Walks the days in the order given and closes a week whenever the week
    start changes, so input must already be sorted by date; unsorted input
    yields one bucket per run of same-week days.
    """
    trends: List[WeeklyUtilization] = []
    current_week: List[WorkingDay] = []
    current_start: Optional[date] = None

    for day in working_days:
        start = week_start(day.date)
        if start != current_start:
            if current_week:
                trends.append(WeeklyUtilization(week_start=current_start, utilization=_utilization(current_week)))
            current_week = []
            current_start = start
        current_week.append(day)

    if current_week:
        trends.append(WeeklyUtilization(week_start=current_start, utilization=_utilization(current_week)))

    return trends


def analyze_working_patterns(working_days: Sequence[WorkingDay]) -> WorkingPatternAnalysis:
    """
    Productivity summary over tracked days.

    - Peak productivity day: highest billable/worked ratio; on ties the last
      one encountered wins
    - Revenue per day: billable hours x hourly rate
    - Empty input returns zeros and no peak day
    """
    if not working_days:
        return WorkingPatternAnalysis(
            total_days=0.0,
            average_hours_per_day=0.0,
            average_billable_ratio=0.0,
            peak_productivity_day=None,
            total_revenue_cents=0,
            average_daily_rate_cents=0,
            utilization_trends=[],
        )

    total_days = float(len(working_days))
    total_hours = sum(d.hours_worked for d in working_days)
    total_revenue_cents = sum(day_revenue_cents(d) for d in working_days)

    peak_day = working_days[0]
    for day in working_days[1:]:
        if _billable_ratio(day) >= _billable_ratio(peak_day):
            peak_day = day

    return WorkingPatternAnalysis(
        total_days=total_days,
        average_hours_per_day=total_hours / total_days,
        average_billable_ratio=_utilization(working_days),
        peak_productivity_day=peak_day.date,
        total_revenue_cents=total_revenue_cents,
        average_daily_rate_cents=int(total_revenue_cents / total_days),
        utilization_trends=weekly_utilization(working_days),
    )


def compute_working_days_stats(working_days: Sequence[WorkingDay]) -> WorkingDaysStats:
    """Totals and average rates over a set of working days"""
    total_days = float(len(working_days))
    billable = sum(d.billable_hours for d in working_days)
    worked = sum(d.hours_worked for d in working_days)
    revenue = sum(day_revenue_cents(d) for d in working_days)

    return WorkingDaysStats(
        total_working_days=total_days,
        total_billable_hours=billable,
        total_worked_hours=worked,
        average_daily_rate_cents=int(revenue / total_days) if total_days > 0 else 0,
        average_hourly_rate_cents=int(revenue / billable) if billable > 0 else 0,
        utilization_rate=billable / worked if worked > 0 else 0.0,
    )


def compute_monthly_kpis(
    month: MonthId,
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    working_days: Sequence[WorkingDay],
    settings: Settings,
    now: Optional[datetime] = None,
) -> MonthlyKPI:
    """
    Monthly KPI snapshot from paid invoices, paid expenses and tracked days.

    Ratios with a zero denominator resolve to 0:
    - average daily rate = revenue HT / working days
    - average hourly rate = revenue HT / billable hours
    - profitability = net margin / revenue TTC
    - utilization = billable hours / worked hours
    """
    month_days = [d for d in working_days if month.contains(d.date)]
    month_invoices = paid_invoices(month, invoices)
    month_expenses = paid_expenses(month, expenses)

    revenue_ht_cents = sum(i.amount_ht for i in month_invoices)
    revenue_ttc_cents = sum(i.amount_ttc for i in month_invoices)
    expenses_ttc_cents = sum(e.amount_ttc for e in month_expenses)

    working_days_count = float(len(month_days))
    billable_hours = sum(d.billable_hours for d in month_days)
    worked_hours = sum(d.hours_worked for d in month_days)

    vat_collected_cents = sum(i.amount_tva for i in month_invoices)
    vat_due_cents = vat_collected_cents - sum(e.amount_tva for e in month_expenses)
    urssaf_due_cents = apply_rate_ppm(revenue_ht_cents, settings.urssaf_rate_ppm)
    net_margin_cents = revenue_ttc_cents - expenses_ttc_cents - vat_due_cents - urssaf_due_cents

    stamp = now or utcnow()
    return MonthlyKPI(
        month=month,
        revenue_ht_cents=revenue_ht_cents,
        revenue_ttc_cents=revenue_ttc_cents,
        expenses_ttc_cents=expenses_ttc_cents,
        working_days=working_days_count,
        billable_hours=billable_hours,
        average_daily_rate_cents=int(revenue_ht_cents / working_days_count) if working_days_count > 0 else 0,
        average_hourly_rate_cents=int(revenue_ht_cents / billable_hours) if billable_hours > 0 else 0,
        vat_collected_cents=vat_collected_cents,
        vat_due_cents=vat_due_cents,
        urssaf_due_cents=urssaf_due_cents,
        net_margin_cents=net_margin_cents,
        profitability_ratio=net_margin_cents / revenue_ttc_cents if revenue_ttc_cents > 0 else 0.0,
        utilization_rate=billable_hours / worked_hours if worked_hours > 0 else 0.0,
        created_at=stamp,
        updated_at=stamp,
    )
