"""Value objects returned by the financial engine"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

from cash_planner.domain.models import MonthId


@dataclass
class VatReport:
    month: MonthId
    collected_cents: int
    deductible_cents: int
    due_cents: int  # negative means a VAT credit


@dataclass
class UrssafReport:
    month: MonthId
    ca_encaisse_cents: int
    rate_ppm: int
    due_cents: int


@dataclass
class DashboardSummary:
    month: MonthId
    encaissements_ht_cents: int
    tva_due_cents: int
    urssaf_due_cents: int
    disponible_cents: int


@dataclass
class MonthRecap:
    month: MonthId
    receipts_ht_cents: int
    receipts_tva_cents: int
    receipts_ttc_cents: int
    expenses_ttc_cents: int
    vat_due_cents: int
    urssaf_due_cents: int
    net_from_month_cents: int  # receipts_ttc - expenses_ttc
    after_provisions_cents: int  # net_from_month - vat_due - urssaf_due - buffer


@dataclass
class ForecastLine:
    year: int
    month: int
    ht_cents: int
    tva_due_cents: int
    urssaf_due_cents: int
    expenses_ttc_cents: int
    net_cents: int
    after_provisions_cents: int


@dataclass
class ForecastResult:
    start: MonthId
    months: List[ForecastLine] = field(default_factory=list)


@dataclass
class DailyRateCalculation:
    target_annual_income_cents: int
    working_days_per_year: float
    annual_expenses_cents: int
    optimal_daily_rate_cents: int
    total_revenue_ht_needed_cents: int
    total_taxes_cents: int
    net_margin_ratio: float


@dataclass
class AnnualIncomeProjection:
    total_revenue_ht_cents: int
    total_taxes_cents: int
    annual_expenses_cents: int
    net_income_cents: int
    effective_tax_rate: float
    profit_margin: float


class ProvisionOutcome(str, Enum):
    SHORTFALL = "shortfall"
    DISTRIBUTE = "distribute"
    OPTIMAL = "optimal"


@dataclass
class ProvisionOptimization:
    available_cash_cents: int
    upcoming_obligations_cents: int
    required_provisions_cents: int
    available_for_distribution_cents: int  # never negative
    shortfall_cents: int  # 0 unless outcome is SHORTFALL
    outcome: ProvisionOutcome
    recommendations: List[str]
    optimization_date: date


@dataclass
class WeeklyUtilization:
    week_start: date  # Monday
    utilization: float  # billable / worked hours for the week


@dataclass
class WorkingPatternAnalysis:
    total_days: float
    average_hours_per_day: float
    average_billable_ratio: float
    peak_productivity_day: Optional[date]
    total_revenue_cents: int
    average_daily_rate_cents: int
    utilization_trends: List[WeeklyUtilization] = field(default_factory=list)


@dataclass
class WorkingDaysStats:
    total_working_days: float
    total_billable_hours: float
    total_worked_hours: float
    average_daily_rate_cents: int
    average_hourly_rate_cents: int
    utilization_rate: float
