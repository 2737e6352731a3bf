"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from cash_planner.domain.amounts import resolve_amounts
from cash_planner.domain.models import (
    MonthId,
    OperationType,
    ProvisionKind,
    SimulationScenario,
    TaxScheduleStatus,
    TaxType,
)
from cash_planner.domain.parsing import (
    parse_iso_date,
    parse_month_id,
    parse_operation_type,
    parse_provision_kind,
    parse_scenario,
)
from cash_planner.domain.reports import ProvisionOutcome


def _month_to_str(value: Any) -> Any:
    return str(value) if isinstance(value, MonthId) else value


def _parse_date(value: Any) -> Any:
    return parse_iso_date(value) if isinstance(value, str) else value


# "YYYY-MM" on the wire, MonthId in the domain
MonthStr = Annotated[str, BeforeValidator(_month_to_str)]
IsoDate = Annotated[date, BeforeValidator(_parse_date)]
OptionalIsoDate = Annotated[Optional[date], BeforeValidator(_parse_date)]


class DomainResponse(BaseModel):
    """Response built straight from a domain dataclass"""

    model_config = ConfigDict(from_attributes=True)


# ============ Amount triangle ============


class AmountsInput(BaseModel):
    """HT / TVA / TTC as supplied; at least HT, or two of the three"""

    amount_ht_cents: Optional[int] = None
    vat_amount_cents: Optional[int] = None
    amount_ttc_cents: Optional[int] = None
    vat_rate_ppm: Optional[int] = Field(None, ge=0, le=1_000_000)

    def resolved_amounts(self, default_vat_rate_ppm: int) -> Tuple[int, int, int]:
        """(ht, tva, ttc); raises ValidationError on an inconsistent triangle"""
        rate = self.vat_rate_ppm if self.vat_rate_ppm is not None else default_vat_rate_ppm
        return resolve_amounts(self.amount_ht_cents, self.vat_amount_cents, self.amount_ttc_cents, rate)


# ============ Legacy ledger ============


class InvoiceRequest(AmountsInput):
    number: str = ""
    client: str = ""
    service_date: IsoDate
    paid_at: OptionalIsoDate = None
    source: Optional[str] = None


class InvoiceResponse(DomainResponse):
    id: UUID
    number: str
    client: str
    service_date: date
    amount_ht: int
    vat_rate_ppm: int
    amount_tva: int
    amount_ttc: int
    paid_at: Optional[date]
    source: Optional[str]


class ExpenseRequest(AmountsInput):
    label: str = ""
    category: str = ""
    booking_date: IsoDate
    paid_at: OptionalIsoDate = None
    receipt_path: Optional[str] = None


class ExpenseResponse(DomainResponse):
    id: UUID
    label: str
    category: str
    booking_date: date
    amount_ht: int
    vat_rate_ppm: int
    amount_tva: int
    amount_ttc: int
    paid_at: Optional[date]
    receipt_path: Optional[str]


# ============ Operations ============


class OperationRequest(AmountsInput):
    invoice_date: IsoDate
    operation_type: OperationType
    payment_date: OptionalIsoDate = None
    vat_on_payments: bool = True
    label: Optional[str] = None
    receipt_url: Optional[str] = None

    @field_validator("operation_type", mode="before")
    @classmethod
    def _parse_operation_type(cls, value: Any) -> Any:
        return parse_operation_type(value) if isinstance(value, str) else value


class OperationResponse(DomainResponse):
    id: UUID
    invoice_date: date
    payment_date: Optional[date]
    operation_type: OperationType
    amount_ht_cents: int
    vat_amount_cents: int
    amount_ttc_cents: int
    vat_on_payments: bool
    label: Optional[str]
    receipt_url: Optional[str]
    created_at: datetime
    updated_at: datetime


class MigrationResponse(BaseModel):
    migrated_invoices: int
    migrated_expenses: int
    operations: List[OperationResponse]


# ============ Reports ============


class VatReportResponse(DomainResponse):
    month: MonthStr
    collected_cents: int
    deductible_cents: int
    due_cents: int


class UrssafReportResponse(DomainResponse):
    month: MonthStr
    ca_encaisse_cents: int
    rate_ppm: int
    due_cents: int


class DashboardResponse(DomainResponse):
    month: MonthStr
    encaissements_ht_cents: int
    tva_due_cents: int
    urssaf_due_cents: int
    disponible_cents: int


class MonthRecapResponse(DomainResponse):
    month: MonthStr
    receipts_ht_cents: int
    receipts_tva_cents: int
    receipts_ttc_cents: int
    expenses_ttc_cents: int
    vat_due_cents: int
    urssaf_due_cents: int
    net_from_month_cents: int
    after_provisions_cents: int


class ForecastLineResponse(DomainResponse):
    year: int
    month: int
    ht_cents: int
    tva_due_cents: int
    urssaf_due_cents: int
    expenses_ttc_cents: int
    net_cents: int
    after_provisions_cents: int


class ForecastResponse(DomainResponse):
    start: MonthStr
    months: List[ForecastLineResponse]


# ============ Tax schedules & provisions ============


class ScheduleGenerateRequest(BaseModel):
    start_month: MonthStr
    horizon_months: int = Field(3, ge=1, le=36)

    @field_validator("start_month")
    @classmethod
    def _check_month(cls, value: str) -> str:
        parse_month_id(value)
        return value


class TaxScheduleResponse(DomainResponse):
    id: UUID
    tax_type: TaxType
    label: Optional[str]
    due_date: date
    amount_cents: int
    period_start: date
    period_end: date
    status: TaxScheduleStatus
    created_at: datetime


class ProvisionRequest(BaseModel):
    kind: ProvisionKind
    period: MonthStr
    due_date: IsoDate
    amount_cents: int
    label: str = ""

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> Any:
        return parse_provision_kind(value) if isinstance(value, str) else value

    @field_validator("period")
    @classmethod
    def _check_period(cls, value: str) -> str:
        parse_month_id(value)
        return value


class ProvisionResponse(DomainResponse):
    id: UUID
    kind: ProvisionKind
    label: str
    period: MonthStr
    due_date: date
    amount_cents: int
    created_at: datetime


class OptimizeProvisionsRequest(BaseModel):
    available_cash_cents: int
    horizon_days: Optional[int] = Field(None, ge=0)


class ProvisionOptimizationResponse(DomainResponse):
    available_cash_cents: int
    upcoming_obligations_cents: int
    required_provisions_cents: int
    available_for_distribution_cents: int
    shortfall_cents: int
    outcome: ProvisionOutcome
    recommendations: List[str]
    optimization_date: date


# ============ Settings & months ============


class SettingsSchema(DomainResponse):
    default_vat_rate_ppm: int = Field(200_000, ge=0, le=1_000_000)
    urssaf_rate_ppm: int = Field(220_000, ge=0, le=1_000_000)
    vat_declare_day: int = Field(12, ge=1, le=31)
    vat_pay_day: int = Field(20, ge=1, le=31)
    urssaf_pay_day: int = Field(5, ge=1, le=31)
    buffer_cents: int = Field(30_000, ge=0)
    forecast_ht_cents: int = 0
    forecast_expenses_ttc_cents: int = 0
    forecast_expense_vat_rate_ppm: int = Field(200_000, ge=0, le=1_000_000)


class MonthStatusResponse(BaseModel):
    month: MonthStr
    closed: bool
    closed_at: Optional[datetime]


# ============ Working days & KPIs ============


class WorkingDayRequest(BaseModel):
    date: IsoDate
    hours_worked: float = Field(..., ge=0, le=24)
    billable_hours: float = Field(..., ge=0, le=24)
    hourly_rate_cents: int = Field(..., ge=0)
    description: Optional[str] = None


class WorkingDayResponse(DomainResponse):
    id: UUID
    date: date
    hours_worked: float
    billable_hours: float
    hourly_rate_cents: int
    description: Optional[str]
    created_at: datetime
    updated_at: datetime


class WorkingDaysStatsResponse(DomainResponse):
    total_working_days: float
    total_billable_hours: float
    total_worked_hours: float
    average_daily_rate_cents: int
    average_hourly_rate_cents: int
    utilization_rate: float


class WeeklyUtilizationResponse(DomainResponse):
    week_start: date
    utilization: float


class WorkingPatternResponse(DomainResponse):
    total_days: float
    average_hours_per_day: float
    average_billable_ratio: float
    peak_productivity_day: Optional[date]
    total_revenue_cents: int
    average_daily_rate_cents: int
    utilization_trends: List[WeeklyUtilizationResponse]


class MonthlyKPIResponse(DomainResponse):
    id: UUID
    month: MonthStr
    revenue_ht_cents: int
    revenue_ttc_cents: int
    expenses_ttc_cents: int
    working_days: float
    billable_hours: float
    average_daily_rate_cents: int
    average_hourly_rate_cents: int
    vat_collected_cents: int
    vat_due_cents: int
    urssaf_due_cents: int
    net_margin_cents: int
    profitability_ratio: float
    utilization_rate: float
    created_at: datetime
    updated_at: datetime


# ============ Simulations ============


class SimulationParametersSchema(DomainResponse):
    target_annual_income_cents: Optional[int] = None
    working_days_per_month: Optional[float] = Field(None, ge=0, le=31)
    working_hours_per_day: Optional[float] = Field(None, ge=0, le=24)
    current_hourly_rate_cents: Optional[int] = Field(None, ge=0)
    vat_rate_ppm: Optional[int] = Field(None, ge=0, le=1_000_000)
    urssaf_rate_ppm: Optional[int] = Field(None, ge=0, le=1_000_000)
    income_tax_rate_ppm: Optional[int] = Field(None, ge=0, le=1_000_000)
    monthly_fixed_costs_cents: Optional[int] = None
    annual_variable_costs_cents: Optional[int] = None
    simulation_start_date: OptionalIsoDate = None
    simulation_horizon_months: Optional[int] = Field(None, ge=1, le=120)


class SimulationRequest(BaseModel):
    name: str = Field(..., min_length=1)
    scenario_type: SimulationScenario
    parameters: SimulationParametersSchema = Field(default_factory=SimulationParametersSchema)

    @field_validator("scenario_type", mode="before")
    @classmethod
    def _parse_scenario(cls, value: Any) -> Any:
        return parse_scenario(value) if isinstance(value, str) else value


class SimulationBreakdownResponse(DomainResponse):
    month: MonthStr
    revenue_ht_cents: int
    taxes_cents: int
    expenses_cents: int
    net_cents: int
    working_days: float


class SimulationResultsResponse(DomainResponse):
    optimal_daily_rate_cents: Optional[int]
    optimal_hourly_rate_cents: Optional[int]
    projected_annual_income_ht_cents: Optional[int]
    projected_annual_taxes_cents: Optional[int]
    projected_net_income_cents: Optional[int]
    working_days_needed: Optional[float]
    monthly_breakdowns: List[SimulationBreakdownResponse]


class SimulationResponse(DomainResponse):
    id: UUID
    name: str
    scenario_type: SimulationScenario
    parameters: SimulationParametersSchema
    results: Optional[SimulationResultsResponse]
    created_at: datetime
    updated_at: datetime


class DailyRateRequest(BaseModel):
    target_annual_income_cents: int = Field(..., ge=0)
    working_days_per_year: float
    annual_expenses_cents: int = 0
    vat_rate_ppm: int = Field(0, ge=0)
    urssaf_rate_ppm: int = Field(0, ge=0)
    income_tax_rate_ppm: int = Field(0, ge=0)


class DailyRateResponse(DomainResponse):
    target_annual_income_cents: int
    working_days_per_year: float
    annual_expenses_cents: int
    optimal_daily_rate_cents: int
    total_revenue_ht_needed_cents: int
    total_taxes_cents: int
    net_margin_ratio: float


class AnnualIncomeRequest(BaseModel):
    monthly_avg_revenue_cents: int
    working_months: int = Field(12, ge=0, le=12)
    annual_expenses_cents: int = 0
    vat_rate_ppm: int = Field(0, ge=0)
    urssaf_rate_ppm: int = Field(0, ge=0)


class AnnualIncomeResponse(DomainResponse):
    total_revenue_ht_cents: int
    total_taxes_cents: int
    annual_expenses_cents: int
    net_income_cents: int
    effective_tax_rate: float
    profit_margin: float


# ============ Receipts ============


class ReceiptUploadResponse(BaseModel):
    url: str
    size_bytes: int


class StoredFileResponse(DomainResponse):
    key: str
    public_url: str
    size_bytes: int
    last_modified: Optional[datetime]


class StorageStatsResponse(DomainResponse):
    total_files: int
    total_size_bytes: int
    files_by_type: Dict[str, int]
