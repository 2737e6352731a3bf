"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from cash_planner.domain.amounts import vat_from_ht
from cash_planner.utils.date_utils import in_month, month_bounds, shift_month


def utcnow() -> datetime:
    """Naive UTC timestamp, the form persisted by the repositories"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, order=True)
class MonthId:
    """Calendar month used as the period key everywhere"""

    year: int
    month: int  # 1..=12

    @classmethod
    def from_date(cls, d: date) -> "MonthId":
        return cls(d.year, d.month)

    def plus(self, n: int) -> "MonthId":
        return MonthId(*shift_month(self.year, self.month, n))

    def next(self) -> "MonthId":
        return self.plus(1)

    def contains(self, d: Optional[date]) -> bool:
        return in_month(d, self.year, self.month)

    @property
    def first_day(self) -> date:
        return month_bounds(self.year, self.month)[0]

    @property
    def last_day(self) -> date:
        return month_bounds(self.year, self.month)[1]

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# ============ Ledger records ============


@dataclass
class Invoice:
    """Legacy sales invoice; VAT is counted when paid"""

    service_date: date
    amount_ht: int
    vat_rate_ppm: int
    amount_tva: Optional[int] = None  # derived from the rate unless overridden
    paid_at: Optional[date] = None
    number: str = ""
    client: str = ""
    source: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    amount_ttc: int = field(init=False)

    def __post_init__(self) -> None:
        if self.amount_tva is None:
            self.amount_tva = vat_from_ht(self.amount_ht, self.vat_rate_ppm)
        self.amount_ttc = self.amount_ht + self.amount_tva


@dataclass
class Expense:
    """Legacy expense; deductible VAT is counted when paid"""

    booking_date: date
    amount_ht: int
    vat_rate_ppm: int
    amount_tva: Optional[int] = None
    paid_at: Optional[date] = None
    label: str = ""
    category: str = ""
    receipt_path: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    amount_ttc: int = field(init=False)

    def __post_init__(self) -> None:
        if self.amount_tva is None:
            self.amount_tva = vat_from_ht(self.amount_ht, self.vat_rate_ppm)
        self.amount_ttc = self.amount_ht + self.amount_tva


class OperationType(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"


@dataclass(frozen=True)
class Operation:
    """
    Unified sale/purchase record.

    amount_ttc_cents is never passed in: it is always HT + VAT, computed on
    construction. Instances are immutable; edits go through dataclasses.replace().

    vat_on_payments selects the VAT regime: True uses payment_date (TVA sur
    encaissements), False uses invoice_date (TVA sur facturation).
    """

    invoice_date: date
    operation_type: OperationType
    amount_ht_cents: int
    vat_amount_cents: int
    payment_date: Optional[date] = None
    vat_on_payments: bool = True
    label: Optional[str] = None
    receipt_url: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    amount_ttc_cents: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount_ttc_cents", self.amount_ht_cents + self.vat_amount_cents)


# ============ Settings & reservations ============


@dataclass
class Settings:
    """Tax rates, due days and forecast assumptions"""

    default_vat_rate_ppm: int = 200_000  # 20%
    urssaf_rate_ppm: int = 220_000
    vat_declare_day: int = 12
    vat_pay_day: int = 20
    urssaf_pay_day: int = 5
    buffer_cents: int = 30_000
    forecast_ht_cents: int = 0
    forecast_expenses_ttc_cents: int = 0
    forecast_expense_vat_rate_ppm: int = 200_000


class ProvisionKind(str, Enum):
    VAT = "vat"
    URSSAF = "urssaf"
    OTHER = "other"


@dataclass
class Provision:
    """Cash set aside for a known obligation, one per (kind, period)"""

    kind: ProvisionKind
    period: MonthId
    due_date: date
    amount_cents: int
    label: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class MonthStatus:
    month: MonthId
    closed_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None


# ============ Tax schedule ============


class TaxType(str, Enum):
    VAT = "vat"
    URSSAF = "urssaf"
    INCOME_TAX = "income_tax"
    OTHER = "other"


class TaxScheduleStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass
class TaxSchedule:
    """A dated tax obligation covering one calendar month"""

    tax_type: TaxType
    due_date: date
    amount_cents: int
    period_start: date
    period_end: date
    status: TaxScheduleStatus = TaxScheduleStatus.PENDING
    label: Optional[str] = None  # free text for TaxType.OTHER
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)


# ============ Time tracking & KPIs ============


@dataclass
class WorkingDay:
    """One tracked day of work"""

    date: date
    hours_worked: float
    billable_hours: float  # expected <= hours_worked, not enforced
    hourly_rate_cents: int
    description: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class MonthlyKPI:
    """Derived monthly snapshot, recomputed and overwritten as a whole"""

    month: MonthId
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
    profitability_ratio: float  # net_margin / revenue_ttc
    utilization_rate: float  # billable_hours / worked hours
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


# ============ Simulations ============


class SimulationScenario(str, Enum):
    DAILY_RATE_OPTIMIZATION = "DailyRateOptimization"
    ANNUAL_INCOME_PROJECTION = "AnnualIncomeProjection"
    TAX_OPTIMIZATION = "TaxOptimization"
    WORKING_DAYS_IMPACT = "WorkingDaysImpact"


@dataclass
class SimulationParameters:
    target_annual_income_cents: Optional[int] = None
    working_days_per_month: Optional[float] = None
    working_hours_per_day: Optional[float] = None
    current_hourly_rate_cents: Optional[int] = None

    vat_rate_ppm: Optional[int] = None
    urssaf_rate_ppm: Optional[int] = None
    income_tax_rate_ppm: Optional[int] = None

    monthly_fixed_costs_cents: Optional[int] = None
    annual_variable_costs_cents: Optional[int] = None

    simulation_start_date: Optional[date] = None
    simulation_horizon_months: Optional[int] = None


@dataclass
class SimulationMonthBreakdown:
    month: MonthId
    revenue_ht_cents: int
    taxes_cents: int
    expenses_cents: int
    net_cents: int
    working_days: float


@dataclass
class SimulationResults:
    optimal_daily_rate_cents: Optional[int] = None
    optimal_hourly_rate_cents: Optional[int] = None
    projected_annual_income_ht_cents: Optional[int] = None
    projected_annual_taxes_cents: Optional[int] = None
    projected_net_income_cents: Optional[int] = None
    working_days_needed: Optional[float] = None
    monthly_breakdowns: List[SimulationMonthBreakdown] = field(default_factory=list)


@dataclass
class Simulation:
    """What-if scenario; results stay None until the simulation is run"""

    name: str
    scenario_type: SimulationScenario
    parameters: SimulationParameters = field(default_factory=SimulationParameters)
    results: Optional[SimulationResults] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
