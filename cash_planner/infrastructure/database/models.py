"""SQLAlchemy ORM models"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    Float,
    DateTime,
    Date,
    Integer,
    Text,
    JSON,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class InvoiceRecord(Base):
    """Legacy sales invoice"""

    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    number = Column(Text, nullable=False, default="")
    client = Column(Text, nullable=False, default="")
    service_date = Column(Date, nullable=False)
    amount_ht = Column(BigInteger, nullable=False)
    vat_rate_ppm = Column(Integer, nullable=False)
    amount_tva = Column(BigInteger, nullable=False)
    amount_ttc = Column(BigInteger, nullable=False)
    paid_at = Column(Date, nullable=True, index=True)
    source = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class ExpenseRecord(Base):
    """Legacy expense"""

    __tablename__ = "expenses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    label = Column(Text, nullable=False, default="")
    category = Column(Text, nullable=False, default="")
    booking_date = Column(Date, nullable=False)
    amount_ht = Column(BigInteger, nullable=False)
    vat_rate_ppm = Column(Integer, nullable=False)
    amount_tva = Column(BigInteger, nullable=False)
    amount_ttc = Column(BigInteger, nullable=False)
    paid_at = Column(Date, nullable=True, index=True)
    receipt_path = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class OperationRecord(Base):
    """Unified sale/purchase operation"""

    __tablename__ = "operations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    operation_type = Column(String(16), nullable=False, index=True)  # sale | purchase
    invoice_date = Column(Date, nullable=False, index=True)
    payment_date = Column(Date, nullable=True, index=True)
    amount_ht_cents = Column(BigInteger, nullable=False)
    vat_amount_cents = Column(BigInteger, nullable=False)
    amount_ttc_cents = Column(BigInteger, nullable=False)
    vat_on_payments = Column(Boolean, nullable=False, default=True)
    label = Column(Text, nullable=True)
    receipt_url = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class ProvisionRecord(Base):
    """Cash reserved for one obligation, unique per (kind, period)"""

    __tablename__ = "provisions"
    __table_args__ = (UniqueConstraint("kind", "year", "month", name="uq_provision_kind_period"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    kind = Column(String(16), nullable=False)  # vat | urssaf | other
    label = Column(Text, nullable=False, default="")
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, nullable=False)


class SettingsRecord(Base):
    """Singleton row (id=1) holding financial settings"""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, default=1)
    default_vat_rate_ppm = Column(Integer, nullable=False)
    urssaf_rate_ppm = Column(Integer, nullable=False)
    vat_declare_day = Column(Integer, nullable=False)
    vat_pay_day = Column(Integer, nullable=False)
    urssaf_pay_day = Column(Integer, nullable=False)
    buffer_cents = Column(BigInteger, nullable=False)
    forecast_ht_cents = Column(BigInteger, nullable=False)
    forecast_expenses_ttc_cents = Column(BigInteger, nullable=False)
    forecast_expense_vat_rate_ppm = Column(Integer, nullable=False)


class MonthRecord(Base):
    """Month closure status"""

    __tablename__ = "months"

    year = Column(Integer, primary_key=True)
    month = Column(Integer, primary_key=True)
    closed_at = Column(DateTime, nullable=True)


class WorkingDayRecord(Base):
    """Tracked working day"""

    __tablename__ = "working_days"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False, index=True)
    hours_worked = Column(Float, nullable=False)
    billable_hours = Column(Float, nullable=False)
    hourly_rate_cents = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class TaxScheduleRecord(Base):
    """Dated tax obligation"""

    __tablename__ = "tax_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tax_type = Column(String(16), nullable=False)  # vat | urssaf | income_tax | other
    label = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default="pending")  # pending | paid | overdue
    created_at = Column(DateTime, nullable=False)


class SimulationRecord(Base):
    """What-if simulation with its parameters and last results"""

    __tablename__ = "simulations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    scenario_type = Column(String(32), nullable=False)
    parameters = Column(JSON, nullable=False)
    results = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class MonthlyKPIRecord(Base):
    """Monthly KPI snapshot, one row per month"""

    __tablename__ = "monthly_kpis"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_kpi_month"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    revenue_ht_cents = Column(BigInteger, nullable=False)
    revenue_ttc_cents = Column(BigInteger, nullable=False)
    expenses_ttc_cents = Column(BigInteger, nullable=False)
    working_days = Column(Float, nullable=False)
    billable_hours = Column(Float, nullable=False)
    average_daily_rate_cents = Column(BigInteger, nullable=False)
    average_hourly_rate_cents = Column(BigInteger, nullable=False)
    vat_collected_cents = Column(BigInteger, nullable=False)
    vat_due_cents = Column(BigInteger, nullable=False)
    urssaf_due_cents = Column(BigInteger, nullable=False)
    net_margin_cents = Column(BigInteger, nullable=False)
    profitability_ratio = Column(Float, nullable=False)
    utilization_rate = Column(Float, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
