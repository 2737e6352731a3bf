"""Data access layer: one repository per entity, mapping ORM rows to domain dataclasses"""

import functools
import logging
import uuid
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cash_planner.domain.exceptions import NotFoundError, RepositoryError
from cash_planner.domain.models import (
    Expense,
    Invoice,
    MonthId,
    MonthlyKPI,
    MonthStatus,
    Operation,
    OperationType,
    Provision,
    ProvisionKind,
    Settings,
    Simulation,
    SimulationMonthBreakdown,
    SimulationParameters,
    SimulationResults,
    SimulationScenario,
    TaxSchedule,
    TaxScheduleStatus,
    TaxType,
    WorkingDay,
    utcnow,
)
from cash_planner.domain.parsing import parse_month_id
from cash_planner.domain.schedule import find_overdue, mark_paid
from cash_planner.infrastructure.database.models import (
    ExpenseRecord,
    InvoiceRecord,
    MonthlyKPIRecord,
    MonthRecord,
    OperationRecord,
    ProvisionRecord,
    SettingsRecord,
    SimulationRecord,
    TaxScheduleRecord,
    WorkingDayRecord,
)

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def wrap_db_errors(method):
    """Turn SQLAlchemy failures into RepositoryError, rolling the session back"""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Repository failure",
                extra={"repository": type(self).__name__, "operation": method.__name__, "error": str(e)},
            )
            raise RepositoryError(f"Storage failure in {type(self).__name__}.{method.__name__}") from e

    return wrapper


class BaseRepository:
    """Shared session handling and row lookup"""

    model: Any = None
    entity_name = "Entity"

    def __init__(self, db: Session):
        self.db = db

    def _get_record(self, entity_id: uuid.UUID):
        record = self.db.get(self.model, entity_id)
        if record is None:
            raise NotFoundError(f"{self.entity_name} {entity_id} not found")
        return record

    def _delete_record(self, entity_id: uuid.UUID) -> None:
        record = self._get_record(entity_id)
        self.db.delete(record)
        self.db.flush()


# ============ Legacy ledger ============


def _invoice_from_record(r: InvoiceRecord) -> Invoice:
    return Invoice(
        id=r.id,
        number=r.number,
        client=r.client,
        service_date=r.service_date,
        amount_ht=r.amount_ht,
        vat_rate_ppm=r.vat_rate_ppm,
        amount_tva=r.amount_tva,
        paid_at=r.paid_at,
        source=r.source,
    )


def _apply_invoice(r: InvoiceRecord, invoice: Invoice) -> None:
    r.number = invoice.number
    r.client = invoice.client
    r.service_date = invoice.service_date
    r.amount_ht = invoice.amount_ht
    r.vat_rate_ppm = invoice.vat_rate_ppm
    r.amount_tva = invoice.amount_tva
    r.amount_ttc = invoice.amount_ttc
    r.paid_at = invoice.paid_at
    r.source = invoice.source


class InvoiceRepository(BaseRepository):
    """Repository for legacy invoices"""

    model = InvoiceRecord
    entity_name = "Invoice"

    @wrap_db_errors
    def create(self, invoice: Invoice) -> Invoice:
        record = InvoiceRecord(id=invoice.id)
        _apply_invoice(record, invoice)
        self.db.add(record)
        self.db.flush()
        return _invoice_from_record(record)

    @wrap_db_errors
    def get(self, invoice_id: uuid.UUID) -> Invoice:
        return _invoice_from_record(self._get_record(invoice_id))

    @wrap_db_errors
    def update(self, invoice: Invoice) -> Invoice:
        record = self._get_record(invoice.id)
        _apply_invoice(record, invoice)
        self.db.flush()
        return _invoice_from_record(record)

    @wrap_db_errors
    def delete(self, invoice_id: uuid.UUID) -> None:
        self._delete_record(invoice_id)

    @wrap_db_errors
    def list_all(self) -> List[Invoice]:
        records = self.db.query(InvoiceRecord).order_by(InvoiceRecord.service_date.desc()).all()
        return [_invoice_from_record(r) for r in records]

    @wrap_db_errors
    def list_paid_in_month(self, month: MonthId) -> List[Invoice]:
        records = (
            self.db.query(InvoiceRecord)
            .filter(InvoiceRecord.paid_at >= month.first_day, InvoiceRecord.paid_at <= month.last_day)
            .order_by(InvoiceRecord.paid_at)
            .all()
        )
        return [_invoice_from_record(r) for r in records]


def _expense_from_record(r: ExpenseRecord) -> Expense:
    return Expense(
        id=r.id,
        label=r.label,
        category=r.category,
        booking_date=r.booking_date,
        amount_ht=r.amount_ht,
        vat_rate_ppm=r.vat_rate_ppm,
        amount_tva=r.amount_tva,
        paid_at=r.paid_at,
        receipt_path=r.receipt_path,
    )


def _apply_expense(r: ExpenseRecord, expense: Expense) -> None:
    r.label = expense.label
    r.category = expense.category
    r.booking_date = expense.booking_date
    r.amount_ht = expense.amount_ht
    r.vat_rate_ppm = expense.vat_rate_ppm
    r.amount_tva = expense.amount_tva
    r.amount_ttc = expense.amount_ttc
    r.paid_at = expense.paid_at
    r.receipt_path = expense.receipt_path


class ExpenseRepository(BaseRepository):
    """Repository for legacy expenses"""

    model = ExpenseRecord
    entity_name = "Expense"

    @wrap_db_errors
    def create(self, expense: Expense) -> Expense:
        record = ExpenseRecord(id=expense.id)
        _apply_expense(record, expense)
        self.db.add(record)
        self.db.flush()
        return _expense_from_record(record)

    @wrap_db_errors
    def get(self, expense_id: uuid.UUID) -> Expense:
        return _expense_from_record(self._get_record(expense_id))

    @wrap_db_errors
    def update(self, expense: Expense) -> Expense:
        record = self._get_record(expense.id)
        _apply_expense(record, expense)
        self.db.flush()
        return _expense_from_record(record)

    @wrap_db_errors
    def delete(self, expense_id: uuid.UUID) -> None:
        self._delete_record(expense_id)

    @wrap_db_errors
    def list_all(self) -> List[Expense]:
        records = self.db.query(ExpenseRecord).order_by(ExpenseRecord.booking_date.desc()).all()
        return [_expense_from_record(r) for r in records]

    @wrap_db_errors
    def list_paid_in_month(self, month: MonthId) -> List[Expense]:
        records = (
            self.db.query(ExpenseRecord)
            .filter(ExpenseRecord.paid_at >= month.first_day, ExpenseRecord.paid_at <= month.last_day)
            .order_by(ExpenseRecord.paid_at)
            .all()
        )
        return [_expense_from_record(r) for r in records]


# ============ Operations ============


def _operation_from_record(r: OperationRecord) -> Operation:
    return Operation(
        id=r.id,
        invoice_date=r.invoice_date,
        payment_date=r.payment_date,
        operation_type=OperationType(r.operation_type),
        amount_ht_cents=r.amount_ht_cents,
        vat_amount_cents=r.vat_amount_cents,
        vat_on_payments=r.vat_on_payments,
        label=r.label,
        receipt_url=r.receipt_url,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


def _apply_operation(r: OperationRecord, op: Operation) -> None:
    r.invoice_date = op.invoice_date
    r.payment_date = op.payment_date
    r.operation_type = op.operation_type.value
    r.amount_ht_cents = op.amount_ht_cents
    r.vat_amount_cents = op.vat_amount_cents
    r.amount_ttc_cents = op.amount_ttc_cents
    r.vat_on_payments = op.vat_on_payments
    r.label = op.label
    r.receipt_url = op.receipt_url


class OperationRepository(BaseRepository):
    """Repository for unified sale/purchase operations"""

    model = OperationRecord
    entity_name = "Operation"

    @wrap_db_errors
    def create(self, operation: Operation) -> Operation:
        record = OperationRecord(id=operation.id, created_at=operation.created_at, updated_at=operation.updated_at)
        _apply_operation(record, operation)
        self.db.add(record)
        self.db.flush()
        return _operation_from_record(record)

    @wrap_db_errors
    def create_many(self, operations: List[Operation]) -> List[Operation]:
        records = []
        for operation in operations:
            record = OperationRecord(id=operation.id, created_at=operation.created_at, updated_at=operation.updated_at)
            _apply_operation(record, operation)
            records.append(record)
        self.db.add_all(records)
        self.db.flush()
        return [_operation_from_record(r) for r in records]

    @wrap_db_errors
    def get(self, operation_id: uuid.UUID) -> Operation:
        return _operation_from_record(self._get_record(operation_id))

    @wrap_db_errors
    def update(self, operation: Operation) -> Operation:
        """Overwrite every field; TTC comes from the operation itself and is always HT + VAT"""
        record = self._get_record(operation.id)
        _apply_operation(record, operation)
        record.updated_at = utcnow()
        self.db.flush()
        return _operation_from_record(record)

    @wrap_db_errors
    def delete(self, operation_id: uuid.UUID) -> None:
        self._delete_record(operation_id)

    @wrap_db_errors
    def list_all(self) -> List[Operation]:
        records = self.db.query(OperationRecord).order_by(OperationRecord.invoice_date.desc()).all()
        return [_operation_from_record(r) for r in records]

    @wrap_db_errors
    def list_by_invoice_month(self, month: MonthId) -> List[Operation]:
        records = (
            self.db.query(OperationRecord)
            .filter(
                OperationRecord.invoice_date >= month.first_day,
                OperationRecord.invoice_date <= month.last_day,
            )
            .order_by(OperationRecord.invoice_date)
            .all()
        )
        return [_operation_from_record(r) for r in records]

    @wrap_db_errors
    def list_by_payment_month(self, month: MonthId) -> List[Operation]:
        records = (
            self.db.query(OperationRecord)
            .filter(
                OperationRecord.payment_date >= month.first_day,
                OperationRecord.payment_date <= month.last_day,
            )
            .order_by(OperationRecord.payment_date)
            .all()
        )
        return [_operation_from_record(r) for r in records]

    @wrap_db_errors
    def list_by_type(self, operation_type: OperationType) -> List[Operation]:
        records = (
            self.db.query(OperationRecord)
            .filter(OperationRecord.operation_type == operation_type.value)
            .order_by(OperationRecord.invoice_date.desc())
            .all()
        )
        return [_operation_from_record(r) for r in records]

    @wrap_db_errors
    def list_touching_window(self, start: date, end: date) -> List[Operation]:
        """Operations whose invoice or payment date falls in [start, end]"""
        records = (
            self.db.query(OperationRecord)
            .filter(
                or_(
                    and_(OperationRecord.invoice_date >= start, OperationRecord.invoice_date <= end),
                    and_(OperationRecord.payment_date >= start, OperationRecord.payment_date <= end),
                )
            )
            .order_by(OperationRecord.invoice_date)
            .all()
        )
        return [_operation_from_record(r) for r in records]


# ============ Provisions, settings, months ============


def _provision_from_record(r: ProvisionRecord) -> Provision:
    return Provision(
        id=r.id,
        kind=ProvisionKind(r.kind),
        label=r.label,
        period=MonthId(r.year, r.month),
        due_date=r.due_date,
        amount_cents=r.amount_cents,
        created_at=r.created_at,
    )


class ProvisionRepository(BaseRepository):
    """Repository for provisions, one per (kind, period)"""

    model = ProvisionRecord
    entity_name = "Provision"

    @wrap_db_errors
    def upsert(self, provision: Provision) -> Provision:
        """Insert, or overwrite amount/label/due date of the existing (kind, period) row"""
        record = (
            self.db.query(ProvisionRecord)
            .filter(
                ProvisionRecord.kind == provision.kind.value,
                ProvisionRecord.year == provision.period.year,
                ProvisionRecord.month == provision.period.month,
            )
            .first()
        )
        if record is None:
            record = ProvisionRecord(
                id=provision.id,
                kind=provision.kind.value,
                year=provision.period.year,
                month=provision.period.month,
                created_at=provision.created_at,
            )
            self.db.add(record)

        record.label = provision.label
        record.due_date = provision.due_date
        record.amount_cents = provision.amount_cents
        self.db.flush()
        return _provision_from_record(record)

    @wrap_db_errors
    def list_all(self) -> List[Provision]:
        records = self.db.query(ProvisionRecord).order_by(ProvisionRecord.due_date).all()
        return [_provision_from_record(r) for r in records]

    @wrap_db_errors
    def list_due_from(self, start: date) -> List[Provision]:
        """Provisions due on or after start"""
        records = (
            self.db.query(ProvisionRecord)
            .filter(ProvisionRecord.due_date >= start)
            .order_by(ProvisionRecord.due_date)
            .all()
        )
        return [_provision_from_record(r) for r in records]

    @wrap_db_errors
    def delete(self, provision_id: uuid.UUID) -> None:
        self._delete_record(provision_id)


_SETTINGS_FIELDS = (
    "default_vat_rate_ppm",
    "urssaf_rate_ppm",
    "vat_declare_day",
    "vat_pay_day",
    "urssaf_pay_day",
    "buffer_cents",
    "forecast_ht_cents",
    "forecast_expenses_ttc_cents",
    "forecast_expense_vat_rate_ppm",
)


class SettingsRepository:
    """Singleton settings row"""

    def __init__(self, db: Session):
        self.db = db

    @wrap_db_errors
    def load(self) -> Optional[Settings]:
        """Persisted settings, or None when nothing was saved yet"""
        record = self.db.get(SettingsRecord, SETTINGS_ROW_ID)
        if record is None:
            return None
        return Settings(**{name: getattr(record, name) for name in _SETTINGS_FIELDS})

    @wrap_db_errors
    def save(self, settings: Settings) -> Settings:
        record = self.db.get(SettingsRecord, SETTINGS_ROW_ID)
        if record is None:
            record = SettingsRecord(id=SETTINGS_ROW_ID)
            self.db.add(record)

        for name in _SETTINGS_FIELDS:
            setattr(record, name, getattr(settings, name))
        self.db.flush()
        return settings


class MonthRepository:
    """Month closure status keyed by (year, month)"""

    def __init__(self, db: Session):
        self.db = db

    @wrap_db_errors
    def get_status(self, month: MonthId) -> MonthStatus:
        """Status of the month; a month never touched is open"""
        record = self.db.get(MonthRecord, (month.year, month.month))
        return MonthStatus(month=month, closed_at=record.closed_at if record else None)

    @wrap_db_errors
    def close(self, month: MonthId, closed_at: Optional[datetime] = None) -> MonthStatus:
        record = self.db.get(MonthRecord, (month.year, month.month))
        if record is None:
            record = MonthRecord(year=month.year, month=month.month)
            self.db.add(record)

        record.closed_at = closed_at or utcnow()
        self.db.flush()
        return MonthStatus(month=month, closed_at=record.closed_at)


# ============ Time tracking ============


def _working_day_from_record(r: WorkingDayRecord) -> WorkingDay:
    return WorkingDay(
        id=r.id,
        date=r.date,
        hours_worked=r.hours_worked,
        billable_hours=r.billable_hours,
        hourly_rate_cents=r.hourly_rate_cents,
        description=r.description,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


class WorkingDayRepository(BaseRepository):
    """Repository for tracked working days"""

    model = WorkingDayRecord
    entity_name = "WorkingDay"

    @wrap_db_errors
    def create(self, day: WorkingDay) -> WorkingDay:
        record = WorkingDayRecord(
            id=day.id,
            date=day.date,
            hours_worked=day.hours_worked,
            billable_hours=day.billable_hours,
            hourly_rate_cents=day.hourly_rate_cents,
            description=day.description,
            created_at=day.created_at,
            updated_at=day.updated_at,
        )
        self.db.add(record)
        self.db.flush()
        return _working_day_from_record(record)

    @wrap_db_errors
    def get(self, day_id: uuid.UUID) -> WorkingDay:
        return _working_day_from_record(self._get_record(day_id))

    @wrap_db_errors
    def update(self, day: WorkingDay) -> WorkingDay:
        record = self._get_record(day.id)
        record.date = day.date
        record.hours_worked = day.hours_worked
        record.billable_hours = day.billable_hours
        record.hourly_rate_cents = day.hourly_rate_cents
        record.description = day.description
        record.updated_at = utcnow()
        self.db.flush()
        return _working_day_from_record(record)

    @wrap_db_errors
    def delete(self, day_id: uuid.UUID) -> None:
        self._delete_record(day_id)

    @wrap_db_errors
    def list_between(self, start: date, end: date) -> List[WorkingDay]:
        """Days in [start, end], oldest first"""
        records = (
            self.db.query(WorkingDayRecord)
            .filter(WorkingDayRecord.date >= start, WorkingDayRecord.date <= end)
            .order_by(WorkingDayRecord.date)
            .all()
        )
        return [_working_day_from_record(r) for r in records]

    def list_for_month(self, month: MonthId) -> List[WorkingDay]:
        return self.list_between(month.first_day, month.last_day)


# ============ Tax schedules ============


def _schedule_from_record(r: TaxScheduleRecord) -> TaxSchedule:
    return TaxSchedule(
        id=r.id,
        tax_type=TaxType(r.tax_type),
        label=r.label,
        due_date=r.due_date,
        amount_cents=r.amount_cents,
        period_start=r.period_start,
        period_end=r.period_end,
        status=TaxScheduleStatus(r.status),
        created_at=r.created_at,
    )


class TaxScheduleRepository(BaseRepository):
    """Repository for dated tax obligations"""

    model = TaxScheduleRecord
    entity_name = "TaxSchedule"

    @wrap_db_errors
    def save_all(self, schedules: List[TaxSchedule]) -> List[TaxSchedule]:
        """
        Store generated schedules, one per (tax_type, period_start).

        A pending schedule already stored for the same tax and period is
        replaced. A period that already has a paid schedule is left as is
        and its new schedule is not stored.
        """
        records = []
        for s in schedules:
            existing = (
                self.db.query(TaxScheduleRecord)
                .filter(
                    TaxScheduleRecord.tax_type == s.tax_type.value,
                    TaxScheduleRecord.period_start == s.period_start,
                )
                .all()
            )
            if any(r.status == TaxScheduleStatus.PAID.value for r in existing):
                continue
            for record in existing:
                self.db.delete(record)
            records.append(
                TaxScheduleRecord(
                    id=s.id,
                    tax_type=s.tax_type.value,
                    label=s.label,
                    due_date=s.due_date,
                    amount_cents=s.amount_cents,
                    period_start=s.period_start,
                    period_end=s.period_end,
                    status=s.status.value,
                    created_at=s.created_at,
                )
            )
        self.db.flush()
        self.db.add_all(records)
        self.db.flush()
        return [_schedule_from_record(r) for r in records]

    @wrap_db_errors
    def get(self, schedule_id: uuid.UUID) -> TaxSchedule:
        return _schedule_from_record(self._get_record(schedule_id))

    @wrap_db_errors
    def list_between(
        self,
        start: date,
        end: date,
        tax_type: Optional[TaxType] = None,
        status: Optional[TaxScheduleStatus] = None,
    ) -> List[TaxSchedule]:
        """Schedules due in [start, end], soonest first"""
        query = self.db.query(TaxScheduleRecord).filter(
            TaxScheduleRecord.due_date >= start, TaxScheduleRecord.due_date <= end
        )
        if tax_type is not None:
            query = query.filter(TaxScheduleRecord.tax_type == tax_type.value)
        if status is not None:
            query = query.filter(TaxScheduleRecord.status == status.value)
        records = query.order_by(TaxScheduleRecord.due_date).all()
        return [_schedule_from_record(r) for r in records]

    @wrap_db_errors
    def list_pending(self) -> List[TaxSchedule]:
        records = (
            self.db.query(TaxScheduleRecord)
            .filter(TaxScheduleRecord.status == TaxScheduleStatus.PENDING.value)
            .order_by(TaxScheduleRecord.due_date)
            .all()
        )
        return [_schedule_from_record(r) for r in records]

    @wrap_db_errors
    def list_overdue(self, as_of: date) -> List[TaxSchedule]:
        """Pending schedules due before as_of, returned flagged overdue; storage is not modified"""
        records = (
            self.db.query(TaxScheduleRecord)
            .filter(
                TaxScheduleRecord.status == TaxScheduleStatus.PENDING.value,
                TaxScheduleRecord.due_date < as_of,
            )
            .all()
        )
        return find_overdue([_schedule_from_record(r) for r in records], as_of)

    @wrap_db_errors
    def mark_as_paid(self, schedule_id: uuid.UUID) -> TaxSchedule:
        record = self._get_record(schedule_id)
        paid = mark_paid(_schedule_from_record(record))
        record.status = paid.status.value
        self.db.flush()
        return paid

    @wrap_db_errors
    def delete(self, schedule_id: uuid.UUID) -> None:
        self._delete_record(schedule_id)


# ============ Simulations ============


def _json_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_value(v) for v in value]
    return value


def _parameters_to_json(params: SimulationParameters) -> Dict[str, Any]:
    return _json_value(asdict(params))


def _parameters_from_json(data: Dict[str, Any]) -> SimulationParameters:
    values = dict(data)
    if values.get("simulation_start_date"):
        values["simulation_start_date"] = date.fromisoformat(values["simulation_start_date"])
    return SimulationParameters(**values)


def _results_to_json(results: Optional[SimulationResults]) -> Optional[Dict[str, Any]]:
    if results is None:
        return None
    data = asdict(results)
    data["monthly_breakdowns"] = [
        {**asdict(b), "month": str(b.month)} for b in results.monthly_breakdowns
    ]
    return data


def _results_from_json(data: Optional[Dict[str, Any]]) -> Optional[SimulationResults]:
    if data is None:
        return None
    values = dict(data)
    values["monthly_breakdowns"] = [
        SimulationMonthBreakdown(**{**b, "month": parse_month_id(b["month"])})
        for b in values.get("monthly_breakdowns", [])
    ]
    return SimulationResults(**values)


def _simulation_from_record(r: SimulationRecord) -> Simulation:
    return Simulation(
        id=r.id,
        name=r.name,
        scenario_type=SimulationScenario(r.scenario_type),
        parameters=_parameters_from_json(r.parameters),
        results=_results_from_json(r.results),
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


class SimulationRepository(BaseRepository):
    """Repository for simulations; parameters and results are stored as JSON"""

    model = SimulationRecord
    entity_name = "Simulation"

    @wrap_db_errors
    def create(self, simulation: Simulation) -> Simulation:
        record = SimulationRecord(
            id=simulation.id,
            name=simulation.name,
            scenario_type=simulation.scenario_type.value,
            parameters=_parameters_to_json(simulation.parameters),
            results=_results_to_json(simulation.results),
            created_at=simulation.created_at,
            updated_at=simulation.updated_at,
        )
        self.db.add(record)
        self.db.flush()
        return _simulation_from_record(record)

    @wrap_db_errors
    def get(self, simulation_id: uuid.UUID) -> Simulation:
        return _simulation_from_record(self._get_record(simulation_id))

    @wrap_db_errors
    def update(self, simulation: Simulation) -> Simulation:
        """Persist name, scenario, parameters, results and updated_at as given"""
        record = self._get_record(simulation.id)
        record.name = simulation.name
        record.scenario_type = simulation.scenario_type.value
        record.parameters = _parameters_to_json(simulation.parameters)
        record.results = _results_to_json(simulation.results)
        record.updated_at = simulation.updated_at
        self.db.flush()
        return _simulation_from_record(record)

    @wrap_db_errors
    def delete(self, simulation_id: uuid.UUID) -> None:
        self._delete_record(simulation_id)

    @wrap_db_errors
    def list_all(self) -> List[Simulation]:
        records = self.db.query(SimulationRecord).order_by(SimulationRecord.created_at.desc()).all()
        return [_simulation_from_record(r) for r in records]


# ============ KPIs ============

_KPI_FIELDS = (
    "revenue_ht_cents",
    "revenue_ttc_cents",
    "expenses_ttc_cents",
    "working_days",
    "billable_hours",
    "average_daily_rate_cents",
    "average_hourly_rate_cents",
    "vat_collected_cents",
    "vat_due_cents",
    "urssaf_due_cents",
    "net_margin_cents",
    "profitability_ratio",
    "utilization_rate",
)


def _kpi_from_record(r: MonthlyKPIRecord) -> MonthlyKPI:
    return MonthlyKPI(
        id=r.id,
        month=MonthId(r.year, r.month),
        created_at=r.created_at,
        updated_at=r.updated_at,
        **{name: getattr(r, name) for name in _KPI_FIELDS},
    )


class KPIRepository:
    """Monthly KPI snapshots, one per month"""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, month: MonthId) -> Optional[MonthlyKPIRecord]:
        return (
            self.db.query(MonthlyKPIRecord)
            .filter(MonthlyKPIRecord.year == month.year, MonthlyKPIRecord.month == month.month)
            .first()
        )

    @wrap_db_errors
    def upsert(self, kpi: MonthlyKPI) -> MonthlyKPI:
        """Overwrite the month's snapshot; id and created_at of an existing row are kept"""
        record = self._find(kpi.month)
        if record is None:
            record = MonthlyKPIRecord(id=kpi.id, year=kpi.month.year, month=kpi.month.month, created_at=kpi.created_at)
            self.db.add(record)

        for name in _KPI_FIELDS:
            setattr(record, name, getattr(kpi, name))
        record.updated_at = kpi.updated_at
        self.db.flush()
        return _kpi_from_record(record)

    @wrap_db_errors
    def get(self, month: MonthId) -> MonthlyKPI:
        record = self._find(month)
        if record is None:
            raise NotFoundError(f"No KPI for {month}")
        return _kpi_from_record(record)

    @wrap_db_errors
    def list_for_year(self, year: int) -> List[MonthlyKPI]:
        records = (
            self.db.query(MonthlyKPIRecord)
            .filter(MonthlyKPIRecord.year == year)
            .order_by(MonthlyKPIRecord.month)
            .all()
        )
        return [_kpi_from_record(r) for r in records]

    @wrap_db_errors
    def delete(self, month: MonthId) -> None:
        record = self._find(month)
        if record is None:
            raise NotFoundError(f"No KPI for {month}")
        self.db.delete(record)
        self.db.flush()
