"""String -> domain value parsing shared by every entry point"""

import re
from datetime import date
from typing import Dict, Optional, Type, TypeVar

from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.models import (
    MonthId,
    OperationType,
    ProvisionKind,
    SimulationScenario,
    TaxScheduleStatus,
    TaxType,
)

E = TypeVar("E")

_MONTH_ID_RE = re.compile(r"^(\d{4})-(\d{2})$")

_OPERATION_TYPE_ALIASES = {
    "sale": OperationType.SALE,
    "vente": OperationType.SALE,
    "purchase": OperationType.PURCHASE,
    "achat": OperationType.PURCHASE,
}

_TAX_TYPE_ALIASES = {
    "tva": TaxType.VAT,
    "incometax": TaxType.INCOME_TAX,
}


def _normalize(value: str) -> str:
    return value.strip().lower()


def _parse_enum(value: Optional[str], enum_cls: Type[E], aliases: Optional[Dict[str, E]] = None) -> E:
    if value is None:
        raise ValidationError(f"Missing {enum_cls.__name__} value")

    key = _normalize(value)
    if aliases and key in aliases:
        return aliases[key]
    for member in enum_cls:
        if member.value.lower() == key:
            return member
    raise ValidationError(f"Invalid {enum_cls.__name__}: {value!r}")


def parse_operation_type(value: str) -> OperationType:
    """'sale'/'vente' or 'purchase'/'achat', case-insensitive"""
    return _parse_enum(value, OperationType, _OPERATION_TYPE_ALIASES)


def parse_tax_type(value: str) -> TaxType:
    return _parse_enum(value, TaxType, _TAX_TYPE_ALIASES)


def parse_schedule_status(value: str) -> TaxScheduleStatus:
    return _parse_enum(value, TaxScheduleStatus)


def parse_provision_kind(value: str) -> ProvisionKind:
    return _parse_enum(value, ProvisionKind)


def parse_scenario(value: str) -> SimulationScenario:
    """
    Accepts the stored CamelCase tag or its snake_case form.

    Example:
        parse_scenario("daily_rate_optimization") -> DAILY_RATE_OPTIMIZATION
    """
    return _parse_enum(value.replace("_", "") if value is not None else None, SimulationScenario)


def parse_iso_date(value: str) -> date:
    """YYYY-MM-DD"""
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r}")


def parse_month_id(value: str) -> MonthId:
    """YYYY-MM with month in 1..12"""
    match = _MONTH_ID_RE.match(value.strip()) if value is not None else None
    if match is None:
        raise ValidationError(f"Invalid month: {value!r}")

    year, month = int(match.group(1)), int(match.group(2))
    return month_id(year, month)


def month_id(year: int, month: int) -> MonthId:
    """MonthId from separate parts, validating the month number"""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month number: {month}")
    return MonthId(year, month)
