"""Unit tests for the provision optimizer"""

from datetime import date
from cash_planner.domain.models import TaxSchedule, TaxScheduleStatus, TaxType
from cash_planner.domain.provisions import optimize_provisions, upcoming_obligations
from cash_planner.domain.reports import ProvisionOutcome

TODAY = date(2024, 4, 1)


def _schedule(due_date: date, amount: int, status: TaxScheduleStatus = TaxScheduleStatus.PENDING) -> TaxSchedule:
    return TaxSchedule(
        tax_type=TaxType.URSSAF,
        due_date=due_date,
        amount_cents=amount,
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        status=status,
    )


def test_shortfall():
    """
    Cash 1000.00, obligations 1500.00, buffer 500.00:
    required 2000.00 leaves a 1000.00 shortfall
    """
    result = optimize_provisions(100000, [_schedule(date(2024, 4, 20), 150000)], 50000, 30, today=TODAY)

    assert result.upcoming_obligations_cents == 150000
    assert result.required_provisions_cents == 200000
    assert result.shortfall_cents == 100000
    assert result.available_for_distribution_cents == 0
    assert result.outcome == ProvisionOutcome.SHORTFALL
    assert result.recommendations == ["Besoin de 1000 € supplémentaires pour couvrir les obligations fiscales"]
    assert result.optimization_date == TODAY


def test_distribute_when_surplus_exceeds_twice_buffer():
    result = optimize_provisions(500000, [_schedule(date(2024, 4, 20), 100000)], 50000, 30, today=TODAY)

    assert result.available_for_distribution_cents == 350000
    assert result.shortfall_cents == 0
    assert result.outcome == ProvisionOutcome.DISTRIBUTE
    assert result.recommendations == ["Possibilité de distribuer 3500 € après provisions"]


def test_optimal_when_surplus_is_small():
    result = optimize_provisions(200000, [_schedule(date(2024, 4, 20), 100000)], 50000, 30, today=TODAY)

    assert result.available_for_distribution_cents == 50000
    assert result.outcome == ProvisionOutcome.OPTIMAL
    assert result.recommendations == ["Provisions optimales maintenues"]


def test_surplus_exactly_twice_buffer_is_optimal():
    result = optimize_provisions(150000, [], 50000, 30, today=TODAY)

    assert result.available_for_distribution_cents == 100000
    assert result.outcome == ProvisionOutcome.OPTIMAL


def test_only_pending_schedules_within_horizon_count():
    schedules = [
        _schedule(date(2024, 4, 20), 10000),
        _schedule(date(2024, 5, 1), 20000),  # on the cutoff
        _schedule(date(2024, 5, 2), 40000),  # after the cutoff
        _schedule(date(2024, 4, 5), 80000, status=TaxScheduleStatus.PAID),
    ]

    assert upcoming_obligations(schedules, date(2024, 5, 1)) == 30000

    result = optimize_provisions(0, schedules, 0, 30, today=TODAY)
    assert result.upcoming_obligations_cents == 30000
    assert result.shortfall_cents == 30000
