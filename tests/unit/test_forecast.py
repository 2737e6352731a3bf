"""Unit tests for the flat cash-flow forecast"""

from cash_planner.domain.forecast import forecast_cashflow
from cash_planner.domain.models import MonthId, Settings


def test_forecast_lines_are_flat_and_roll_over_years():
    settings = Settings(forecast_ht_cents=1_000_000, forecast_expenses_ttc_cents=120_000)

    result = forecast_cashflow(MonthId(2024, 11), 4, settings)

    assert result.start == MonthId(2024, 11)
    assert [(line.year, line.month) for line in result.months] == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]
    assert len({(line.ht_cents, line.net_cents, line.after_provisions_cents) for line in result.months}) == 1


def test_forecast_amounts():
    """
    10000.00 HT at 20% VAT, 1200.00 TTC expenses at 20%:
    collected VAT 2000.00, deductible 200.00, URSSAF 2200.00
    """
    settings = Settings(forecast_ht_cents=1_000_000, forecast_expenses_ttc_cents=120_000)

    line = forecast_cashflow(MonthId(2024, 1), 1, settings).months[0]

    assert line.ht_cents == 1_000_000
    assert line.tva_due_cents == 200_000 - 20_000
    assert line.urssaf_due_cents == 220_000
    assert line.expenses_ttc_cents == 120_000
    assert line.net_cents == 1_200_000 - 120_000
    assert line.after_provisions_cents == 1_080_000 - 180_000 - 220_000 - 30_000


def test_forecast_zero_assumptions_only_reserve_buffer():
    line = forecast_cashflow(MonthId(2024, 1), 1, Settings()).months[0]

    assert line.net_cents == 0
    assert line.tva_due_cents == 0
    assert line.after_provisions_cents == -30_000


def test_forecast_non_positive_horizon_is_empty():
    assert forecast_cashflow(MonthId(2024, 1), 0, Settings()).months == []
    assert forecast_cashflow(MonthId(2024, 1), -3, Settings()).months == []
