"""
Rate and income simulators, plus the runner that executes a stored Simulation.

Scenario dispatch goes through SCENARIO_HANDLERS. Adding a scenario means
adding an enum member and a handler; a member without a handler is reported
as a validation error, never silently ignored.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, TypeVar

from cash_planner.domain.amounts import PPM_SCALE, apply_rate_ppm
from cash_planner.domain.exceptions import ValidationError
from cash_planner.domain.models import (
    MonthId,
    Simulation,
    SimulationMonthBreakdown,
    SimulationParameters,
    SimulationResults,
    SimulationScenario,
    utcnow,
)
from cash_planner.domain.reports import AnnualIncomeProjection, DailyRateCalculation

logger = logging.getLogger(__name__)

DEFAULT_SIMULATION_HORIZON_MONTHS = 12

T = TypeVar("T")


def calculate_optimal_daily_rate(
    target_annual_income_cents: int,
    working_days_per_year: float,
    annual_expenses_cents: int,
    vat_rate_ppm: int,
    urssaf_rate_ppm: int,
    income_tax_rate_ppm: int,
) -> DailyRateCalculation:
    """
    Daily rate needed to reach a net annual income target.

    Requirements:
    - Gross up the target by 1 / (1 - combined rate), combined rate being
      the sum of the three rates as a fraction
    - Add annual expenses to get the HT revenue needed
    - Divide by working days; 0 when there are no working days
    - A combined rate of 100% or more cannot be grossed up: the gross
      income needed resolves to 0

    Example:
        target 60000.00, 220 days, expenses 15000.00, URSSAF 22%
        -> revenue needed 91923.07, daily rate 417.83
    """
    combined_tax_rate = (vat_rate_ppm + urssaf_rate_ppm + income_tax_rate_ppm) / PPM_SCALE
    if combined_tax_rate < 1.0:
        gross_income_needed_cents = int(target_annual_income_cents / (1.0 - combined_tax_rate))
    else:
        gross_income_needed_cents = 0

    total_revenue_ht_needed_cents = gross_income_needed_cents + annual_expenses_cents

    if working_days_per_year > 0:
        optimal_daily_rate_cents = int(total_revenue_ht_needed_cents / working_days_per_year)
    else:
        optimal_daily_rate_cents = 0

    return DailyRateCalculation(
        target_annual_income_cents=target_annual_income_cents,
        working_days_per_year=working_days_per_year,
        annual_expenses_cents=annual_expenses_cents,
        optimal_daily_rate_cents=optimal_daily_rate_cents,
        total_revenue_ht_needed_cents=total_revenue_ht_needed_cents,
        total_taxes_cents=total_revenue_ht_needed_cents - target_annual_income_cents - annual_expenses_cents,
        net_margin_ratio=(
            target_annual_income_cents / total_revenue_ht_needed_cents
            if total_revenue_ht_needed_cents > 0 else 0.0
        ),
    )


def project_annual_income(
    monthly_avg_revenue_cents: int,
    working_months: int,
    annual_expenses_cents: int,
    vat_rate_ppm: int,
    urssaf_rate_ppm: int,
) -> AnnualIncomeProjection:
    """
    Straight-line annual projection.

    net = revenue - (VAT + URSSAF) - expenses. Ratios are 0 when revenue is 0.
    """
    total_revenue_ht_cents = monthly_avg_revenue_cents * working_months
    total_taxes_cents = (
        apply_rate_ppm(total_revenue_ht_cents, vat_rate_ppm)
        + apply_rate_ppm(total_revenue_ht_cents, urssaf_rate_ppm)
    )
    net_income_cents = total_revenue_ht_cents - total_taxes_cents - annual_expenses_cents

    if total_revenue_ht_cents > 0:
        effective_tax_rate = total_taxes_cents / total_revenue_ht_cents
        profit_margin = net_income_cents / total_revenue_ht_cents
    else:
        effective_tax_rate = 0.0
        profit_margin = 0.0

    return AnnualIncomeProjection(
        total_revenue_ht_cents=total_revenue_ht_cents,
        total_taxes_cents=total_taxes_cents,
        annual_expenses_cents=annual_expenses_cents,
        net_income_cents=net_income_cents,
        effective_tax_rate=effective_tax_rate,
        profit_margin=profit_margin,
    )


# ============ Simulation runner ============


def _require(value: Optional[T], name: str) -> T:
    if value is None:
        raise ValidationError(f"Missing required parameter: {name}")
    return value


def _annual_costs(params: SimulationParameters) -> int:
    return (params.monthly_fixed_costs_cents or 0) * 12 + (params.annual_variable_costs_cents or 0)


def _run_daily_rate_optimization(params: SimulationParameters) -> SimulationResults:
    target = _require(params.target_annual_income_cents, "target_annual_income_cents")
    days_per_month = _require(params.working_days_per_month, "working_days_per_month")
    vat_rate = _require(params.vat_rate_ppm, "vat_rate_ppm")
    urssaf_rate = _require(params.urssaf_rate_ppm, "urssaf_rate_ppm")

    working_days_per_year = days_per_month * 12
    calculation = calculate_optimal_daily_rate(
        target,
        working_days_per_year,
        _annual_costs(params),
        vat_rate,
        urssaf_rate,
        params.income_tax_rate_ppm or 0,
    )

    hours_per_day = params.working_hours_per_day
    hourly_rate = (
        int(calculation.optimal_daily_rate_cents / hours_per_day)
        if hours_per_day is not None and hours_per_day > 0 else None
    )

    return SimulationResults(
        optimal_daily_rate_cents=calculation.optimal_daily_rate_cents,
        optimal_hourly_rate_cents=hourly_rate,
        projected_annual_income_ht_cents=calculation.total_revenue_ht_needed_cents,
        projected_annual_taxes_cents=calculation.total_taxes_cents,
        projected_net_income_cents=target,
        working_days_needed=working_days_per_year,
    )


def _monthly_breakdowns(
    start: MonthId,
    months: int,
    monthly_revenue_cents: int,
    params: SimulationParameters,
    days_per_month: float,
) -> List[SimulationMonthBreakdown]:
    taxes = (
        apply_rate_ppm(monthly_revenue_cents, params.vat_rate_ppm or 0)
        + apply_rate_ppm(monthly_revenue_cents, params.urssaf_rate_ppm or 0)
    )
    expenses = (params.monthly_fixed_costs_cents or 0) + (params.annual_variable_costs_cents or 0) // 12

    return [
        SimulationMonthBreakdown(
            month=start.plus(i),
            revenue_ht_cents=monthly_revenue_cents,
            taxes_cents=taxes,
            expenses_cents=expenses,
            net_cents=monthly_revenue_cents - taxes - expenses,
            working_days=days_per_month,
        )
        for i in range(months)
    ]


def _run_annual_income_projection(params: SimulationParameters) -> SimulationResults:
    hourly_rate = _require(params.current_hourly_rate_cents, "current_hourly_rate_cents")
    hours_per_day = _require(params.working_hours_per_day, "working_hours_per_day")
    days_per_month = _require(params.working_days_per_month, "working_days_per_month")
    vat_rate = _require(params.vat_rate_ppm, "vat_rate_ppm")
    urssaf_rate = _require(params.urssaf_rate_ppm, "urssaf_rate_ppm")

    months = params.simulation_horizon_months or DEFAULT_SIMULATION_HORIZON_MONTHS
    monthly_revenue = int(hourly_rate * hours_per_day * days_per_month)
    projection = project_annual_income(monthly_revenue, months, _annual_costs(params), vat_rate, urssaf_rate)

    breakdowns = []
    if params.simulation_start_date is not None:
        breakdowns = _monthly_breakdowns(
            MonthId.from_date(params.simulation_start_date), months, monthly_revenue, params, days_per_month
        )

    return SimulationResults(
        optimal_daily_rate_cents=int(hourly_rate * hours_per_day),
        optimal_hourly_rate_cents=hourly_rate,
        projected_annual_income_ht_cents=projection.total_revenue_ht_cents,
        projected_annual_taxes_cents=projection.total_taxes_cents,
        projected_net_income_cents=projection.net_income_cents,
        working_days_needed=days_per_month * months,
        monthly_breakdowns=breakdowns,
    )


SCENARIO_HANDLERS: Dict[SimulationScenario, Callable[[SimulationParameters], SimulationResults]] = {
    SimulationScenario.DAILY_RATE_OPTIMIZATION: _run_daily_rate_optimization,
    SimulationScenario.ANNUAL_INCOME_PROJECTION: _run_annual_income_projection,
}


def run_simulation(simulation: Simulation, now: Optional[datetime] = None) -> Simulation:
    """
    Execute a simulation and return a copy carrying fresh results.

    Re-running overwrites previous results and bumps updated_at. Parameters
    are read as stored; results of an earlier run are not checked against them.

    Raises:
        ValidationError: a required parameter is missing, or the scenario
            has no handler yet
    """
    handler = SCENARIO_HANDLERS.get(simulation.scenario_type)
    if handler is None:
        raise ValidationError(f"Scenario {simulation.scenario_type.value} not yet implemented")

    results = handler(simulation.parameters)
    logger.debug("Simulation %s (%s) computed", simulation.id, simulation.scenario_type.value)
    return replace(simulation, results=results, updated_at=now or utcnow())
