"""Simulations and the direct rate/income calculators"""

import uuid
from dataclasses import replace
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cash_planner.api.dependencies import tracked_command
from cash_planner.api.v1.schemas import (
    AnnualIncomeRequest,
    AnnualIncomeResponse,
    DailyRateRequest,
    DailyRateResponse,
    SimulationRequest,
    SimulationResponse,
)
from cash_planner.domain.models import Simulation, SimulationParameters, utcnow
from cash_planner.domain.simulators import calculate_optimal_daily_rate, project_annual_income, run_simulation
from cash_planner.infrastructure.database.repositories import SimulationRepository
from cash_planner.infrastructure.database.session import get_db

router = APIRouter()


def _parameters(body: SimulationRequest) -> SimulationParameters:
    return SimulationParameters(**body.parameters.model_dump())


@router.post("/simulations/daily-rate", response_model=DailyRateResponse)
def calculate_daily_rate(body: DailyRateRequest, request: Request):
    """Daily rate needed to reach a net annual income"""
    with tracked_command(request, "calculate_daily_rate"):
        result = calculate_optimal_daily_rate(
            body.target_annual_income_cents,
            body.working_days_per_year,
            body.annual_expenses_cents,
            body.vat_rate_ppm,
            body.urssaf_rate_ppm,
            body.income_tax_rate_ppm,
        )
    return DailyRateResponse.model_validate(result)


@router.post("/simulations/annual-income", response_model=AnnualIncomeResponse)
def calculate_annual_income(body: AnnualIncomeRequest, request: Request):
    with tracked_command(request, "project_annual_income"):
        result = project_annual_income(
            body.monthly_avg_revenue_cents,
            body.working_months,
            body.annual_expenses_cents,
            body.vat_rate_ppm,
            body.urssaf_rate_ppm,
        )
    return AnnualIncomeResponse.model_validate(result)


@router.post("/simulations", response_model=SimulationResponse, status_code=201)
def create_simulation(body: SimulationRequest, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "create_simulation", scenario=body.scenario_type.value):
        simulation = SimulationRepository(db).create(
            Simulation(name=body.name, scenario_type=body.scenario_type, parameters=_parameters(body))
        )
        db.commit()
    return SimulationResponse.model_validate(simulation)


@router.get("/simulations", response_model=List[SimulationResponse])
def list_simulations(db: Session = Depends(get_db)):
    return [SimulationResponse.model_validate(s) for s in SimulationRepository(db).list_all()]


@router.get("/simulations/{simulation_id}", response_model=SimulationResponse)
def get_simulation(simulation_id: uuid.UUID, db: Session = Depends(get_db)):
    return SimulationResponse.model_validate(SimulationRepository(db).get(simulation_id))


@router.put("/simulations/{simulation_id}", response_model=SimulationResponse)
def update_simulation(simulation_id: uuid.UUID, body: SimulationRequest, request: Request, db: Session = Depends(get_db)):
    """Replace name, scenario and parameters; results from an earlier run are kept until the next run"""
    repo = SimulationRepository(db)
    with tracked_command(request, "update_simulation"):
        existing = repo.get(simulation_id)
        simulation = repo.update(
            replace(
                existing,
                name=body.name,
                scenario_type=body.scenario_type,
                parameters=_parameters(body),
                updated_at=utcnow(),
            )
        )
        db.commit()
    return SimulationResponse.model_validate(simulation)


@router.post("/simulations/{simulation_id}/run", response_model=SimulationResponse)
def run(simulation_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Compute results for the stored parameters and persist them"""
    repo = SimulationRepository(db)
    with tracked_command(request, "run_simulation"):
        simulation = repo.update(run_simulation(repo.get(simulation_id)))
        db.commit()
    return SimulationResponse.model_validate(simulation)


@router.delete("/simulations/{simulation_id}", status_code=204)
def delete_simulation(simulation_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    with tracked_command(request, "delete_simulation"):
        SimulationRepository(db).delete(simulation_id)
        db.commit()
