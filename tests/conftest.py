"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from cash_planner.api.main import create_app
from cash_planner.infrastructure.database.models import Base
from cash_planner.infrastructure.database.session import get_db
from cash_planner.domain.models import Operation, OperationType, Settings, WorkingDay


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def settings() -> Settings:
    """Default financial settings (20% VAT, 22% URSSAF, 300.00 buffer)"""
    return Settings()


@pytest.fixture
def sample_operations() -> List[Operation]:
    """A quarter of activity: sales on both VAT regimes plus purchases"""
    return [
        # Invoiced in March, paid in April, VAT on payments
        Operation(
            invoice_date=date(2024, 3, 5),
            payment_date=date(2024, 4, 10),
            operation_type=OperationType.SALE,
            amount_ht_cents=500000,
            vat_amount_cents=100000,
            vat_on_payments=True,
        ),
        # Invoiced and paid in March, VAT on invoicing
        Operation(
            invoice_date=date(2024, 3, 12),
            payment_date=date(2024, 3, 28),
            operation_type=OperationType.SALE,
            amount_ht_cents=100000,
            vat_amount_cents=20000,
            vat_on_payments=False,
        ),
        # Laptop bought and paid in March
        Operation(
            invoice_date=date(2024, 3, 15),
            payment_date=date(2024, 3, 15),
            operation_type=OperationType.PURCHASE,
            amount_ht_cents=150000,
            vat_amount_cents=30000,
            vat_on_payments=True,
        ),
        # Unpaid sale, never counted for VAT on payments
        Operation(
            invoice_date=date(2024, 3, 20),
            operation_type=OperationType.SALE,
            amount_ht_cents=200000,
            vat_amount_cents=40000,
            vat_on_payments=True,
        ),
    ]


@pytest.fixture
def sample_working_days() -> List[WorkingDay]:
    """Two weeks of tracked days at 60.00/hour, sorted by date"""
    return [
        WorkingDay(date=date(2024, 3, 4), hours_worked=8.0, billable_hours=6.0, hourly_rate_cents=6000),
        WorkingDay(date=date(2024, 3, 5), hours_worked=8.0, billable_hours=8.0, hourly_rate_cents=6000),
        WorkingDay(date=date(2024, 3, 6), hours_worked=4.0, billable_hours=2.0, hourly_rate_cents=6000),
        WorkingDay(date=date(2024, 3, 11), hours_worked=8.0, billable_hours=4.0, hourly_rate_cents=6000),
        WorkingDay(date=date(2024, 3, 12), hours_worked=10.0, billable_hours=10.0, hourly_rate_cents=6000),
    ]
