"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from installment_planner.api.main import create_app
from installment_planner.api.dependencies import get_today
from installment_planner.infrastructure.database.models import Base
from installment_planner.infrastructure.database.session import SessionLocal, engine, get_db

TODAY = date(2025, 1, 1)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def client(db: Session, today: date) -> TestClient:
    """Create FastAPI test client with test database and a pinned clock"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: today
    return TestClient(app)


@pytest.fixture
def plan_payload() -> dict:
    """Valid creation body: 1200.00 over 6 monthly installments"""
    return {
        "invoiceId": "inv-001",
        "studentId": "student-001",
        "totalAmount": 1200,
        "numberOfInstallments": 6,
        "frequency": "monthly",
        "startDate": "2025-01-01",
        "termsAccepted": True,
        "paymentMethod": "bank_transfer",
    }
