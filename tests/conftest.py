"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Callable, Generator
from unittest.mock import AsyncMock

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mocks.finance_api.main import MockState, create_mock_app
from recurring_bills.api.main import create_app
from recurring_bills.domain.models import LoanPayment, RecurringBill
from recurring_bills.infrastructure.clients.bills import BillClient
from recurring_bills.infrastructure.clients.loans import LoanPaymentClient
from recurring_bills.infrastructure.clients.savings import SavingsGoalClient
from recurring_bills.infrastructure.database.models import Base
from recurring_bills.services.bill_store import BillStore
from recurring_bills.services.settlement import SettlementCoordinator


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2024, 1, 10)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def journal() -> Generator[sessionmaker, None, None]:
    """Create settlement journal tables for a test"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_bill() -> Callable[..., RecurringBill]:
    """Factory for bills with sensible defaults"""

    def _make(**overrides) -> RecurringBill:
        fields = {
            "id": "bill-1",
            "name": "Netflix",
            "amount": Decimal("15.99"),
            "category": "subscription",
            "frequency": "monthly",
            "next_due_date": date(2024, 1, 20),
            "is_paid": False,
            "is_active": True,
            "notes": None,
        }
        fields.update(overrides)
        return RecurringBill(**fields)

    return _make


@pytest.fixture
def bill_client() -> AsyncMock:
    client = AsyncMock(spec=BillClient)
    client.mark_paid.return_value = None
    client.unmark_paid.return_value = None
    client.get_all.return_value = []
    return client


@pytest.fixture
def loan_client() -> AsyncMock:
    client = AsyncMock(spec=LoanPaymentClient)

    async def _create(payment: LoanPayment) -> LoanPayment:
        payment.id = "pay-new"
        return payment

    client.create.side_effect = _create
    client.get_by_loan.return_value = []
    return client


@pytest.fixture
def savings_client() -> AsyncMock:
    return AsyncMock(spec=SavingsGoalClient)


@pytest.fixture
def coordinator(bill_client, loan_client, savings_client, today) -> SettlementCoordinator:
    """Coordinator over mocked services, no journal"""
    return SettlementCoordinator(
        bill_client=bill_client,
        loan_client=loan_client,
        savings_client=savings_client,
        store=BillStore(),
        clock=lambda: today,
        timeout=1.0,
    )


@pytest.fixture
def client(coordinator: SettlementCoordinator) -> TestClient:
    """Create FastAPI test client around the mocked coordinator"""
    return TestClient(create_app(coordinator))


# Mock finance API

@pytest.fixture
def mock_state() -> MockState:
    return MockState()


@pytest.fixture
def finance_transport(mock_state: MockState) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=create_mock_app(mock_state))


@pytest.fixture
def live_coordinator(finance_transport, journal) -> SettlementCoordinator:
    """Coordinator using the real HTTP clients against the in-process mock finance API"""
    clients = []
    for cls in (BillClient, LoanPaymentClient, SavingsGoalClient):
        c = cls(base_url="http://finance.test", transport=finance_transport)
        c.backoff_base = 0
        clients.append(c)
    return SettlementCoordinator(*clients, journal=journal, timeout=5.0)
