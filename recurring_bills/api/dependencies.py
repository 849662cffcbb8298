"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from recurring_bills.infrastructure.clients.bills import BillClient
from recurring_bills.infrastructure.clients.loans import LoanPaymentClient
from recurring_bills.infrastructure.clients.savings import SavingsGoalClient
from recurring_bills.infrastructure.database.session import SessionLocal
from recurring_bills.services.settlement import SettlementCoordinator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def build_coordinator() -> SettlementCoordinator:
    """Coordinator wired to the configured finance API and settlement journal"""
    return SettlementCoordinator(
        bill_client=BillClient(),
        loan_client=LoanPaymentClient(),
        savings_client=SavingsGoalClient(),
        journal=SessionLocal,
    )


def get_coordinator(request: Request) -> SettlementCoordinator:
    """Provide the app-wide coordinator; its bill list and in-flight guard are shared"""
    return request.app.state.coordinator
