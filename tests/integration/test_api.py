"""Integration tests for API endpoints"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from recurring_bills.domain.exceptions import NetworkFailure, ServerRejected
from recurring_bills.domain.models import BillSummary, RecurringBill


@pytest.fixture
def bills(make_bill) -> list[RecurringBill]:
    """Bill list as seen on 2024-01-10"""
    return [
        make_bill(id="overdue", name="Phone", amount=Decimal("10"), next_due_date=date(2024, 1, 2)),
        make_bill(id="due", name="Rent", amount=Decimal("50"), next_due_date=date(2024, 1, 25)),
        make_bill(id="paid", name="Gym", amount=Decimal("30"), next_due_date=date(2024, 2, 10)),
        make_bill(id="netflix", notes="Netflix [LOAN_REF:loan-123]"),
    ]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "recurring_bills_settlement_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_overview_sections_and_totals(client: TestClient, bill_client: AsyncMock, bills):
    """Test GET /v1/bills/overview with the remote summary"""
    bill_client.get_all.return_value = bills
    bill_client.get_summary.return_value = BillSummary(
        active_bills=4,
        inactive_bills=0,
        total_monthly_amount=Decimal("105.99"),
        upcoming_bills=0,
        overdue_bills=1,
    )

    response = client.get("/v1/bills/overview")

    assert response.status_code == 200
    data = response.json()
    sections = {name: [b["id"] for b in members] for name, members in data["sections"].items()}
    assert sections == {
        "overdue": ["overdue"],
        "due_this_month": ["due", "netflix"],
        "paid_this_month": ["paid"],
        "future": [],
    }
    assert data["sections"]["overdue"][0]["label"] == "8 days overdue"
    assert data["sections"]["due_this_month"][1]["days_until"] == 10
    assert Decimal(data["current_month_unpaid"]) == Decimal("75.99")
    assert Decimal(data["next_month_projection"]) == Decimal("105.99")
    assert data["summary_source"] == "remote"
    assert data["summary"]["active_bills"] == 4
    assert [b["id"] for b in data["upcoming"]] == []


def test_overview_falls_back_to_local_summary(client: TestClient, bill_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    bill_client.get_summary.side_effect = ServerRejected(500, "summary broke")

    response = client.get("/v1/bills/overview")

    assert response.status_code == 200
    data = response.json()
    assert data["summary_source"] == "local"
    assert data["summary"]["active_bills"] == 4
    assert data["summary"]["overdue_bills"] == 1
    assert Decimal(data["summary"]["total_monthly_amount"]) == Decimal("105.99")


def test_overview_unavailable(client: TestClient, bill_client: AsyncMock):
    bill_client.get_all.side_effect = NetworkFailure("offline")

    response = client.get("/v1/bills/overview")

    assert response.status_code == 503


def test_mark_paid_endpoint(client: TestClient, bill_client: AsyncMock, loan_client: AsyncMock, bills):
    """Test POST /v1/bills/{id}/mark-paid with a linked loan"""
    bill_client.get_all.return_value = bills

    response = client.post("/v1/bills/netflix/mark-paid")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "settled"
    assert data["toast"]["level"] == "success"
    assert data["steps"][0]["name"] == "loan_payment_create"
    assert data["steps"][0]["payment_id"] == "pay-new"
    bill_client.mark_paid.assert_awaited_once_with("netflix")
    loan_client.create.assert_awaited_once()


def test_mark_paid_network_failure(client: TestClient, bill_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    bill_client.mark_paid.side_effect = NetworkFailure("offline")

    response = client.post("/v1/bills/due/mark-paid")

    assert response.status_code == 503


def test_mark_paid_passes_server_message_through(client: TestClient, bill_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    bill_client.mark_paid.side_effect = ServerRejected(400, "Bill is inactive")

    response = client.post("/v1/bills/due/mark-paid")

    assert response.status_code == 400
    assert response.json()["detail"] == "Bill is inactive"


def test_mark_paid_generic_message_without_server_text(client: TestClient, bill_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    bill_client.mark_paid.side_effect = ServerRejected(500)

    response = client.post("/v1/bills/due/mark-paid")

    assert response.status_code == 502
    assert response.json()["detail"] == "Something went wrong, please try again"


def test_mark_paid_unknown_bill(client: TestClient, bill_client: AsyncMock):
    response = client.post("/v1/bills/missing/mark-paid")

    assert response.status_code == 404
    bill_client.get_all.assert_awaited()


def test_mark_paid_while_settling(client: TestClient, coordinator, bill_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    coordinator._in_flight.add("due")

    response = client.post("/v1/bills/due/mark-paid")

    assert response.status_code == 409
    bill_client.mark_paid.assert_not_awaited()


def test_unmark_requires_confirmation(client: TestClient, bill_client: AsyncMock, make_bill):
    bill_client.get_all.return_value = [make_bill(is_paid=True)]

    assert client.post("/v1/bills/bill-1/unmark-paid").status_code == 400
    assert client.post("/v1/bills/bill-1/unmark-paid", json={"confirmed": False}).status_code == 400
    bill_client.unmark_paid.assert_not_awaited()


def test_unmark_paid_endpoint(client: TestClient, bill_client: AsyncMock, make_bill):
    bill_client.get_all.return_value = [make_bill(is_paid=True)]

    response = client.post("/v1/bills/bill-1/unmark-paid", json={"confirmed": True})

    assert response.status_code == 200
    assert response.json()["status"] == "settled"
    bill_client.unmark_paid.assert_awaited_once_with("bill-1")


def test_retry_without_journal_is_not_found(client: TestClient):
    response = client.post("/v1/bills/bill-1/retry")
    assert response.status_code == 404


def test_overview_lists_bills_due_within_a_week(client: TestClient, bill_client: AsyncMock, make_bill):
    bill_client.get_all.return_value = [
        make_bill(id="later", next_due_date=date(2024, 1, 18)),
        make_bill(id="soon", next_due_date=date(2024, 1, 12)),
        make_bill(id="late", next_due_date=date(2024, 1, 9)),
        make_bill(id="today", next_due_date=date(2024, 1, 10)),
    ]
    bill_client.get_summary.side_effect = NetworkFailure("offline")

    response = client.get("/v1/bills/overview")

    assert response.status_code == 200
    upcoming = response.json()["upcoming"]
    assert [b["id"] for b in upcoming] == ["today", "soon"]
    assert [b["label"] for b in upcoming] == ["today", "2 days"]


def test_mark_paid_reports_compensation_warnings(client: TestClient, bill_client: AsyncMock, loan_client: AsyncMock, bills):
    bill_client.get_all.return_value = bills
    loan_client.create.side_effect = ServerRejected(404, "Loan not found")

    response = client.post("/v1/bills/netflix/mark-paid")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "partial"
    assert data["toast"]["level"] == "warning"
    assert data["warnings"] == ["loan_payment_create failed: Loan not found"]
