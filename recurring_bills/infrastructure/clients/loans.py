"""Loan payment ledger API client"""

from decimal import Decimal
from typing import Any, Dict, List

from recurring_bills.domain.exceptions import ServerRejected
from recurring_bills.domain.models import LoanPayment
from recurring_bills.infrastructure.clients.base import FinanceAPIClient, pick
from recurring_bills.utils.date_utils import parse_api_date


def parse_payment(data: Dict[str, Any]) -> LoanPayment:
    amount = Decimal(str(data["amount"]))
    return LoanPayment(
        id=str(data["id"]) if data.get("id") is not None else None,
        loan_id=str(pick(data, "loanId", "loan_id")),
        amount=amount,
        principal_amount=Decimal(str(pick(data, "principalAmount", "principal_amount", amount))),
        interest_amount=Decimal(str(pick(data, "interestAmount", "interest_amount", 0))),
        payment_date=parse_api_date(pick(data, "paymentDate", "payment_date")),
        notes=data.get("notes"),
    )


class LoanPaymentClient(FinanceAPIClient):
    """Client for the loan subsystem's payment ledger"""

    service_name = "loan_payments"
    prefix = "/api/loanpayments"

    async def get_by_loan(self, loan_id: str) -> List[LoanPayment]:
        data = await self._request("GET", f"{self.prefix}/by-loan/{loan_id}")
        try:
            return [parse_payment(item) for item in data or []]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise ServerRejected(502, f"Invalid payment data for loan {loan_id}: {e}") from e

    async def create(self, payment: LoanPayment) -> LoanPayment:
        """Record a payment; returns the stored payment including its id"""
        data = await self._request(
            "POST",
            self.prefix,
            json={
                "loanId": payment.loan_id,
                "amount": float(payment.amount),
                "principalAmount": float(payment.principal_amount),
                "interestAmount": float(payment.interest_amount),
                "paymentDate": payment.payment_date.isoformat(),
                "notes": payment.notes,
            },
        )
        if isinstance(data, dict) and data.get("id") is not None:
            payment.id = str(data["id"])
        return payment

    async def delete(self, payment_id: str) -> None:
        await self._request("DELETE", f"{self.prefix}/{payment_id}")
