"""Recurring bill API client"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from recurring_bills.domain.exceptions import ServerRejected
from recurring_bills.domain.models import FREQUENCIES, BillSummary, RecurringBill
from recurring_bills.infrastructure.clients.base import FinanceAPIClient, pick
from recurring_bills.utils.date_utils import parse_api_date

logger = logging.getLogger(__name__)


def parse_bill(data: Dict[str, Any]) -> RecurringBill:
    """Build a RecurringBill from an API payload (camelCase or snake_case)"""
    frequency = str(data.get("frequency") or "monthly").lower()
    if frequency not in FREQUENCIES:
        frequency = "monthly"
    due_day = pick(data, "dueDay", "due_day")
    return RecurringBill(
        id=str(data["id"]),
        name=data.get("name", ""),
        amount=Decimal(str(data["amount"])),
        category=data.get("category") or "other",
        frequency=frequency,
        next_due_date=parse_api_date(pick(data, "nextDueDate", "next_due_date")),
        is_paid=bool(pick(data, "isPaid", "is_paid", False)),
        is_active=pick(data, "isActive", "is_active", True) is not False,
        notes=data.get("notes"),
        due_day=int(due_day) if due_day not in (None, "") else None,
        auto_pay=bool(pick(data, "autoPay", "auto_pay", False)),
        reminder_days=int(pick(data, "reminderDays", "reminder_days", 3)),
    )


def parse_summary(data: Dict[str, Any]) -> BillSummary:
    """Build a BillSummary from the summary endpoint payload"""
    total_bills = pick(data, "totalBills", "total_bills")
    yearly = pick(data, "totalYearlyAmount", "total_yearly_amount")
    return BillSummary(
        active_bills=int(pick(data, "activeBills", "active_bills", 0)),
        inactive_bills=int(pick(data, "inactiveBills", "inactive_bills", 0)),
        total_monthly_amount=Decimal(str(pick(data, "totalMonthlyAmount", "total_monthly_amount", 0))),
        upcoming_bills=int(pick(data, "upcomingBills", "upcoming_bills", 0)),
        overdue_bills=int(pick(data, "overdueBills", "overdue_bills", 0)),
        total_bills=int(total_bills) if total_bills is not None else None,
        total_yearly_amount=Decimal(str(yearly)) if yearly is not None else None,
    )


def bill_payload(bill: RecurringBill) -> Dict[str, Any]:
    """Serialise the user-editable fields of a bill for create/update"""
    return {
        "name": bill.name,
        "amount": float(bill.amount),
        "category": bill.category,
        "frequency": bill.frequency,
        "dueDay": bill.due_day,
        "autoPay": bill.auto_pay,
        "reminderDays": bill.reminder_days,
        "isActive": bill.is_active,
        "notes": bill.notes,
    }


class BillClient(FinanceAPIClient):
    """Client for the recurring bill service.

    The service is authoritative for ``next_due_date``: mark-paid advances it
    to the following occurrence and unmark-paid rewinds it one cycle.
    """

    service_name = "bills"
    prefix = "/api/recurringbills"

    async def get_all(self) -> List[RecurringBill]:
        data = await self._request("GET", self.prefix)
        return self._parse_bills(data)

    async def get_summary(self) -> BillSummary:
        data = await self._request("GET", f"{self.prefix}/summary")
        return parse_summary(data or {})

    async def create(self, bill: RecurringBill) -> RecurringBill:
        data = await self._request("POST", self.prefix, json=bill_payload(bill))
        return parse_bill(data)

    async def update(self, bill: RecurringBill) -> RecurringBill:
        data = await self._request("PUT", f"{self.prefix}/{bill.id}", json=bill_payload(bill))
        return parse_bill(data)

    async def delete(self, bill_id: str) -> None:
        await self._request("DELETE", f"{self.prefix}/{bill_id}")

    async def mark_paid(self, bill_id: str) -> Optional[RecurringBill]:
        data = await self._request("POST", f"{self.prefix}/{bill_id}/mark-paid")
        return self._optional_bill(data, bill_id)

    async def unmark_paid(self, bill_id: str) -> Optional[RecurringBill]:
        data = await self._request("POST", f"{self.prefix}/{bill_id}/unmark-paid")
        return self._optional_bill(data, bill_id)

    @staticmethod
    def _parse_bills(data: Any) -> List[RecurringBill]:
        try:
            return [parse_bill(item) for item in data or []]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise ServerRejected(502, f"Invalid bill data from bill service: {e}") from e

    @staticmethod
    def _optional_bill(data: Any, bill_id: str) -> Optional[RecurringBill]:
        # The mutation already committed server-side; an unreadable body is not a failure.
        if not isinstance(data, dict) or "id" not in data:
            return None
        try:
            return parse_bill(data)
        except (KeyError, ValueError, TypeError, ArithmeticError):
            logger.warning("Unreadable bill payload after settlement", extra={"bill_id": bill_id})
            return None
