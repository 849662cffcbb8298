"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from recurring_bills.domain.exceptions import CompensationFailed

FREQUENCIES = ("weekly", "monthly", "quarterly", "yearly")


@dataclass(frozen=True)
class RecurringBill:
    """Recurring bill as returned by the bill service"""

    id: str
    name: str
    amount: Decimal
    category: str
    frequency: str  # weekly | monthly | quarterly | yearly
    next_due_date: Optional[date]
    is_paid: bool = False
    is_active: bool = True
    notes: Optional[str] = None
    due_day: Optional[int] = None
    auto_pay: bool = False
    reminder_days: int = 3


@dataclass
class LoanPayment:
    """Payment entry in a loan's ledger"""

    id: Optional[str]
    loan_id: str
    amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    payment_date: date
    notes: Optional[str] = None


@dataclass
class BillSummary:
    """Aggregate figures for the bill list header"""

    active_bills: int
    inactive_bills: int
    total_monthly_amount: Decimal
    upcoming_bills: int
    overdue_bills: int
    total_bills: Optional[int] = None
    total_yearly_amount: Optional[Decimal] = None


@dataclass
class BillSections:
    """Active bills partitioned into display sections"""

    overdue: List[RecurringBill] = field(default_factory=list)
    due_this_month: List[RecurringBill] = field(default_factory=list)
    paid_this_month: List[RecurringBill] = field(default_factory=list)
    future: List[RecurringBill] = field(default_factory=list)

    def as_dict(self) -> dict[str, List[RecurringBill]]:
        return {
            "overdue": self.overdue,
            "due_this_month": self.due_this_month,
            "paid_this_month": self.paid_this_month,
            "future": self.future,
        }


@dataclass
class CompensationStep:
    """One dependent loan/savings action performed during a settlement"""

    name: str  # loan_payment_create | savings_deposit | loan_payment_delete | savings_withdraw
    target_id: str
    status: str = "pending"  # pending | succeeded | failed | skipped
    detail: Optional[str] = None
    payment_id: Optional[str] = None


@dataclass
class SettlementOutcome:
    """Result of a mark-paid / unmark-paid request"""

    bill_id: str
    action: str  # mark_paid | unmark_paid
    status: str  # settled | partial | skipped
    steps: List[CompensationStep] = field(default_factory=list)
    record_id: Optional[int] = None
    failures: List[CompensationFailed] = field(default_factory=list)

    @property
    def failed_steps(self) -> List[CompensationStep]:
        return [s for s in self.steps if s.status == "failed"]

    def toast(self) -> tuple[str, str]:
        """Map the outcome to a (level, message) pair for UI notification"""
        if self.status == "skipped":
            return "info", "Nothing to do, the bill is already in that state"
        if self.status == "partial":
            if self.action == "mark_paid":
                return "warning", "Bill marked as paid, but linked loan or savings could not be updated"
            return "error", "Bill marked as unpaid, but linked loan or savings could not be reverted"
        if self.action == "mark_paid":
            return "success", "Bill marked as paid"
        return "success", "Bill marked as unpaid"
