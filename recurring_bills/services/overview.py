"""Bill overview - sections and totals the UI renders for the recurring bill screen"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from recurring_bills.domain.models import BillSummary, RecurringBill
from recurring_bills.domain.projection import (
    current_month_unpaid_amount,
    project_next_month_total,
    total_monthly_amount,
    total_yearly_amount,
)
from recurring_bills.domain.scheduling import classify_bills, days_until, due_label, is_overdue, upcoming_bills


@dataclass
class BillView:
    """A bill with its display hints"""

    bill: RecurringBill
    days_until: Optional[int]
    label: Optional[str]


@dataclass
class BillOverview:
    sections: Dict[str, List[BillView]]
    current_month_unpaid: Decimal
    next_month_projection: Decimal
    summary: BillSummary
    upcoming: List[BillView] = field(default_factory=list)
    summary_source: str = "remote"  # remote | local
    settling: List[str] = field(default_factory=list)


def local_summary(bills: Iterable[RecurringBill], today: date) -> BillSummary:
    """Summary figures computed from the bill list, mirroring the bill service's own"""
    bills = list(bills)
    active = [b for b in bills if b.is_active]
    horizon = today + timedelta(days=7)
    return BillSummary(
        active_bills=len(active),
        inactive_bills=len(bills) - len(active),
        total_monthly_amount=total_monthly_amount(active),
        upcoming_bills=sum(1 for b in active if b.next_due_date is not None and b.next_due_date <= horizon),
        overdue_bills=sum(1 for b in active if b.next_due_date is not None and is_overdue(b.next_due_date, today)),
        total_bills=len(bills),
        total_yearly_amount=total_yearly_amount(active),
    )


def _view(bill: RecurringBill, today: date) -> BillView:
    if bill.next_due_date is None:
        return BillView(bill=bill, days_until=None, label=None)
    return BillView(
        bill=bill,
        days_until=days_until(bill.next_due_date, today),
        label=due_label(bill.next_due_date, today),
    )


def build_overview(
    bills: Iterable[RecurringBill],
    today: date,
    summary: Optional[BillSummary] = None,
) -> BillOverview:
    """Classify, project and summarise the bill list for display, with the due-soon list"""
    bills = list(bills)
    sections = classify_bills(bills, today)
    return BillOverview(
        sections={
            name: [_view(b, today) for b in members]
            for name, members in sections.as_dict().items()
        },
        current_month_unpaid=current_month_unpaid_amount(bills, today),
        next_month_projection=project_next_month_total(bills, today),
        summary=summary if summary is not None else local_summary(bills, today),
        upcoming=[_view(b, today) for b in upcoming_bills(bills, today)],
        summary_source="remote" if summary is not None else "local",
    )
