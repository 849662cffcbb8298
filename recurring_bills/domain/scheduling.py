"""Due-date scheduling - classifies active bills into display sections"""

from datetime import date
from typing import Iterable, List, Optional

from recurring_bills.domain.models import BillSections, RecurringBill
from recurring_bills.utils.date_utils import add_months, end_of_month

# Only these frequencies roll into next month when paid; quarterly/yearly jump further.
ROLLING_FREQUENCIES = ("weekly", "monthly")
LABEL_HORIZON_DAYS = 7


def is_overdue(due_date: date, today: date) -> bool:
    """Due date lies strictly before the start of today"""
    return due_date < today


def days_until(due_date: date, today: date) -> int:
    """Whole days from today to the due date; negative when overdue"""
    return (due_date - today).days


def due_label(due_date: Optional[date], today: date) -> Optional[str]:
    """
    Short label for a bill card.

    Returns "today", "tomorrow", "N days" up to a week out, "N days overdue"
    for past dates, and None beyond a week or when the due date is unknown.
    """
    if due_date is None:
        return None
    days = days_until(due_date, today)
    if days < 0:
        return f"{-days} days overdue"
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days <= LABEL_HORIZON_DAYS:
        return f"{days} days"
    return None


def _is_due_this_month(due_date: date, today: date) -> bool:
    return (
        due_date.year == today.year
        and due_date.month == today.month
        and not is_overdue(due_date, today)
    )


def _looks_paid_this_month(bill: RecurringBill, today: date) -> bool:
    # Proxy for "server already advanced the due date past this month"; not a payment record.
    if bill.frequency not in ROLLING_FREQUENCIES:
        return False
    month_end = end_of_month(today)
    return month_end < bill.next_due_date <= add_months(month_end, 1)


def section_of(bill: RecurringBill, today: date) -> str:
    """Name of the first section the bill matches"""
    due = bill.next_due_date
    if due is None:
        return "future"
    if is_overdue(due, today):
        return "overdue"
    if _is_due_this_month(due, today):
        return "due_this_month"
    if _looks_paid_this_month(bill, today):
        return "paid_this_month"
    return "future"


def classify_bills(bills: Iterable[RecurringBill], today: date) -> BillSections:
    """
    Partition active bills into overdue / due this month / paid this month / future.

    Inactive bills are dropped. Membership is tested in that order and a bill
    lands in the first section it matches, so the partition is total and
    disjoint over the active set.
    """
    sections = BillSections()
    buckets = sections.as_dict()
    for bill in bills:
        if not bill.is_active:
            continue
        buckets[section_of(bill, today)].append(bill)
    return sections


def upcoming_bills(bills: Iterable[RecurringBill], today: date, days: int = LABEL_HORIZON_DAYS) -> List[RecurringBill]:
    """Active bills due within the next ``days`` days (not overdue), soonest first"""
    upcoming = [
        b for b in bills
        if b.is_active
        and b.next_due_date is not None
        and 0 <= days_until(b.next_due_date, today) <= days
    ]
    return sorted(upcoming, key=lambda b: b.next_due_date)
