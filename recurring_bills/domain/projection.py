"""Projection engine - forward simulation of bill occurrences"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List

from recurring_bills.config import settings
from recurring_bills.domain.models import RecurringBill
from recurring_bills.domain.scheduling import classify_bills
from recurring_bills.utils.date_utils import advance, end_of_month

# Normalisation factors used by the bill service's own summary
MONTHLY_FACTORS = {
    "weekly": Decimal("4.33"),
    "monthly": Decimal("1"),
    "quarterly": Decimal("1") / Decimal("3"),
    "yearly": Decimal("1") / Decimal("12"),
}
YEARLY_FACTORS = {
    "weekly": Decimal("52"),
    "monthly": Decimal("12"),
    "quarterly": Decimal("4"),
    "yearly": Decimal("1"),
}


def next_month_window(today: date) -> tuple[date, date]:
    """First and last day of the calendar month after ``today``'s month"""
    start = end_of_month(today) + timedelta(days=1)
    return start, end_of_month(start)


def occurrences_between(
    bill: RecurringBill,
    start: date,
    end: date,
    max_iterations: int | None = None,
) -> List[date]:
    """
    Occurrence dates of a bill that fall within [start, end].

    Walks forward from ``next_due_date`` by the bill's period while the
    cursor is on or before ``end``. The walk is capped at ``max_iterations``
    steps so a weekly bill far in the past cannot loop for long.
    """
    if bill.next_due_date is None or bill.next_due_date > end:
        return []

    limit = max_iterations if max_iterations is not None else settings.projection_max_iterations
    dates = []
    cursor = bill.next_due_date
    step = 0
    while cursor <= end and step < limit:
        if cursor >= start:
            dates.append(cursor)
        step += 1
        cursor = advance(bill.next_due_date, bill.frequency, step)
    return dates


def next_month_contribution(bill: RecurringBill, today: date) -> Decimal:
    """Amount a single active bill adds to next month's obligations"""
    if not bill.is_active:
        return Decimal("0")
    month_start, month_end = next_month_window(today)
    return bill.amount * len(occurrences_between(bill, month_start, month_end))


def project_next_month_total(bills: Iterable[RecurringBill], today: date) -> Decimal:
    """Estimated total due in the calendar month following ``today``"""
    return sum((next_month_contribution(b, today) for b in bills), Decimal("0"))


def current_month_unpaid_amount(bills: Iterable[RecurringBill], today: date) -> Decimal:
    """Sum of overdue and due-this-month bills, using the display classification"""
    sections = classify_bills(bills, today)
    return sum(
        (b.amount for b in sections.overdue + sections.due_this_month),
        Decimal("0"),
    )


def monthly_equivalent(bill: RecurringBill) -> Decimal:
    return bill.amount * MONTHLY_FACTORS.get(bill.frequency, Decimal("1"))


def total_monthly_amount(bills: Iterable[RecurringBill]) -> Decimal:
    """Monthly-normalised total over active bills, rounded to cents"""
    total = sum((monthly_equivalent(b) for b in bills if b.is_active), Decimal("0"))
    return total.quantize(Decimal("0.01"))


def total_yearly_amount(bills: Iterable[RecurringBill]) -> Decimal:
    """Yearly-normalised total over active bills"""
    return sum(
        (b.amount * YEARLY_FACTORS.get(b.frequency, Decimal("12")) for b in bills if b.is_active),
        Decimal("0"),
    )
