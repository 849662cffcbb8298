"""Unit tests for due-date classification"""

from datetime import date, timedelta
from decimal import Decimal

from recurring_bills.domain.models import FREQUENCIES
from recurring_bills.domain.scheduling import (
    classify_bills,
    days_until,
    due_label,
    is_overdue,
    section_of,
    upcoming_bills,
)


def test_is_overdue_is_strictly_before_today(today):
    assert is_overdue(today - timedelta(days=1), today)
    assert not is_overdue(today, today)


def test_due_this_month_scenario(make_bill, today):
    """Monthly bill of 50 due on the 20th, evaluated on the 10th"""
    bill = make_bill(amount=Decimal("50"), next_due_date=date(2024, 1, 20))

    sections = classify_bills([bill], today)

    assert sections.due_this_month == [bill]
    assert days_until(bill.next_due_date, today) == 10
    assert due_label(bill.next_due_date, today) is None  # beyond a week, no label


def test_earlier_date_same_month_is_overdue(make_bill, today):
    bill = make_bill(next_due_date=date(2024, 1, 5))

    sections = classify_bills([bill], today)

    assert sections.overdue == [bill]
    assert sections.due_this_month == []
    assert days_until(bill.next_due_date, today) == -5


def test_due_labels(today):
    assert due_label(today, today) == "today"
    assert due_label(today + timedelta(days=1), today) == "tomorrow"
    assert due_label(today + timedelta(days=7), today) == "7 days"
    assert due_label(today + timedelta(days=8), today) is None
    assert due_label(today - timedelta(days=3), today) == "3 days overdue"
    assert due_label(None, today) is None


def test_paid_this_month_window_for_rolling_frequencies(make_bill, today):
    monthly = make_bill(id="m", frequency="monthly", next_due_date=date(2024, 2, 10))
    weekly = make_bill(id="w", frequency="weekly", next_due_date=date(2024, 2, 29))
    past_window = make_bill(id="late", frequency="monthly", next_due_date=date(2024, 3, 1))

    sections = classify_bills([monthly, weekly, past_window], today)

    assert sections.paid_this_month == [monthly, weekly]
    assert sections.future == [past_window]


def test_quarterly_and_yearly_never_count_as_paid_this_month(make_bill, today):
    quarterly = make_bill(id="q", frequency="quarterly", next_due_date=date(2024, 2, 10))
    yearly = make_bill(id="y", frequency="yearly", next_due_date=date(2024, 2, 1))

    sections = classify_bills([quarterly, yearly], today)

    assert sections.paid_this_month == []
    assert sections.future == [quarterly, yearly]


def test_inactive_bills_are_excluded(make_bill, today):
    inactive = make_bill(is_active=False, next_due_date=date(2024, 1, 1))

    sections = classify_bills([inactive], today)

    assert all(members == [] for members in sections.as_dict().values())


def test_bill_without_due_date_is_future(make_bill, today):
    bill = make_bill(next_due_date=None)
    assert section_of(bill, today) == "future"


def test_sections_partition_active_bills(make_bill, today):
    """Every active bill lands in exactly one section; overdue bills only in overdue"""
    bills = []
    for offset in range(-45, 90, 3):
        for frequency in FREQUENCIES:
            for active in (True, False):
                bills.append(
                    make_bill(
                        id=f"{frequency}-{offset}-{active}",
                        frequency=frequency,
                        next_due_date=today + timedelta(days=offset),
                        is_active=active,
                    )
                )

    sections = classify_bills(bills, today)
    placed = [b.id for members in sections.as_dict().values() for b in members]

    active_ids = {b.id for b in bills if b.is_active}
    assert len(placed) == len(set(placed))
    assert set(placed) == active_ids
    for bill in bills:
        if bill.is_active and bill.next_due_date < today:
            assert bill in sections.overdue
            assert bill not in sections.due_this_month + sections.paid_this_month + sections.future


def test_upcoming_bills_within_a_week(make_bill, today):
    soon = make_bill(id="soon", next_due_date=today + timedelta(days=2))
    edge = make_bill(id="edge", next_due_date=today + timedelta(days=7))
    later = make_bill(id="later", next_due_date=today + timedelta(days=8))
    overdue = make_bill(id="overdue", next_due_date=today - timedelta(days=1))

    assert upcoming_bills([later, edge, overdue, soon], today) == [soon, edge]
