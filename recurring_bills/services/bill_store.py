"""In-memory bill list shared by refresh, optimistic updates and rollback"""

from dataclasses import replace
from typing import Iterable, Optional, Tuple

from recurring_bills.domain.models import RecurringBill


class BillStore:
    """
    Holds the current bill list as an immutable tuple.

    Every mutation swaps in a whole new tuple, so a reader holding the
    previous snapshot never sees a half-applied change, and rollback is a
    plain reassignment of the saved snapshot.
    """

    def __init__(self, bills: Iterable[RecurringBill] = ()):
        self._bills: Tuple[RecurringBill, ...] = tuple(bills)

    @property
    def bills(self) -> Tuple[RecurringBill, ...]:
        return self._bills

    def snapshot(self) -> Tuple[RecurringBill, ...]:
        return self._bills

    def replace_all(self, bills: Iterable[RecurringBill]) -> None:
        self._bills = tuple(bills)

    def restore(self, snapshot: Tuple[RecurringBill, ...]) -> None:
        self._bills = snapshot

    def restore_entry(self, bill_id: str, previous: Optional[RecurringBill]) -> None:
        """Put back one bill's earlier copy, leaving every other entry as it is now.

        ``previous=None`` drops the entry, undoing an append.
        """
        if previous is None:
            self._bills = tuple(b for b in self._bills if b.id != bill_id)
        elif self.get(bill_id) is None:
            self._bills = self._bills + (previous,)
        else:
            self._bills = tuple(previous if b.id == bill_id else b for b in self._bills)

    def get(self, bill_id: str) -> Optional[RecurringBill]:
        for bill in self._bills:
            if bill.id == bill_id:
                return bill
        return None

    def set_paid(self, bill: RecurringBill, is_paid: bool) -> None:
        """Replace the bill's entry with a copy carrying ``is_paid``; appends unknown bills"""
        updated = replace(self.get(bill.id) or bill, is_paid=is_paid)
        if self.get(bill.id) is None:
            self._bills = self._bills + (updated,)
            return
        self._bills = tuple(updated if b.id == bill.id else b for b in self._bills)
