"""Settlement coordinator - mark/unmark a bill paid and propagate to linked loan/savings"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from recurring_bills.config import settings
from recurring_bills.domain.exceptions import (
    BillNotFound,
    CompensationFailed,
    NetworkFailure,
    ServerRejected,
    SettlementInProgress,
)
from recurring_bills.domain.models import CompensationStep, LoanPayment, RecurringBill, SettlementOutcome
from recurring_bills.domain.reference_tags import extract_loan_ref, extract_savings_ref
from recurring_bills.infrastructure.clients.bills import BillClient
from recurring_bills.infrastructure.clients.loans import LoanPaymentClient
from recurring_bills.infrastructure.clients.savings import SavingsGoalClient
from recurring_bills.infrastructure.database.repositories import SettlementRepository, steps_from_json
from recurring_bills.infrastructure.observability.logging import log_settlement
from recurring_bills.infrastructure.observability.metrics import primary_latency_histogram, record_settlement
from recurring_bills.services.bill_store import BillStore

logger = logging.getLogger(__name__)

MARK_PAID = "mark_paid"
UNMARK_PAID = "unmark_paid"


class SettlementCoordinator:
    """
    Runs the settlement protocol for recurring bills.

    State machine per bill: Unpaid -> mark_paid -> Paid -> unmark_paid -> Unpaid.
    A request that would not change the state is a no-op.

    Ordering:
    1. The bill service mutation (authoritative for next_due_date) completes
       or fails before any loan/savings action starts.
    2. Loan/savings actions are best-effort compensations: each failure is
       logged and reported in the outcome, never rolled back.

    mark_paid flips is_paid locally before the network call. On failure, timeout
    or cancellation the saved list is restored verbatim when nothing else has
    replaced it meanwhile; otherwise only this bill's entry is put back.

    Journal errors are logged and never fail a settlement whose primary call
    has committed.
    """

    def __init__(
        self,
        bill_client: BillClient,
        loan_client: LoanPaymentClient,
        savings_client: SavingsGoalClient,
        store: BillStore | None = None,
        journal: sessionmaker | None = None,
        clock: Callable[[], date] = date.today,
        timeout: float | None = None,
    ):
        self.bill_client = bill_client
        self.loan_client = loan_client
        self.savings_client = savings_client
        self.store = store or BillStore()
        self.journal = journal
        self.clock = clock
        self.timeout = timeout if timeout is not None else settings.settlement_timeout_seconds
        self._in_flight: set[str] = set()

    async def refresh(self) -> tuple[RecurringBill, ...]:
        """Re-fetch the bill list and swap it in"""
        bills = await self.bill_client.get_all()
        self.store.replace_all(bills)
        return self.store.bills

    def is_settling(self, bill_id: str) -> bool:
        return bill_id in self._in_flight

    @asynccontextmanager
    async def _exclusive(self, bill_id: str):
        if bill_id in self._in_flight:
            raise SettlementInProgress(f"Settlement already running for bill {bill_id}")
        self._in_flight.add(bill_id)
        try:
            yield
        finally:
            self._in_flight.discard(bill_id)

    async def _bounded(self, call: Awaitable):
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise NetworkFailure(f"No response within {self.timeout}s") from e

    # ------------------------------------------------------------------
    # Mark paid
    # ------------------------------------------------------------------

    async def mark_paid(self, bill: RecurringBill) -> SettlementOutcome:
        """
        Mark a bill paid.

        Raises:
            SettlementInProgress: another settlement for this bill is running
            NetworkFailure, ServerRejected: bill service call failed (local state restored)
        """
        async with self._exclusive(bill.id):
            previous = self.store.get(bill.id)
            current = previous or bill
            if current.is_paid:
                return self._skipped(current.id, MARK_PAID)

            start_time = time.time()
            snapshot = self.store.snapshot()
            self.store.set_paid(current, True)
            optimistic = self.store.snapshot()

            await self._primary(
                self.bill_client.mark_paid,
                current.id,
                MARK_PAID,
                rollback=lambda: self._rollback(snapshot, optimistic, current.id, previous),
            )

            steps = []
            loan_id = extract_loan_ref(current.notes)
            if loan_id:
                steps.append(CompensationStep(name="loan_payment_create", target_id=loan_id))
            goal_id = extract_savings_ref(current.notes)
            if goal_id:
                steps.append(CompensationStep(name="savings_deposit", target_id=goal_id))

            failures = await self._run_steps(steps, current.amount, current.name)
            outcome = self._finish(current.id, MARK_PAID, steps, start_time, failures)
            outcome.record_id = self._journal_record(outcome, current.amount, loan_id, goal_id)
            return outcome

    # ------------------------------------------------------------------
    # Unmark paid
    # ------------------------------------------------------------------

    async def unmark_paid(self, bill: RecurringBill) -> SettlementOutcome:
        """
        Revert a bill to unpaid. Callers must obtain user confirmation first.

        Raises:
            SettlementInProgress: another settlement for this bill is running
            NetworkFailure, ServerRejected: bill service call failed
        """
        async with self._exclusive(bill.id):
            current = self.store.get(bill.id) or bill
            if not current.is_paid:
                return self._skipped(current.id, UNMARK_PAID)

            start_time = time.time()
            await self._primary(self.bill_client.unmark_paid, current.id, UNMARK_PAID)
            self.store.set_paid(current, False)

            open_mark = self._open_mark(current.id)
            steps = []
            loan_id = extract_loan_ref(current.notes)
            if loan_id:
                step = CompensationStep(name="loan_payment_delete", target_id=loan_id)
                if open_mark is not None and open_mark.loan_id == loan_id:
                    step.payment_id = open_mark.loan_payment_id
                steps.append(step)
            goal_id = extract_savings_ref(current.notes)
            if goal_id:
                steps.append(CompensationStep(name="savings_withdraw", target_id=goal_id))

            failures = await self._run_steps(steps, current.amount, current.name)
            outcome = self._finish(current.id, UNMARK_PAID, steps, start_time, failures)
            if open_mark is not None:
                self._close_mark(open_mark.id)
            outcome.record_id = self._journal_record(outcome, current.amount, loan_id, goal_id)
            return outcome

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    async def retry_compensations(self, bill_id: str) -> SettlementOutcome:
        """
        Re-run the failed steps of the latest journalled settlement for a bill.

        Raises:
            BillNotFound: no journal configured or nothing recorded for the bill
        """
        if self.journal is None:
            raise BillNotFound(f"No settlement journal to retry bill {bill_id}")

        async with self._exclusive(bill_id):
            with self.journal() as db:
                record = SettlementRepository(db).latest_for_bill(bill_id)
                if record is None:
                    raise BillNotFound(f"No settlement recorded for bill {bill_id}")
                record_id, action, amount = record.id, record.action, Decimal(str(record.amount))
                steps = steps_from_json(record.steps)

            if not any(s.status == "failed" for s in steps):
                return self._skipped(bill_id, action)

            start_time = time.time()
            cached = self.store.get(bill_id)
            failed = [s for s in steps if s.status == "failed"]
            failures = await self._run_steps(failed, amount, cached.name if cached else "")
            outcome = self._finish(bill_id, action, steps, start_time, failures)
            outcome.record_id = record_id

            with self.journal() as db:
                repo = SettlementRepository(db)
                repo.update_steps(repo.get_record(record_id), steps, outcome.status)
            return outcome

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _primary(
        self,
        call: Callable[[str], Awaitable],
        bill_id: str,
        action: str,
        rollback: Optional[Callable[[], None]] = None,
    ) -> None:
        try:
            with primary_latency_histogram.time():
                await self._bounded(call(bill_id))
        except (NetworkFailure, ServerRejected) as e:
            if rollback is not None:
                rollback()
            outcome = "rejected" if isinstance(e, ServerRejected) else "failed"
            record_settlement(action, outcome)
            logger.error(f"{action} failed for bill {bill_id}: {e}", extra={"bill_id": bill_id})
            raise
        except asyncio.CancelledError:
            if rollback is not None:
                rollback()
            record_settlement(action, "cancelled")
            raise

    def _rollback(
        self,
        snapshot: Tuple[RecurringBill, ...],
        optimistic: Tuple[RecurringBill, ...],
        bill_id: str,
        previous: Optional[RecurringBill],
    ) -> None:
        # Another settlement or a refresh swapped the list in the meantime; keep its entries.
        if self.store.bills is optimistic:
            self.store.restore(snapshot)
        else:
            self.store.restore_entry(bill_id, previous)

    async def _run_steps(
        self, steps: List[CompensationStep], amount: Decimal, bill_name: str
    ) -> List[CompensationFailed]:
        failures = []
        for step in steps:
            try:
                await self._bounded(self._execute(step, amount, bill_name))
            except (NetworkFailure, ServerRejected) as e:
                failure = CompensationFailed(step.name, str(e))
                step.status = "failed"
                step.detail = failure.reason
                failures.append(failure)
                logger.warning(str(failure), extra={"step": step.name, "target_id": step.target_id})
                continue
            if step.status != "skipped":
                step.status = "succeeded"
                step.detail = None
        return failures

    async def _execute(self, step: CompensationStep, amount: Decimal, bill_name: str) -> None:
        today = self.clock()
        if step.name == "loan_payment_create":
            payment = await self.loan_client.create(
                LoanPayment(
                    id=None,
                    loan_id=step.target_id,
                    amount=amount,
                    principal_amount=amount,
                    interest_amount=Decimal("0"),
                    payment_date=today,
                    notes=f"{settings.auto_payment_marker} from recurring bill: {bill_name}",
                )
            )
            step.payment_id = payment.id
        elif step.name == "savings_deposit":
            await self.savings_client.add_deposit(step.target_id, amount)
        elif step.name == "loan_payment_delete":
            payment_id = step.payment_id or await self._find_auto_payment(step.target_id, amount, today)
            if payment_id is None:
                step.status = "skipped"
                step.detail = "No matching auto-payment found"
                return
            step.payment_id = payment_id
            await self.loan_client.delete(payment_id)
        elif step.name == "savings_withdraw":
            await self.savings_client.withdraw(step.target_id, amount)
        else:
            raise ValueError(f"Unknown compensation step: {step.name}")

    async def _find_auto_payment(self, loan_id: str, amount: Decimal, today: date) -> Optional[str]:
        """Latest auto-payment on the loan dated today whose amount matches within tolerance"""
        payments = await self.loan_client.get_by_loan(loan_id)
        matches = [
            p for p in payments
            if p.id is not None
            and p.payment_date == today
            and abs(p.amount - amount) <= settings.amount_match_tolerance
            and settings.auto_payment_marker in (p.notes or "")
        ]
        return matches[-1].id if matches else None

    def _finish(
        self,
        bill_id: str,
        action: str,
        steps: List[CompensationStep],
        start_time: float,
        failures: List[CompensationFailed],
    ) -> SettlementOutcome:
        failed = [s.name for s in steps if s.status == "failed"]
        outcome = SettlementOutcome(
            bill_id=bill_id,
            action=action,
            status="partial" if failed else "settled",
            steps=steps,
            failures=failures,
        )
        duration_ms = (time.time() - start_time) * 1000
        record_settlement(action, outcome.status, failed)
        log_settlement(bill_id, action, outcome.status, failed, duration_ms)
        return outcome

    def _skipped(self, bill_id: str, action: str) -> SettlementOutcome:
        record_settlement(action, "skipped")
        return SettlementOutcome(bill_id=bill_id, action=action, status="skipped")

    def _journal_record(
        self,
        outcome: SettlementOutcome,
        amount: Decimal,
        loan_id: Optional[str],
        goal_id: Optional[str],
    ) -> Optional[int]:
        if self.journal is None:
            return None
        try:
            with self.journal() as db:
                record = SettlementRepository(db).create_record(outcome, amount, loan_id, goal_id)
                return record.id
        except SQLAlchemyError as e:
            logger.warning(f"Settlement journal write failed: {e}", extra={"bill_id": outcome.bill_id})
            return None

    def _open_mark(self, bill_id: str):
        """Latest unreversed mark for the bill, or None (unmark then falls back to matching)"""
        if self.journal is None:
            return None
        try:
            with self.journal() as db:
                record = SettlementRepository(db).latest_open_mark(bill_id)
                if record is not None:
                    db.expunge(record)
                return record
        except SQLAlchemyError as e:
            logger.warning(f"Settlement journal read failed: {e}", extra={"bill_id": bill_id})
            return None

    def _close_mark(self, record_id: int) -> None:
        try:
            with self.journal() as db:
                repo = SettlementRepository(db)
                repo.mark_reversed(repo.get_record(record_id))
        except SQLAlchemyError as e:
            logger.warning(f"Settlement journal update failed: {e}", extra={"record_id": record_id})
