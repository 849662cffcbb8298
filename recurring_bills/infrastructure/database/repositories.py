"""Data access layer for the settlement journal"""

from dataclasses import asdict
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from recurring_bills.domain.models import CompensationStep, SettlementOutcome
from recurring_bills.infrastructure.database.models import SettlementRecord


def steps_to_json(steps: List[CompensationStep]) -> list[dict]:
    return [asdict(s) for s in steps]


def steps_from_json(data: list[dict] | None) -> List[CompensationStep]:
    return [CompensationStep(**item) for item in data or []]


class SettlementRepository:
    """Repository for settlement records"""

    def __init__(self, db: Session):
        self.db = db

    def create_record(
        self,
        outcome: SettlementOutcome,
        amount: Decimal,
        loan_id: Optional[str] = None,
        savings_goal_id: Optional[str] = None,
    ) -> SettlementRecord:
        """Persist a settlement with its compensation log"""
        payment_ids = [s.payment_id for s in outcome.steps if s.name == "loan_payment_create" and s.payment_id]
        record = SettlementRecord(
            bill_id=outcome.bill_id,
            action=outcome.action,
            status=outcome.status,
            amount=amount,
            loan_id=loan_id,
            loan_payment_id=payment_ids[0] if payment_ids else None,
            savings_goal_id=savings_goal_id,
            steps=steps_to_json(outcome.steps),
        )
        self.db.add(record)
        self.db.commit()
        return record

    def update_steps(self, record: SettlementRecord, steps: List[CompensationStep], status: str) -> SettlementRecord:
        """Replace the compensation log after a retry"""
        record.steps = steps_to_json(steps)
        record.status = status
        for step in steps:
            if step.name == "loan_payment_create" and step.payment_id:
                record.loan_payment_id = step.payment_id
        self.db.commit()
        return record

    def latest_open_mark(self, bill_id: str) -> Optional[SettlementRecord]:
        """Most recent mark-paid for a bill that has not been reversed yet"""
        return (
            self.db.query(SettlementRecord)
            .filter(
                SettlementRecord.bill_id == bill_id,
                SettlementRecord.action == "mark_paid",
                SettlementRecord.reversed.is_(False),
            )
            .order_by(SettlementRecord.id.desc())
            .first()
        )

    def mark_reversed(self, record: SettlementRecord) -> None:
        record.reversed = True
        self.db.commit()

    def get_record(self, record_id: int) -> Optional[SettlementRecord]:
        return self.db.get(SettlementRecord, record_id)

    def latest_for_bill(self, bill_id: str) -> Optional[SettlementRecord]:
        return (
            self.db.query(SettlementRecord)
            .filter(SettlementRecord.bill_id == bill_id)
            .order_by(SettlementRecord.id.desc())
            .first()
        )
