"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from recurring_bills.domain.models import BillSummary, SettlementOutcome
from recurring_bills.services.overview import BillOverview, BillView


class BillSchema(BaseModel):
    """Bill as rendered in a section, with its due hint"""

    id: str
    name: str
    amount: Decimal
    category: str
    frequency: str
    next_due_date: Optional[date] = None
    is_paid: bool
    is_active: bool
    notes: Optional[str] = None
    days_until: Optional[int] = None
    label: Optional[str] = None

    @classmethod
    def from_view(cls, view: BillView) -> "BillSchema":
        bill = view.bill
        return cls(
            id=bill.id,
            name=bill.name,
            amount=bill.amount,
            category=bill.category,
            frequency=bill.frequency,
            next_due_date=bill.next_due_date,
            is_paid=bill.is_paid,
            is_active=bill.is_active,
            notes=bill.notes,
            days_until=view.days_until,
            label=view.label,
        )


class SummarySchema(BaseModel):
    active_bills: int
    inactive_bills: int
    total_monthly_amount: Decimal
    upcoming_bills: int
    overdue_bills: int
    total_bills: Optional[int] = None
    total_yearly_amount: Optional[Decimal] = None

    @classmethod
    def from_summary(cls, summary: BillSummary) -> "SummarySchema":
        return cls(**summary.__dict__)


class OverviewResponse(BaseModel):
    """Response for GET /v1/bills/overview"""

    sections: Dict[str, List[BillSchema]]
    current_month_unpaid: Decimal
    next_month_projection: Decimal
    summary: SummarySchema
    upcoming: List[BillSchema] = []
    summary_source: str
    settling: List[str] = []

    @classmethod
    def from_overview(cls, overview: BillOverview) -> "OverviewResponse":
        return cls(
            sections={
                name: [BillSchema.from_view(v) for v in views]
                for name, views in overview.sections.items()
            },
            current_month_unpaid=overview.current_month_unpaid,
            next_month_projection=overview.next_month_projection,
            summary=SummarySchema.from_summary(overview.summary),
            upcoming=[BillSchema.from_view(v) for v in overview.upcoming],
            summary_source=overview.summary_source,
            settling=overview.settling,
        )


class UnmarkRequest(BaseModel):
    """Request body for POST /v1/bills/{bill_id}/unmark-paid"""

    confirmed: bool = Field(False, description="User confirmed reverting the payment")


class StepSchema(BaseModel):
    name: str
    target_id: str
    status: str
    detail: Optional[str] = None
    payment_id: Optional[str] = None


class ToastSchema(BaseModel):
    level: str  # success | info | warning | error
    message: str


class SettlementResponse(BaseModel):
    """Response for settlement endpoints"""

    bill_id: str
    action: str
    status: str
    steps: List[StepSchema]
    toast: ToastSchema
    warnings: List[str] = []
    record_id: Optional[int] = None

    @classmethod
    def from_outcome(cls, outcome: SettlementOutcome) -> "SettlementResponse":
        level, message = outcome.toast()
        return cls(
            bill_id=outcome.bill_id,
            action=outcome.action,
            status=outcome.status,
            steps=[StepSchema(**s.__dict__) for s in outcome.steps],
            toast=ToastSchema(level=level, message=message),
            warnings=[str(f) for f in outcome.failures],
            record_id=outcome.record_id,
        )
