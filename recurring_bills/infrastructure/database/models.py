"""SQLAlchemy ORM models for the local settlement journal"""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, Numeric, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SettlementRecord(Base):
    """
    One mark-paid / unmark-paid settlement and its compensation log.

    ``loan_payment_id`` keeps the id of the auto-payment created at mark time
    so the matching unmark can delete it directly.
    """

    __tablename__ = "settlement_record"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Text, nullable=False, index=True)
    action = Column(Text, nullable=False)  # mark_paid | unmark_paid
    status = Column(Text, nullable=False)  # settled | partial
    amount = Column(Numeric(12, 2), nullable=False)
    loan_id = Column(Text, nullable=True)
    loan_payment_id = Column(Text, nullable=True)
    savings_goal_id = Column(Text, nullable=True)
    steps = Column(JSON, nullable=False, default=list)
    reversed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
