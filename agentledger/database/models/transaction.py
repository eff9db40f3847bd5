"""
SQLAlchemy model for the transactions ledger
Rows are append-only; financial fields are never updated in place
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Numeric, DateTime, Text, Index, CheckConstraint

from agentledger.constants import STATUS_SUCCESS
from agentledger.database.postgres_client import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBTransaction(Base):
    """Ledger transaction model"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    agent_id = Column(String(36), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    kind = Column(String(10), nullable=False)
    status = Column(String(10), nullable=False, default=STATUS_SUCCESS)

    # Exact product of amount x rate, no rounding
    standard_commission = Column(Numeric(20, 6), nullable=False)
    agent_markup = Column(Numeric(15, 2), nullable=False, default=0)

    customer_phone = Column(String(20))
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_transactions_agent_created", "agent_id", "created_at"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint("agent_markup >= 0", name="ck_transactions_markup_non_negative"),
        CheckConstraint("kind IN ('cashout', 'deposit')", name="ck_transactions_kind"),
        CheckConstraint("status IN ('success', 'failure')", name="ck_transactions_status"),
    )
