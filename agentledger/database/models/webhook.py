"""
SQLAlchemy model for agent webhook subscriptions
"""
from sqlalchemy import JSON, Column, Integer, String, DateTime, Text

from agentledger.constants import SUBSCRIPTION_ACTIVE
from agentledger.database.models.transaction import utcnow
from agentledger.database.postgres_client import Base


class DBWebhookSubscription(Base):
    """Webhook subscription model"""
    __tablename__ = "webhook_subscriptions"

    id = Column(String(36), primary_key=True)
    agent_id = Column(String(36), nullable=False, index=True)
    url = Column(Text, nullable=False)
    events = Column(JSON, nullable=False, default=list)

    # active -> inactive only; re-subscribing creates a new row
    status = Column(String(10), nullable=False, default=SUBSCRIPTION_ACTIVE, index=True)
    secret = Column(String(64), nullable=False)
    failure_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
