"""
Agents reference table (read-only for the ledger core)
Used to resolve an agent's region for invalidation and region aggregates
"""
from sqlalchemy import Column, String, DateTime

from agentledger.database.models.transaction import utcnow
from agentledger.database.postgres_client import Base


class DBAgent(Base):
    __tablename__ = "agents"

    agent_id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    region_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
