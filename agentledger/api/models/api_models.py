# agentledger/api/models/api_models.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Ledger
# ============================================================================

class Transaction(BaseModel):
    """Recorded ledger transaction (immutable)"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_id: str
    amount: Decimal
    kind: str  # cashout | deposit
    status: str  # success | failure
    standard_commission: Decimal
    agent_markup: Decimal
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class RecordTransactionRequest(BaseModel):
    """Payload of POST /transactions; the agent comes from the principal"""
    amount: Decimal
    kind: str
    agent_markup: Decimal = Decimal("0")
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


# ============================================================================
# Aggregates (cached)
# ============================================================================

class DailyTrend(BaseModel):
    """Per calendar day totals"""
    day: date
    transactions: int
    amount: Decimal
    commission: Decimal
    markup: Decimal


class AgentPerformance(BaseModel):
    agent_id: str
    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    total_amount: Decimal
    total_commission: Decimal
    total_markup: Decimal
    success_rate: float  # Percentage 0-100
    average_transaction_amount: Decimal
    daily_trends: List[DailyTrend] = []


class TopAgent(BaseModel):
    agent_id: str
    name: Optional[str] = None
    total_transactions: int
    total_amount: Decimal


class RegionPerformance(BaseModel):
    region_id: str
    agent_count: int
    total_transactions: int
    successful_transactions: int
    total_amount: Decimal
    total_commission: Decimal
    total_markup: Decimal
    success_rate: float
    average_transaction_amount: Decimal
    average_markup_per_agent: Decimal
    top_agents: List[TopAgent] = []


# ============================================================================
# Anomaly detection
# ============================================================================

class AnomalyReport(BaseModel):
    """One flag/no-flag verdict per detection run, with a reason code"""
    agent_id: str
    is_suspicious: bool
    reason: str  # insufficient_history | within_baseline | count_deviation | amount_deviation | count_and_amount_deviation
    days_observed: int


# ============================================================================
# Webhooks
# ============================================================================

class WebhookSubscription(BaseModel):
    """
    Subscription as shown to its owner
    The secret is only returned once, on subscribe
    """
    id: str
    agent_id: str
    url: str
    events: List[str]
    status: str  # active | inactive
    failure_count: int
    created_at: datetime
    updated_at: datetime
    secret: Optional[str] = None


class SubscribeRequest(BaseModel):
    url: str
    events: Optional[List[str]] = None  # omitted: every event


class UpdateSubscriptionRequest(BaseModel):
    url: Optional[str] = None
    status: Optional[str] = None
    events: Optional[List[str]] = None


class DeliverySummary(BaseModel):
    """Outcome of one notify_all fan-out"""
    attempted: int = 0
    delivered: int = 0
    failed: int = 0


# ============================================================================
# Health Check
# ============================================================================

class HealthResponse(BaseModel):
    status: str
    database: str
    redis: str
    timestamp: datetime
