"""
AgentLedger API Models

Ledger: Transaction, RecordTransactionRequest
Aggregates: AgentPerformance, RegionPerformance, DailyTrend, TopAgent
Detection: AnomalyReport
Webhooks: WebhookSubscription, SubscribeRequest, DeliverySummary
"""

from .api_models import (
    AgentPerformance,
    AnomalyReport,
    DailyTrend,
    DeliverySummary,
    HealthResponse,
    RecordTransactionRequest,
    RegionPerformance,
    SubscribeRequest,
    TopAgent,
    Transaction,
    WebhookSubscription,
)

__all__ = [
    "AgentPerformance",
    "AnomalyReport",
    "DailyTrend",
    "DeliverySummary",
    "HealthResponse",
    "RecordTransactionRequest",
    "RegionPerformance",
    "SubscribeRequest",
    "TopAgent",
    "Transaction",
    "WebhookSubscription",
]
