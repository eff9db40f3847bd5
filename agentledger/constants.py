"""
Shared constants across the ledger core
"""
from decimal import Decimal

# Transaction kinds
CASHOUT = "cashout"
DEPOSIT = "deposit"
TRANSACTION_KINDS = (CASHOUT, DEPOSIT)

# Transaction status
STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"

# Commission rates per kind
COMMISSION_RATES = {
    CASHOUT: Decimal("0.005"),
    DEPOSIT: Decimal("0.003"),
}

# Agent markup cap, as a fraction of the amount
MAX_MARKUP_RATE = Decimal("0.05")

# Aggregation scopes
SCOPE_AGENT = "agent"
SCOPE_REGION = "region"

# Read-through TTL for aggregates (seconds)
DEFAULT_CACHE_TTL_SECONDS = 300

# Daily trends window on agent performance
DAILY_TRENDS_DAYS = 30

# Top agents listed on region performance
TOP_AGENTS_LIMIT = 5

# Anomaly detection
DEFAULT_ANOMALY_THRESHOLD = 2.0
ANOMALY_WINDOW_DAYS = 7
MIN_DAYS_FOR_BASELINE = 2

# Webhooks
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_INACTIVE = "inactive"
WEBHOOK_MAX_FAILURES = 3
SIGNATURE_HEADER = "X-Webhook-Signature"
SUSPICIOUS_ACTIVITY_EVENT = "agent.suspicious_activity"

# Events a subscription can filter on; the append-only ledger emits only
# transaction.created and agent.suspicious_activity
TRANSACTION_CREATED = "transaction.created"
TRANSACTION_UPDATED = "transaction.updated"
TRANSACTION_FAILED = "transaction.failed"
WEBHOOK_EVENTS = (TRANSACTION_CREATED, TRANSACTION_UPDATED, TRANSACTION_FAILED, SUSPICIOUS_ACTIVITY_EVENT)

# Nigerian mobile numbers
PHONE_PATTERN = r"^(\+234|0)[789][01]\d{8}$"
