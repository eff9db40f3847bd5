"""
Ledger store tables

- DBTransaction (transactions)
- DBAgent (agents, read-only reference)
- DBWebhookSubscription (webhook_subscriptions)
"""
from .agent import DBAgent
from .transaction import DBTransaction
from .webhook import DBWebhookSubscription

__all__ = [
    "DBAgent",
    "DBTransaction",
    "DBWebhookSubscription",
]
