"""
Mappers to convert between DB models and API models
DB (SQLAlchemy) → API (Pydantic)
"""
from agentledger.api.models.api_models import Transaction, WebhookSubscription
from agentledger.database.models.transaction import DBTransaction
from agentledger.database.models.webhook import DBWebhookSubscription


def map_transaction_to_api(db_txn: DBTransaction) -> Transaction:
    """
    Convert DBTransaction (SQLAlchemy) → Transaction (Pydantic)
    """
    return Transaction(
        id=db_txn.id,
        agent_id=db_txn.agent_id,
        amount=db_txn.amount,
        kind=db_txn.kind,
        status=db_txn.status,
        standard_commission=db_txn.standard_commission,
        agent_markup=db_txn.agent_markup,
        customer_phone=db_txn.customer_phone,
        notes=db_txn.notes,
        created_at=db_txn.created_at
    )


def map_subscription_to_api(
    db_sub: DBWebhookSubscription,
    include_secret: bool = False
) -> WebhookSubscription:
    """
    Convert DBWebhookSubscription → WebhookSubscription
    The signing secret is left out unless explicitly requested
    """
    return WebhookSubscription(
        id=db_sub.id,
        agent_id=db_sub.agent_id,
        url=db_sub.url,
        events=list(db_sub.events or []),
        status=db_sub.status,
        failure_count=db_sub.failure_count,
        created_at=db_sub.created_at,
        updated_at=db_sub.updated_at,
        secret=db_sub.secret if include_secret else None
    )
