"""
Shared route dependencies
"""
from fastapi import Header, Request

from agentledger.container import AppContainer
from agentledger.services.transaction_service import TransactionService
from agentledger.services.webhook_service import WebhookService


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_transaction_service(request: Request) -> TransactionService:
    return get_container(request).transaction_service


def get_webhook_service(request: Request) -> WebhookService:
    return get_container(request).webhook_service


def get_principal(x_agent_id: str = Header(..., alias="X-Agent-Id")) -> str:
    """Authenticated agent id, set by the upstream identity layer"""
    return x_agent_id
