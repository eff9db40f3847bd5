"""
Webhook routes - agent-owned subscriptions
"""
from typing import List

from fastapi import APIRouter, Depends, Response

from agentledger.api.models.api_models import SubscribeRequest, UpdateSubscriptionRequest, WebhookSubscription
from agentledger.routes.dependencies import get_principal, get_webhook_service
from agentledger.services.webhook_service import WebhookService

webhooks_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhooks_router.post("", response_model=WebhookSubscription, status_code=201)
async def subscribe(
    request: SubscribeRequest,
    principal: str = Depends(get_principal),
    service: WebhookService = Depends(get_webhook_service)
):
    """Create a subscription; the response carries the signing secret once"""
    return await service.subscribe(principal, request.url, request.events)


@webhooks_router.get("", response_model=List[WebhookSubscription])
async def list_subscriptions(
    principal: str = Depends(get_principal),
    service: WebhookService = Depends(get_webhook_service)
):
    return await service.list_subscriptions(principal)


@webhooks_router.put("/{subscription_id}", response_model=WebhookSubscription)
async def update(
    subscription_id: str,
    request: UpdateSubscriptionRequest,
    principal: str = Depends(get_principal),
    service: WebhookService = Depends(get_webhook_service)
):
    """Partial update of url, events or status (active -> inactive only)"""
    return await service.update(
        principal, subscription_id, url=request.url, status=request.status, events=request.events
    )


@webhooks_router.post("/{subscription_id}/deactivate", response_model=WebhookSubscription)
async def deactivate(
    subscription_id: str,
    principal: str = Depends(get_principal),
    service: WebhookService = Depends(get_webhook_service)
):
    return await service.deactivate(principal, subscription_id)


@webhooks_router.delete("/{subscription_id}", status_code=204)
async def delete(
    subscription_id: str,
    principal: str = Depends(get_principal),
    service: WebhookService = Depends(get_webhook_service)
):
    await service.delete(principal, subscription_id)
    return Response(status_code=204)
