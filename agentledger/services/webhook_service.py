"""
Webhook Service - subscriptions and signed event delivery

Envelope sent to subscribers:
    {"webhook_id": ..., "event": ..., "data": ..., "timestamp": ISO-8601}
The X-Webhook-Signature header holds the lowercase hex HMAC-SHA256 of the
exact body bytes, keyed with the subscription secret.
"""
import asyncio
import hashlib
import hmac
import json
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from agentledger.api.mappers import map_subscription_to_api
from agentledger.api.models.api_models import DeliverySummary, WebhookSubscription
from agentledger.constants import (
    SIGNATURE_HEADER,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_INACTIVE,
    WEBHOOK_EVENTS,
    WEBHOOK_MAX_FAILURES
)
from agentledger.database.models.webhook import DBWebhookSubscription
from agentledger.errors import DeliveryError, NotFoundError, StorageError, ValidationError
from agentledger.repositories.webhook_repository import WebhookRepository

logger = logging.getLogger(__name__)


def generate_webhook_secret() -> str:
    """256-bit random signing key, hex encoded"""
    return secrets.token_hex(32)


def serialize_envelope(envelope: Dict[str, Any]) -> bytes:
    """Canonical JSON: sorted keys, no whitespace"""
    return json.dumps(envelope, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def sign_payload(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_webhook_url(url: str):
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid webhook URL")


def validate_events(events: List[str]) -> List[str]:
    """Non-empty, known events only; duplicates collapse, order kept"""
    if not events:
        raise ValidationError("At least one event is required")
    unknown = [e for e in events if e not in WEBHOOK_EVENTS]
    if unknown:
        raise ValidationError(f"Invalid events: {', '.join(unknown)}. Expected any of: {', '.join(WEBHOOK_EVENTS)}")
    return list(dict.fromkeys(events))


class WebhookService:
    """Service for webhook subscriptions and fan-out"""

    def __init__(
        self,
        repository: WebhookRepository,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 5.0,
        max_failures: int = WEBHOOK_MAX_FAILURES,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repository = repository
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds
        self.max_failures = max_failures
        self.clock = clock

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def subscribe(self, agent_id: str, url: str, events: Optional[List[str]] = None) -> WebhookSubscription:
        """
        Create a new active subscription; the secret is returned only here
        Leaving events out subscribes to every event
        """
        validate_webhook_url(url)
        events = list(WEBHOOK_EVENTS) if events is None else validate_events(events)

        now = self.clock()
        subscription = DBWebhookSubscription(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            url=url,
            events=events,
            status=SUBSCRIPTION_ACTIVE,
            secret=generate_webhook_secret(),
            failure_count=0,
            created_at=now,
            updated_at=now
        )
        created = await self.repository.create(subscription)
        logger.info(f"✅ Webhook {created.id} subscribed for agent {agent_id}: {', '.join(events)}")
        return map_subscription_to_api(created, include_secret=True)

    async def list_subscriptions(self, agent_id: str) -> List[WebhookSubscription]:
        subscriptions = await self.repository.list_for_agent(agent_id)
        return [map_subscription_to_api(s) for s in subscriptions]

    async def update(
        self,
        agent_id: str,
        subscription_id: str,
        url: Optional[str] = None,
        status: Optional[str] = None,
        events: Optional[List[str]] = None
    ) -> WebhookSubscription:
        """
        Change url, events or status of an owned subscription

        Status only moves active -> inactive; an inactive subscription is
        never reactivated, the agent subscribes again instead.
        """
        if url is None and status is None and events is None:
            raise ValidationError("No valid fields to update")

        values: Dict[str, Any] = {}
        if url is not None:
            validate_webhook_url(url)
            values["url"] = url
        if events is not None:
            values["events"] = validate_events(events)
        if status is not None and status not in (SUBSCRIPTION_ACTIVE, SUBSCRIPTION_INACTIVE):
            raise ValidationError("Status must be either active or inactive")

        current = await self.repository.get(agent_id, subscription_id)
        if current is None:
            raise NotFoundError("Webhook subscription", subscription_id)
        if status == SUBSCRIPTION_ACTIVE and current.status == SUBSCRIPTION_INACTIVE:
            raise ValidationError("An inactive subscription cannot be reactivated. Subscribe again instead.")
        if status == SUBSCRIPTION_INACTIVE:
            values["status"] = SUBSCRIPTION_INACTIVE

        if not values:
            return map_subscription_to_api(current)

        updated = await self.repository.update(agent_id, subscription_id, **values)
        if updated is None:
            raise NotFoundError("Webhook subscription", subscription_id)
        logger.info(f"Webhook {subscription_id} updated by agent {agent_id}: {', '.join(sorted(values))}")
        return map_subscription_to_api(updated)

    async def deactivate(self, agent_id: str, subscription_id: str) -> WebhookSubscription:
        subscription = await self.repository.deactivate(agent_id, subscription_id)
        if subscription is None:
            raise NotFoundError("Webhook subscription", subscription_id)
        logger.info(f"Webhook {subscription_id} deactivated by agent {agent_id}")
        return map_subscription_to_api(subscription)

    async def delete(self, agent_id: str, subscription_id: str) -> None:
        if not await self.repository.delete(agent_id, subscription_id):
            raise NotFoundError("Webhook subscription", subscription_id)
        logger.info(f"Webhook {subscription_id} deleted by agent {agent_id}")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def build_envelope(self, subscription: DBWebhookSubscription, event: str, payload: Any) -> Dict[str, Any]:
        return {
            "webhook_id": subscription.id,
            "event": event,
            "data": payload,
            "timestamp": self.clock().isoformat()
        }

    async def _deliver(self, subscription: DBWebhookSubscription, event: str, payload: Any):
        body = serialize_envelope(self.build_envelope(subscription, event, payload))
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: sign_payload(body, subscription.secret)
        }

        try:
            response = await asyncio.wait_for(
                self.http_client.post(subscription.url, content=body, headers=headers, timeout=self.timeout_seconds),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise DeliveryError(f"Timed out after {self.timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Transport error: {e}") from e

        if not response.is_success:
            raise DeliveryError(f"Endpoint answered {response.status_code}", status_code=response.status_code)

    async def notify(self, subscription: DBWebhookSubscription, event: str, payload: Any) -> bool:
        """
        Deliver one event to one subscription
        Returns True on a 2xx answer; failures are counted, never raised
        """
        try:
            await self._deliver(subscription, event, payload)
        except DeliveryError as e:
            logger.warning(f"⚠️ Webhook {subscription.id} delivery failed: {e.message}")
            await self._record_failure(subscription)
            return False

        logger.info(f"📨 Webhook {subscription.id} delivered: {event}")
        if subscription.failure_count:
            await self._record_success(subscription)
        return True

    async def _record_failure(self, subscription: DBWebhookSubscription):
        try:
            outcome = await self.repository.record_failure(subscription.id, self.max_failures)
        except StorageError:
            logger.error(f"❌ Could not record failure for webhook {subscription.id}")
            return

        if outcome is None:
            return
        failure_count, status = outcome
        subscription.failure_count = failure_count
        subscription.status = status
        if status == SUBSCRIPTION_INACTIVE:
            logger.warning(f"🚫 Webhook {subscription.id} deactivated after {failure_count} failures")

    async def _record_success(self, subscription: DBWebhookSubscription):
        try:
            await self.repository.reset_failures(subscription.id)
            subscription.failure_count = 0
        except StorageError:
            logger.error(f"❌ Could not reset failures for webhook {subscription.id}")

    async def _notify_isolated(self, subscription: DBWebhookSubscription, event: str, payload: Any) -> bool:
        try:
            return await self.notify(subscription, event, payload)
        except Exception:
            logger.exception(f"❌ Unexpected error delivering webhook {subscription.id}")
            return False

    async def notify_all(self, agent_id: str, event: str, payload: Any) -> DeliverySummary:
        """
        Fan out to every subscription active at call time and listening for
        event, concurrently
        One subscriber's failure never affects the others or the caller
        """
        try:
            subscriptions = await self.repository.get_active(agent_id)
        except StorageError:
            logger.error(f"❌ Could not load subscriptions for agent {agent_id}, {event} not delivered")
            return DeliverySummary()

        subscriptions = [s for s in subscriptions if event in (s.events or ())]
        if not subscriptions:
            return DeliverySummary()

        results = await asyncio.gather(
            *(self._notify_isolated(s, event, payload) for s in subscriptions)
        )
        delivered = sum(1 for ok in results if ok)

        logger.info(f"📨 {event} for agent {agent_id}: {delivered}/{len(results)} delivered")
        return DeliverySummary(
            attempted=len(results),
            delivered=delivered,
            failed=len(results) - delivered
        )
