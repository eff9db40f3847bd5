"""
Tests for WebhookService
Delivery goes through httpx.MockTransport, subscriptions through the in-memory repository
"""
import asyncio
import hashlib
import hmac
import json

import httpx
import pytest

from agentledger.constants import (
    SIGNATURE_HEADER,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_INACTIVE,
    TRANSACTION_CREATED,
    TRANSACTION_FAILED,
    TRANSACTION_UPDATED,
    WEBHOOK_EVENTS
)
from agentledger.errors import NotFoundError, ValidationError
from agentledger.services.webhook_service import WebhookService, serialize_envelope, sign_payload

from fakes import NOW

EVENT = "agent.suspicious_activity"
PAYLOAD = {"agent_id": "agent-1", "is_suspicious": True}


def _service(webhook_repository, handler, timeout_seconds=1.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookService(webhook_repository, client, timeout_seconds=timeout_seconds, clock=lambda: NOW)


def _ok(request):
    return httpx.Response(200)


def _server_error(request):
    return httpx.Response(500)


class TestSigning:

    def test_signature_is_hmac_sha256_hex(self):
        body = b'{"a":1}'
        expected = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
        assert sign_payload(body, "secret") == expected

    def test_canonical_serialization(self):
        """✅ Sorted keys, no whitespace."""
        assert serialize_envelope({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_returns_secret_once(self, webhook_repository):
        service = _service(webhook_repository, _ok)

        created = await service.subscribe("agent-1", "https://hooks.example.com/ledger")

        assert created.status == SUBSCRIPTION_ACTIVE
        assert created.failure_count == 0
        assert len(created.secret) == 64
        listed = await service.list_subscriptions("agent-1")
        assert [s.id for s in listed] == [created.id]
        assert listed[0].secret is None

    @pytest.mark.asyncio
    async def test_secrets_are_unique(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        first = await service.subscribe("agent-1", "https://a.example.com")
        second = await service.subscribe("agent-1", "https://b.example.com")
        assert first.secret != second.secret

    @pytest.mark.parametrize("url", ["", "ftp://example.com/x", "not a url", "https://"])
    @pytest.mark.asyncio
    async def test_invalid_url_rejected(self, webhook_repository, url):
        service = _service(webhook_repository, _ok)
        with pytest.raises(ValidationError):
            await service.subscribe("agent-1", url)
        assert webhook_repository.subscriptions == {}

    @pytest.mark.asyncio
    async def test_deactivate_and_delete_are_owner_scoped(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        with pytest.raises(NotFoundError):
            await service.deactivate("agent-2", sub.id)
        with pytest.raises(NotFoundError):
            await service.delete("agent-2", sub.id)

        deactivated = await service.deactivate("agent-1", sub.id)
        assert deactivated.status == SUBSCRIPTION_INACTIVE

        await service.delete("agent-1", sub.id)
        assert await service.list_subscriptions("agent-1") == []

    @pytest.mark.asyncio
    async def test_events_default_to_all(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        created = await service.subscribe("agent-1", "https://a.example.com")
        assert created.events == list(WEBHOOK_EVENTS)

    @pytest.mark.asyncio
    async def test_subscribe_to_chosen_events(self, webhook_repository):
        service = _service(webhook_repository, _ok)

        created = await service.subscribe(
            "agent-1", "https://a.example.com", [TRANSACTION_CREATED, TRANSACTION_FAILED, TRANSACTION_CREATED]
        )

        assert created.events == [TRANSACTION_CREATED, TRANSACTION_FAILED]
        assert webhook_repository.subscriptions[created.id].events == [TRANSACTION_CREATED, TRANSACTION_FAILED]

    @pytest.mark.parametrize("events", [[], ["transaction.deleted"], [TRANSACTION_CREATED, "nope"]])
    @pytest.mark.asyncio
    async def test_invalid_events_rejected(self, webhook_repository, events):
        service = _service(webhook_repository, _ok)
        with pytest.raises(ValidationError):
            await service.subscribe("agent-1", "https://a.example.com", events)
        assert webhook_repository.subscriptions == {}


class TestUpdate:

    @pytest.mark.asyncio
    async def test_url_and_events(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        updated = await service.update(
            "agent-1", sub.id, url="https://b.example.com", events=[TRANSACTION_UPDATED]
        )

        assert updated.url == "https://b.example.com"
        assert updated.events == [TRANSACTION_UPDATED]
        assert updated.status == SUBSCRIPTION_ACTIVE
        assert updated.secret is None

    @pytest.mark.asyncio
    async def test_deactivate_through_update(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        updated = await service.update("agent-1", sub.id, status=SUBSCRIPTION_INACTIVE)

        assert updated.status == SUBSCRIPTION_INACTIVE

    @pytest.mark.asyncio
    async def test_inactive_is_never_reactivated(self, webhook_repository):
        """✅ Inactive is terminal; the agent subscribes again instead."""
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com", status=SUBSCRIPTION_INACTIVE)

        with pytest.raises(ValidationError):
            await service.update("agent-1", sub.id, status=SUBSCRIPTION_ACTIVE)
        assert sub.status == SUBSCRIPTION_INACTIVE

    @pytest.mark.asyncio
    async def test_active_status_on_active_row_is_a_no_op(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        updated = await service.update("agent-1", sub.id, status=SUBSCRIPTION_ACTIVE)

        assert updated.status == SUBSCRIPTION_ACTIVE

    @pytest.mark.parametrize("fields", [
        {},
        {"status": "paused"},
        {"url": "ftp://b.example.com"},
        {"events": []},
    ])
    @pytest.mark.asyncio
    async def test_invalid_update_rejected(self, webhook_repository, fields):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        with pytest.raises(ValidationError):
            await service.update("agent-1", sub.id, **fields)
        assert sub.url == "https://a.example.com"

    @pytest.mark.asyncio
    async def test_owner_scoped(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com")

        with pytest.raises(NotFoundError):
            await service.update("agent-2", sub.id, url="https://evil.example.com")
        assert sub.url == "https://a.example.com"



class TestDelivery:

    @pytest.mark.asyncio
    async def test_signed_envelope(self, webhook_repository):
        """✅ Receiver can verify the signature over the exact body bytes."""
        received = []

        def handler(request):
            received.append(request)
            return httpx.Response(204)

        service = _service(webhook_repository, handler)
        created = await service.subscribe("agent-1", "https://hooks.example.com/ledger")

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)

        assert summary.delivered == 1
        request = received[0]
        assert str(request.url) == "https://hooks.example.com/ledger"
        assert request.headers["content-type"] == "application/json"
        expected = hmac.new(created.secret.encode(), request.content, hashlib.sha256).hexdigest()
        assert request.headers[SIGNATURE_HEADER] == expected

        envelope = json.loads(request.content)
        assert envelope == {
            "webhook_id": created.id,
            "event": EVENT,
            "data": PAYLOAD,
            "timestamp": NOW.isoformat(),
        }

    @pytest.mark.asyncio
    async def test_only_the_agents_active_subscriptions(self, webhook_repository):
        hits = []

        def handler(request):
            hits.append(str(request.url))
            return httpx.Response(200)

        service = _service(webhook_repository, handler)
        webhook_repository.seed("agent-1", "https://a.example.com/")
        webhook_repository.seed("agent-1", "https://b.example.com/", status=SUBSCRIPTION_INACTIVE)
        webhook_repository.seed("agent-2", "https://c.example.com/")

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)

        assert hits == ["https://a.example.com/"]
        assert summary.attempted == 1

    @pytest.mark.asyncio
    async def test_only_subscriptions_listening_for_the_event(self, webhook_repository):
        hits = []

        def handler(request):
            hits.append(str(request.url))
            return httpx.Response(200)

        service = _service(webhook_repository, handler)
        webhook_repository.seed("agent-1", "https://created.example.com/", events=[TRANSACTION_CREATED])
        webhook_repository.seed("agent-1", "https://alerts.example.com/", events=[EVENT])

        summary = await service.notify_all("agent-1", TRANSACTION_CREATED, PAYLOAD)

        assert hits == ["https://created.example.com/"]
        assert summary.attempted == 1

    @pytest.mark.asyncio
    async def test_no_subscriptions(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)
        assert (summary.attempted, summary.delivered, summary.failed) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_third_consecutive_failure_deactivates(self, webhook_repository):
        """✅ Two failures keep it active, the third takes it out of the fan-out."""
        service = _service(webhook_repository, _server_error)
        sub = webhook_repository.seed("agent-1", "https://a.example.com/")

        for expected_count in (1, 2):
            summary = await service.notify_all("agent-1", EVENT, PAYLOAD)
            assert summary.attempted == 1
            assert summary.failed == 1
            assert sub.failure_count == expected_count
            assert sub.status == SUBSCRIPTION_ACTIVE

        await service.notify_all("agent-1", EVENT, PAYLOAD)
        assert sub.failure_count == 3
        assert sub.status == SUBSCRIPTION_INACTIVE

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)
        assert summary.attempted == 0

    @pytest.mark.asyncio
    async def test_success_resets_failure_streak(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        sub = webhook_repository.seed("agent-1", "https://a.example.com/", failure_count=2)

        assert (await service.notify_all("agent-1", EVENT, PAYLOAD)).delivered == 1
        assert sub.failure_count == 0
        assert sub.status == SUBSCRIPTION_ACTIVE

    @pytest.mark.asyncio
    async def test_transport_error_counts_as_failure(self, webhook_repository):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = _service(webhook_repository, handler)
        sub = webhook_repository.seed("agent-1", "https://a.example.com/")

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)

        assert summary.failed == 1
        assert sub.failure_count == 1

    @pytest.mark.asyncio
    async def test_one_bad_subscriber_does_not_affect_others(self, webhook_repository):
        """✅ Fan-out isolates failures per subscription."""
        def handler(request):
            if request.url.host == "broken.example.com":
                return httpx.Response(503)
            return httpx.Response(200)

        service = _service(webhook_repository, handler)
        good = webhook_repository.seed("agent-1", "https://ok.example.com/")
        bad = webhook_repository.seed("agent-1", "https://broken.example.com/")

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)

        assert (summary.attempted, summary.delivered, summary.failed) == (2, 1, 1)
        assert good.failure_count == 0
        assert bad.failure_count == 1

    @pytest.mark.asyncio
    async def test_hanging_subscriber_is_bounded(self, webhook_repository):
        """✅ A subscriber that never answers fails at the timeout."""
        async def handler(request):
            await asyncio.sleep(30)
            return httpx.Response(200)

        service = _service(webhook_repository, handler, timeout_seconds=0.05)
        sub = webhook_repository.seed("agent-1", "https://slow.example.com/")

        summary = await asyncio.wait_for(service.notify_all("agent-1", EVENT, PAYLOAD), timeout=5)

        assert summary.failed == 1
        assert sub.failure_count == 1

    @pytest.mark.asyncio
    async def test_storage_failure_loading_subscriptions(self, webhook_repository):
        service = _service(webhook_repository, _ok)
        webhook_repository.seed("agent-1", "https://a.example.com/")
        webhook_repository.fail_reads = True

        summary = await service.notify_all("agent-1", EVENT, PAYLOAD)

        assert summary.attempted == 0
