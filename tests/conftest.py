# tests/conftest.py

import pytest

from agentledger.cache.aggregation_cache import AggregationCache
from agentledger.database.redis_client import RedisClient
from agentledger.services.transaction_service import TransactionService

from fakes import NOW, FakeClock, FakeRedis, FakeTransactionRepository, FakeWebhookRepository, RecordingNotifier


@pytest.fixture
def clock():
    """Wall clock shared by the fake Redis and the cache"""
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def cache(fake_redis, clock):
    return AggregationCache(RedisClient("redis://test", client=fake_redis), clock=clock)


@pytest.fixture
def repository():
    repo = FakeTransactionRepository()
    repo.add_agent("agent-1", "region-lagos", name="Ada")
    repo.add_agent("agent-2", "region-lagos", name="Bola")
    repo.add_agent("agent-3", "region-abuja", name="Chidi")
    return repo


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(repository, cache, notifier):
    return TransactionService(repository, cache, webhooks=notifier, clock=lambda: NOW)


@pytest.fixture
def webhook_repository():
    return FakeWebhookRepository()
