"""
Process-wide wiring
Clients are built once, injected into services, and closed on shutdown
"""
import logging

import httpx

from agentledger.cache.aggregation_cache import AggregationCache
from agentledger.config import Settings
from agentledger.database.postgres_client import Database
from agentledger.database.redis_client import RedisClient
from agentledger.repositories.transaction_repository import TransactionRepository
from agentledger.repositories.webhook_repository import WebhookRepository
from agentledger.services.transaction_service import TransactionService
from agentledger.services.webhook_service import WebhookService
from agentledger.workers.background import BackgroundWorker

logger = logging.getLogger(__name__)


class AppContainer:

    def __init__(self, settings: Settings):
        self.settings = settings

        self.database = Database.from_settings(settings)
        self.redis = RedisClient.from_settings(settings)
        self.http_client = httpx.AsyncClient(
            timeout=settings.webhook_timeout_seconds,
            follow_redirects=False
        )
        self.worker = BackgroundWorker(
            concurrency=settings.worker_concurrency,
            max_attempts=settings.worker_max_attempts
        )

        self.cache = AggregationCache(self.redis)
        self.webhook_service = WebhookService(
            WebhookRepository(self.database),
            self.http_client,
            timeout_seconds=settings.webhook_timeout_seconds,
            max_failures=settings.webhook_max_failures
        )
        self.transaction_service = TransactionService(
            TransactionRepository(self.database),
            self.cache,
            worker=self.worker,
            webhooks=self.webhook_service,
            cache_ttl=settings.cache_ttl_seconds,
            anomaly_threshold=settings.anomaly_threshold,
            anomaly_window_days=settings.anomaly_window_days
        )

    async def startup(self):
        await self.worker.start()
        # Warm the cache connection; a down Redis only disables caching
        await self.redis.get_client()
        logger.info("✅ AgentLedger core started")

    async def shutdown(self):
        # Drain side effects before the clients they use go away
        await self.worker.shutdown(timeout=self.settings.shutdown_timeout_seconds)
        await self.http_client.aclose()
        await self.redis.close()
        await self.database.dispose()
        logger.info("AgentLedger core stopped")
