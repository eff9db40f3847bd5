"""
Transaction Service - the ledger write path and cached aggregates

record_transaction:
    validate -> commission -> persist -> invalidate agent/region cache
    -> enqueue transaction.created fan-out
    -> enqueue anomaly check (-> webhook fan-out when flagged)

Persist and invalidate are not atomic: a crash in between leaves a stale
cache entry that expires with its TTL.
"""
import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError as SchemaError

from agentledger.api.mappers import map_transaction_to_api
from agentledger.api.models.api_models import (
    AgentPerformance,
    AnomalyReport,
    DailyTrend,
    RegionPerformance,
    TopAgent,
    Transaction
)
from agentledger.cache.aggregation_cache import AggregationCache, AggregationKey
from agentledger.constants import (
    ANOMALY_WINDOW_DAYS,
    DAILY_TRENDS_DAYS,
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_CACHE_TTL_SECONDS,
    PHONE_PATTERN,
    STATUS_SUCCESS,
    SUSPICIOUS_ACTIVITY_EVENT,
    TRANSACTION_CREATED,
    TRANSACTION_KINDS
)
from agentledger.database.models.transaction import DBTransaction
from agentledger.errors import StorageError, ValidationError
from agentledger.repositories.transaction_repository import TransactionRepository
from agentledger.services.anomaly import DailyObservation, evaluate_observations
from agentledger.services.commission import compute_standard_commission, to_decimal, validate_markup
from agentledger.services.webhook_service import WebhookService
from agentledger.workers.background import BackgroundWorker

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(PHONE_PATTERN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_phone_number(phone: str) -> bool:
    return bool(_PHONE_RE.match(phone))


def calculate_success_rate(successful: int, total: int) -> float:
    if total == 0:
        return 0.0
    return successful / total * 100


def _average(total: Decimal, count: int) -> Decimal:
    return total / count if count else Decimal("0")


def _parse_money(value: Any, field: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field}. Must be a number.") from None

    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}. Must be a number.")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"Invalid {field}. At most 2 decimal places are allowed.")
    return amount


class TransactionService:
    """Service for the ledger write path and performance aggregates"""

    def __init__(
        self,
        repository: TransactionRepository,
        cache: AggregationCache,
        worker: Optional[BackgroundWorker] = None,
        webhooks: Optional[WebhookService] = None,
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        anomaly_threshold: float = DEFAULT_ANOMALY_THRESHOLD,
        anomaly_window_days: int = ANOMALY_WINDOW_DAYS,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repository = repository
        self.cache = cache
        self.worker = worker
        self.webhooks = webhooks
        self.cache_ttl = cache_ttl
        self.anomaly_threshold = anomaly_threshold
        self.anomaly_window_days = anomaly_window_days
        self.clock = clock

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    @staticmethod
    def validate_request(
        amount: Any,
        kind: str,
        markup: Any = 0,
        customer_phone: Optional[str] = None
    ) -> Tuple[Decimal, Decimal]:
        """Reject bad input before any I/O. Returns (amount, markup) as Decimals."""
        if kind not in TRANSACTION_KINDS:
            raise ValidationError(f"Invalid transaction type: {kind}. Expected one of: {', '.join(TRANSACTION_KINDS)}")

        amount = _parse_money(amount, "amount")
        if amount <= 0:
            raise ValidationError("Invalid amount. Amount must be greater than zero.")

        markup = _parse_money(markup if markup is not None else 0, "markup")
        if not validate_markup(markup, amount):
            raise ValidationError("Invalid markup amount. Markup must be between 0 and 5% of transaction amount.")

        if customer_phone and not validate_phone_number(customer_phone):
            raise ValidationError("Invalid phone number format")

        return amount, markup

    async def record_transaction(
        self,
        principal: str,
        amount: Any,
        kind: str,
        markup: Any = 0,
        customer_phone: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Transaction:
        """
        Record a transaction for the authenticated agent

        Raises:
            ValidationError: bad amount/kind/markup/phone, nothing persisted
            StorageError: ledger write failed, cache left untouched
        """
        amount, markup = self.validate_request(amount, kind, markup, customer_phone)

        db_txn = DBTransaction(
            id=str(uuid.uuid4()),
            agent_id=principal,
            amount=amount,
            kind=kind,
            status=STATUS_SUCCESS,
            standard_commission=compute_standard_commission(amount, kind),
            agent_markup=markup,
            customer_phone=customer_phone or None,
            notes=notes or None,
            created_at=self.clock()
        )
        saved = await self.repository.insert(db_txn)
        logger.info(f"✅ Transaction {saved.id} recorded: agent={principal} {kind} {amount}")

        transaction = map_transaction_to_api(saved)
        await self._invalidate_aggregates(principal)
        self._schedule_event_fanout(principal, TRANSACTION_CREATED, transaction.model_dump(mode="json"))
        self._schedule_anomaly_check(principal)

        return transaction

    async def _invalidate_aggregates(self, agent_id: str):
        try:
            region_id = await self.repository.get_agent_region(agent_id)
        except StorageError:
            logger.warning(f"⚠️ Region unknown for agent {agent_id}, region cache left to expire")
            region_id = None

        if not await self.cache.invalidate_agent(agent_id, region_id):
            logger.warning(f"⚠️ Cache invalidation incomplete for agent {agent_id}, entries expire within {self.cache_ttl}s")

    def _schedule_event_fanout(self, agent_id: str, event: str, payload: dict):
        if self.worker is None or self.webhooks is None:
            return
        self.worker.submit(
            f"webhook:{event}:{agent_id}",
            lambda: self.webhooks.notify_all(agent_id, event, payload)
        )

    def _schedule_anomaly_check(self, agent_id: str):
        if self.worker is None:
            return
        self.worker.submit(
            f"anomaly-check:{agent_id}",
            lambda: self.check_agent_activity(agent_id)
        )

    # ------------------------------------------------------------------
    # Anomaly detection
    # ------------------------------------------------------------------

    async def detect_suspicious_activity(self, agent_id: str) -> AnomalyReport:
        """Compare the agent's latest day with the rest of the trailing window"""
        since = self.clock() - timedelta(days=self.anomaly_window_days)
        trends = await self.repository.get_daily_trends(agent_id, start=since)
        observations = [DailyObservation.from_trend(t) for t in trends]
        return evaluate_observations(agent_id, observations, self.anomaly_threshold)

    async def check_agent_activity(self, agent_id: str) -> AnomalyReport:
        """Background job: detect, and fan out a webhook event when flagged"""
        report = await self.detect_suspicious_activity(agent_id)
        if not report.is_suspicious:
            logger.debug(f"Agent {agent_id} {report.reason}")
            return report

        logger.warning(f"🚨 Suspicious activity detected for agent {agent_id}: {report.reason}")
        if self.webhooks is not None:
            await self.webhooks.notify_all(agent_id, SUSPICIOUS_ACTIVITY_EVENT, report.model_dump(mode="json"))
        return report

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _cached(self, key: AggregationKey, model):
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            return model.model_validate(cached)
        except SchemaError:
            logger.warning(f"⚠️ Cached {key.redis_key} does not match {model.__name__}, recomputing")
            return None

    async def get_agent_performance(
        self,
        agent_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ) -> AgentPerformance:
        """Read-through: cache first, ledger aggregation on miss"""
        key = AggregationKey.for_agent(agent_id, window_start=window_start, window_end=window_end)

        cached = await self._cached(key, AgentPerformance)
        if cached is not None:
            return cached

        totals = await self.repository.get_agent_totals(agent_id, window_start, window_end)
        trends_start = window_start or (self.clock() - timedelta(days=DAILY_TRENDS_DAYS))
        trends = await self.repository.get_daily_trends(agent_id, start=trends_start, end=window_end)

        performance = AgentPerformance(
            agent_id=agent_id,
            **totals,
            success_rate=calculate_success_rate(totals["successful_transactions"], totals["total_transactions"]),
            average_transaction_amount=_average(totals["total_amount"], totals["total_transactions"]),
            daily_trends=[DailyTrend(**t) for t in trends]
        )

        await self.cache.put(key, performance, self.cache_ttl)
        return performance

    async def get_region_performance(
        self,
        region_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ) -> RegionPerformance:
        """Read-through over every agent of the region"""
        key = AggregationKey.for_region(region_id, window_start=window_start, window_end=window_end)

        cached = await self._cached(key, RegionPerformance)
        if cached is not None:
            return cached

        totals = await self.repository.get_region_totals(region_id, window_start, window_end)
        top_agents = await self.repository.get_top_agents(region_id, window_start, window_end)

        performance = RegionPerformance(
            region_id=region_id,
            **totals,
            success_rate=calculate_success_rate(totals["successful_transactions"], totals["total_transactions"]),
            average_transaction_amount=_average(totals["total_amount"], totals["total_transactions"]),
            average_markup_per_agent=_average(totals["total_markup"], totals["agent_count"]),
            top_agents=[TopAgent(**a) for a in top_agents]
        )

        await self.cache.put(key, performance, self.cache_ttl)
        return performance

    async def get_agent_transactions(
        self,
        agent_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Transaction]:
        """Agent's transactions, newest first, cached like the aggregates"""
        key = AggregationKey.for_agent(agent_id, metric="transactions", window_start=start, window_end=end)

        cached = await self.cache.get(key)
        if cached is not None:
            try:
                return [Transaction.model_validate(t) for t in cached]
            except (SchemaError, TypeError):
                logger.warning(f"⚠️ Cached {key.redis_key} unreadable, recomputing")

        rows = await self.repository.list_for_agent(agent_id, start, end)
        transactions = [map_transaction_to_api(row) for row in rows]

        await self.cache.put(key, [t.model_dump(mode="json") for t in transactions], self.cache_ttl)
        return transactions

    async def get_transaction(self, agent_id: str, transaction_id: str) -> Optional[Transaction]:
        row = await self.repository.get_by_id(agent_id, transaction_id)
        return map_transaction_to_api(row) if row else None
