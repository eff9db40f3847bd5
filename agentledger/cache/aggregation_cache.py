"""
Aggregation Cache - read-through cache for performance aggregates

Entries are keyed by (scope, scope_id, metric, window). Each key is registered
in a per-scope_id index so one ledger write can drop every window cached for
an agent and for that agent's region in a single call.
"""
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional, Union

from agentledger.constants import SCOPE_AGENT, SCOPE_REGION
from agentledger.database.redis_client import RedisClient

logger = logging.getLogger(__name__)

WindowBound = Optional[Union[datetime, date, str]]


def _render_bound(bound: WindowBound) -> Optional[str]:
    if bound is None:
        return None
    if isinstance(bound, (datetime, date)):
        return bound.isoformat()
    return str(bound)


@dataclass(frozen=True)
class AggregationKey:
    """
    Identifies one cached statistic
    Equal iff every field matches; equivalent windows are not normalised
    """
    scope: str
    scope_id: str
    metric: str = "performance"
    window_start: Optional[str] = None
    window_end: Optional[str] = None

    def __post_init__(self):
        if self.scope not in (SCOPE_AGENT, SCOPE_REGION):
            raise ValueError(f"Unknown aggregation scope: {self.scope}")

    @classmethod
    def for_agent(cls, agent_id: str, metric: str = "performance",
                  window_start: WindowBound = None, window_end: WindowBound = None) -> "AggregationKey":
        return cls(SCOPE_AGENT, agent_id, metric, _render_bound(window_start), _render_bound(window_end))

    @classmethod
    def for_region(cls, region_id: str, metric: str = "performance",
                   window_start: WindowBound = None, window_end: WindowBound = None) -> "AggregationKey":
        return cls(SCOPE_REGION, region_id, metric, _render_bound(window_start), _render_bound(window_end))

    @property
    def redis_key(self) -> str:
        key = f"{self.scope}:{self.scope_id}:{self.metric}"
        if self.window_start is not None or self.window_end is not None:
            key += f":{self.window_start or 'all'}:{self.window_end or 'all'}"
        return key


class AggregationCache:
    """
    get / put / invalidate_scope over a RedisClient

    Values are stored in an envelope {value, inserted_at, ttl}; an entry is
    servable iff now < inserted_at + ttl, whatever the backend still holds.
    """

    INDEX_PREFIX = "aggregation-index"

    def __init__(self, redis: RedisClient, clock: Callable[[], float] = time.time):
        self.redis = redis
        self.clock = clock

    def _index_key(self, scope_id: str) -> str:
        return f"{self.INDEX_PREFIX}:{scope_id}"

    async def get(self, key: AggregationKey) -> Optional[Any]:
        """Return the cached value, or None when absent, expired or unreadable"""
        entry = await self.redis.get_cached(key.redis_key)
        if entry is None:
            return None

        try:
            inserted_at = float(entry["inserted_at"])
            ttl = float(entry["ttl"])
            value = entry["value"]
        except (KeyError, TypeError, ValueError):
            logger.warning(f"⚠️ Malformed cache entry ignored: {key.redis_key}")
            return None

        if self.clock() >= inserted_at + ttl:
            logger.info(f"⌛ Cache EXPIRED: {key.redis_key}")
            return None

        return value

    async def put(self, key: AggregationKey, value: Any, ttl: int) -> bool:
        """Store value under key, overwriting unconditionally (last write wins)"""
        if hasattr(value, "model_dump"):
            value = value.model_dump(mode="json")

        envelope = {"value": value, "inserted_at": self.clock(), "ttl": ttl}
        return await self.redis.set_cached_indexed(
            key.redis_key, envelope, self._index_key(key.scope_id), ttl_seconds=ttl
        )

    async def invalidate_scope(self, scope_id: str) -> bool:
        """Drop every entry whose scope_id matches, regardless of window or metric"""
        return await self.redis.delete_index(self._index_key(scope_id))

    async def invalidate_agent(self, agent_id: str, region_id: Optional[str] = None) -> bool:
        """Coarse invalidation after a ledger write: the agent and its region"""
        invalidated = await self.invalidate_scope(agent_id)
        if region_id:
            invalidated = await self.invalidate_scope(region_id) and invalidated
        return invalidated
