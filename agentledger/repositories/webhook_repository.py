"""
Webhook Repository - subscription data access layer
"""
from typing import List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update

from agentledger.constants import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_INACTIVE
from agentledger.database.models.webhook import DBWebhookSubscription
from agentledger.repositories.base import BaseRepository


class WebhookRepository(BaseRepository):
    """Repository for webhook subscriptions"""

    async def create(self, subscription: DBWebhookSubscription) -> DBWebhookSubscription:
        async with self._session("subscription insert") as session:
            session.add(subscription)
            await session.commit()
            return subscription

    async def get(self, agent_id: str, subscription_id: str) -> Optional[DBWebhookSubscription]:
        query = select(DBWebhookSubscription).where(
            DBWebhookSubscription.id == subscription_id,
            DBWebhookSubscription.agent_id == agent_id
        )
        async with self._session("subscription lookup") as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def list_for_agent(self, agent_id: str) -> List[DBWebhookSubscription]:
        query = (
            select(DBWebhookSubscription)
            .where(DBWebhookSubscription.agent_id == agent_id)
            .order_by(DBWebhookSubscription.created_at)
        )
        async with self._session("subscription listing") as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_active(self, agent_id: str) -> List[DBWebhookSubscription]:
        """Snapshot of the agent's active subscriptions"""
        query = select(DBWebhookSubscription).where(
            DBWebhookSubscription.agent_id == agent_id,
            DBWebhookSubscription.status == SUBSCRIPTION_ACTIVE
        )
        async with self._session("active subscriptions") as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def record_failure(self, subscription_id: str, max_failures: int) -> Optional[Tuple[int, str]]:
        """
        Atomically bump failure_count and deactivate at max_failures
        Returns: (failure_count, status) after the update, None if the row is gone
        """
        failures = DBWebhookSubscription.failure_count + 1
        query = (
            update(DBWebhookSubscription)
            .where(DBWebhookSubscription.id == subscription_id)
            .values(
                failure_count=failures,
                status=case(
                    (failures >= max_failures, SUBSCRIPTION_INACTIVE),
                    else_=DBWebhookSubscription.status
                ),
                updated_at=func.now()
            )
            .returning(DBWebhookSubscription.failure_count, DBWebhookSubscription.status)
        )
        async with self._session("failure update") as session:
            row = (await session.execute(query)).first()
            await session.commit()

        if row is None:
            return None
        return int(row.failure_count), row.status

    async def reset_failures(self, subscription_id: str) -> None:
        """Successful delivery clears the consecutive-failure streak"""
        query = (
            update(DBWebhookSubscription)
            .where(
                DBWebhookSubscription.id == subscription_id,
                DBWebhookSubscription.status == SUBSCRIPTION_ACTIVE,
                DBWebhookSubscription.failure_count > 0
            )
            .values(failure_count=0, updated_at=func.now())
        )
        async with self._session("failure reset") as session:
            await session.execute(query)
            await session.commit()

    async def deactivate(self, agent_id: str, subscription_id: str) -> Optional[DBWebhookSubscription]:
        """Explicit agent request: active -> inactive"""
        query = (
            update(DBWebhookSubscription)
            .where(
                DBWebhookSubscription.id == subscription_id,
                DBWebhookSubscription.agent_id == agent_id
            )
            .values(status=SUBSCRIPTION_INACTIVE, updated_at=func.now())
            .returning(DBWebhookSubscription)
        )
        async with self._session("subscription deactivate") as session:
            result = await session.execute(query)
            subscription = result.scalar_one_or_none()
            await session.commit()
            return subscription

    async def update(self, agent_id: str, subscription_id: str, **values) -> Optional[DBWebhookSubscription]:
        """Owner-scoped partial update (url, events, status)"""
        query = (
            update(DBWebhookSubscription)
            .where(
                DBWebhookSubscription.id == subscription_id,
                DBWebhookSubscription.agent_id == agent_id
            )
            .values(updated_at=func.now(), **values)
            .returning(DBWebhookSubscription)
        )
        async with self._session("subscription update") as session:
            result = await session.execute(query)
            subscription = result.scalar_one_or_none()
            await session.commit()
            return subscription

    async def delete(self, agent_id: str, subscription_id: str) -> bool:
        """Explicit agent request: hard delete"""
        query = delete(DBWebhookSubscription).where(
            DBWebhookSubscription.id == subscription_id,
            DBWebhookSubscription.agent_id == agent_id
        )
        async with self._session("subscription delete") as session:
            result = await session.execute(query)
            await session.commit()
            return result.rowcount > 0
