"""
Transaction Repository - Ledger data access layer
Append-only inserts plus the aggregate queries behind cached statistics
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, select

from agentledger.constants import STATUS_FAILURE, STATUS_SUCCESS, TOP_AGENTS_LIMIT
from agentledger.database.models.agent import DBAgent
from agentledger.database.models.transaction import DBTransaction
from agentledger.repositories.base import BaseRepository


def _window_conditions(start: Optional[datetime], end: Optional[datetime]) -> list:
    """Inclusive created_at bounds"""
    conditions = []
    if start is not None:
        conditions.append(DBTransaction.created_at >= start)
    if end is not None:
        conditions.append(DBTransaction.created_at <= end)
    return conditions


def _as_decimal(value: Any) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


def _as_date(value: Any) -> date:
    # date() comes back as text on SQLite
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


class TransactionRepository(BaseRepository):
    """Repository for ledger transactions and agent reference data"""

    async def insert(self, txn: DBTransaction) -> DBTransaction:
        """Persist a new transaction; the row gets its own primary key, no locking"""
        async with self._session("insert") as session:
            session.add(txn)
            await session.commit()
            return txn

    async def get_by_id(self, agent_id: str, transaction_id: str) -> Optional[DBTransaction]:
        """Agent-scoped lookup"""
        query = select(DBTransaction).where(
            DBTransaction.id == transaction_id,
            DBTransaction.agent_id == agent_id
        )
        async with self._session("lookup") as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def list_for_agent(
        self,
        agent_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[DBTransaction]:
        """Agent transactions, newest first"""
        query = (
            select(DBTransaction)
            .where(DBTransaction.agent_id == agent_id, *_window_conditions(start, end))
            .order_by(DBTransaction.created_at.desc())
        )
        async with self._session("listing") as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_agent_region(self, agent_id: str) -> Optional[str]:
        query = select(DBAgent.region_id).where(DBAgent.agent_id == agent_id)
        async with self._session("region lookup") as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def get_agent_totals(
        self,
        agent_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Sum every transaction of the agent (optionally windowed)
        Returns: dict with counts and Decimal sums
        """
        query = select(
            func.count(DBTransaction.id).label("total_transactions"),
            func.count(case((DBTransaction.status == STATUS_SUCCESS, 1))).label("successful_transactions"),
            func.count(case((DBTransaction.status == STATUS_FAILURE, 1))).label("failed_transactions"),
            func.coalesce(func.sum(DBTransaction.amount), 0).label("total_amount"),
            func.coalesce(func.sum(DBTransaction.standard_commission), 0).label("total_commission"),
            func.coalesce(func.sum(DBTransaction.agent_markup), 0).label("total_markup"),
        ).where(DBTransaction.agent_id == agent_id, *_window_conditions(start, end))

        async with self._session("agent aggregation") as session:
            row = (await session.execute(query)).one()

        return {
            "total_transactions": int(row.total_transactions),
            "successful_transactions": int(row.successful_transactions),
            "failed_transactions": int(row.failed_transactions),
            "total_amount": _as_decimal(row.total_amount),
            "total_commission": _as_decimal(row.total_commission),
            "total_markup": _as_decimal(row.total_markup),
        }

    async def get_daily_trends(
        self,
        agent_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Group the agent's transactions by calendar day
        Returns: list of day buckets, oldest first
        """
        day = func.date(DBTransaction.created_at).label("day")
        query = (
            select(
                day,
                func.count(DBTransaction.id).label("transactions"),
                func.coalesce(func.sum(DBTransaction.amount), 0).label("amount"),
                func.coalesce(func.sum(DBTransaction.standard_commission), 0).label("commission"),
                func.coalesce(func.sum(DBTransaction.agent_markup), 0).label("markup"),
            )
            .where(DBTransaction.agent_id == agent_id, *_window_conditions(start, end))
            .group_by(day)
            .order_by(day)
        )

        async with self._session("daily aggregation") as session:
            rows = (await session.execute(query)).fetchall()

        return [
            {
                "day": _as_date(row.day),
                "transactions": int(row.transactions),
                "amount": _as_decimal(row.amount),
                "commission": _as_decimal(row.commission),
                "markup": _as_decimal(row.markup),
            }
            for row in rows
        ]

    async def get_region_totals(
        self,
        region_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Sum transactions of every agent in the region
        Agents without transactions still count towards agent_count
        """
        join_on = and_(DBTransaction.agent_id == DBAgent.agent_id, *_window_conditions(start, end))
        query = (
            select(
                func.count(func.distinct(DBAgent.agent_id)).label("agent_count"),
                func.count(DBTransaction.id).label("total_transactions"),
                func.count(case((DBTransaction.status == STATUS_SUCCESS, 1))).label("successful_transactions"),
                func.coalesce(func.sum(DBTransaction.amount), 0).label("total_amount"),
                func.coalesce(func.sum(DBTransaction.standard_commission), 0).label("total_commission"),
                func.coalesce(func.sum(DBTransaction.agent_markup), 0).label("total_markup"),
            )
            .select_from(DBAgent)
            .outerjoin(DBTransaction, join_on)
            .where(DBAgent.region_id == region_id)
        )

        async with self._session("region aggregation") as session:
            row = (await session.execute(query)).one()

        return {
            "agent_count": int(row.agent_count),
            "total_transactions": int(row.total_transactions),
            "successful_transactions": int(row.successful_transactions),
            "total_amount": _as_decimal(row.total_amount),
            "total_commission": _as_decimal(row.total_commission),
            "total_markup": _as_decimal(row.total_markup),
        }

    async def get_top_agents(
        self,
        region_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = TOP_AGENTS_LIMIT
    ) -> List[Dict[str, Any]]:
        """Agents of the region ranked by total amount"""
        join_on = and_(DBTransaction.agent_id == DBAgent.agent_id, *_window_conditions(start, end))
        total_amount = func.coalesce(func.sum(DBTransaction.amount), 0).label("total_amount")
        query = (
            select(
                DBAgent.agent_id,
                DBAgent.name,
                func.count(DBTransaction.id).label("total_transactions"),
                total_amount,
            )
            .select_from(DBAgent)
            .outerjoin(DBTransaction, join_on)
            .where(DBAgent.region_id == region_id)
            .group_by(DBAgent.agent_id, DBAgent.name)
            .order_by(total_amount.desc(), DBAgent.agent_id)
            .limit(limit)
        )

        async with self._session("top agents") as session:
            rows = (await session.execute(query)).fetchall()

        return [
            {
                "agent_id": row.agent_id,
                "name": row.name,
                "total_transactions": int(row.total_transactions),
                "total_amount": _as_decimal(row.total_amount),
            }
            for row in rows
        ]
