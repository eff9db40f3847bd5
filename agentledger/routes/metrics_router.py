"""
Metrics routes - cached agent and region performance

Agent metrics are private to the agent; region metrics are shared with
every authenticated agent.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from agentledger.api.models.api_models import AgentPerformance, RegionPerformance
from agentledger.errors import ForbiddenError
from agentledger.routes.dependencies import get_principal, get_transaction_service
from agentledger.services.transaction_service import TransactionService

metrics_router = APIRouter(prefix="/metrics", tags=["metrics"])


@metrics_router.get("/agents/{agent_id}", response_model=AgentPerformance)
async def get_agent_performance(
    agent_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    principal: str = Depends(get_principal),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    Agent performance (cached 5 minutes, dropped on every new transaction)

    Query params:
    - start_date / end_date: optional aggregation window
    """
    if agent_id != principal:
        raise ForbiddenError(f"{principal} requested metrics of {agent_id}")
    return await service.get_agent_performance(agent_id, start_date, end_date)


@metrics_router.get(
    "/regions/{region_id}",
    response_model=RegionPerformance,
    dependencies=[Depends(get_principal)]
)
async def get_region_performance(
    region_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    service: TransactionService = Depends(get_transaction_service)
):
    return await service.get_region_performance(region_id, start_date, end_date)
