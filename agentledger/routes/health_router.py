# agentledger/routes/health_router.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from agentledger.api.models.api_models import HealthResponse
from agentledger.container import AppContainer
from agentledger.routes.dependencies import get_container

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health_check(container: AppContainer = Depends(get_container)):
    database_ok = await container.database.ping()
    redis_ok = await container.redis.ping()

    return HealthResponse(
        # Cache is advisory: Redis down is degraded, not unhealthy
        status="healthy" if database_ok and redis_ok else ("degraded" if database_ok else "unhealthy"),
        database="connected" if database_ok else "unreachable",
        redis="connected" if redis_ok else "unreachable",
        timestamp=datetime.now(timezone.utc)
    )
