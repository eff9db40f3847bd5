# agentledger/main.py

"""
FastAPI entry point
- Ledger writes (POST /transactions) with commission + markup validation
- Cached performance reads (GET /metrics/...)
- Agent webhook subscriptions (/webhooks)
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentledger.config import Settings
from agentledger.container import AppContainer
from agentledger.errors import AgentLedgerError
from agentledger.routes.health_router import health_router
from agentledger.routes.metrics_router import metrics_router
from agentledger.routes.transactions_router import transactions_router
from agentledger.routes.webhooks_router import webhooks_router

logger = logging.getLogger(__name__)


def create_app(container: Optional[AppContainer] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        current = container or AppContainer(Settings.from_env())
        logging.basicConfig(
            level=current.settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        app.state.container = current
        await current.startup()
        try:
            yield
        finally:
            await current.shutdown()

    app = FastAPI(
        title="AgentLedger",
        description="Agent transaction ledger, cached performance metrics and signed webhooks",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AgentLedgerError)
    async def handle_core_error(request: Request, exc: AgentLedgerError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    # ✅ Include all routers
    app.include_router(health_router)
    app.include_router(transactions_router)
    app.include_router(metrics_router)
    app.include_router(webhooks_router)

    @app.get("/")
    async def root():
        """API info"""
        return {
            "service": "AgentLedger",
            "version": "1.0.0",
            "endpoints": {
                "record_transaction": "POST /transactions",
                "transactions": "GET /transactions",
                "transaction_detail": "GET /transactions/{id}",
                "agent_metrics": "GET /metrics/agents/{agent_id} (Redis cache)",
                "region_metrics": "GET /metrics/regions/{region_id} (Redis cache)",
                "webhooks": "POST|GET /webhooks",
                "webhook_update": "PUT|DELETE /webhooks/{id}",
                "health": "GET /health"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
