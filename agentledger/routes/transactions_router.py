"""
Transaction Routes - REST API controllers
Uses service layer for business logic
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from agentledger.api.models.api_models import RecordTransactionRequest, Transaction
from agentledger.routes.dependencies import get_principal, get_transaction_service
from agentledger.services.transaction_service import TransactionService

transactions_router = APIRouter(prefix="/transactions", tags=["transactions"])


@transactions_router.post("", response_model=Transaction, status_code=201)
async def record_transaction(
    request: RecordTransactionRequest,
    principal: str = Depends(get_principal),
    service: TransactionService = Depends(get_transaction_service)
):
    """Record a cashout or deposit for the calling agent"""
    return await service.record_transaction(
        principal,
        amount=request.amount,
        kind=request.kind,
        markup=request.agent_markup,
        customer_phone=request.customer_phone,
        notes=request.notes
    )


@transactions_router.get("", response_model=List[Transaction])
async def list_transactions(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    principal: str = Depends(get_principal),
    service: TransactionService = Depends(get_transaction_service)
):
    """
    List the calling agent's transactions, newest first

    Query params:
    - start_date / end_date: inclusive created_at bounds
    """
    return await service.get_agent_transactions(principal, start_date, end_date)


@transactions_router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: str,
    principal: str = Depends(get_principal),
    service: TransactionService = Depends(get_transaction_service)
):
    transaction = await service.get_transaction(principal, transaction_id)

    if not transaction:
        raise HTTPException(status_code=404, detail=f"Transaction {transaction_id} not found")

    return transaction
