"""/v1/transactions - income and expense entries"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from finance_hub.api.dependencies import get_reconciler, get_request_id, get_transaction_repository
from finance_hub.api.v1.schemas import DeleteResponse, TransactionRequest, TransactionResponse
from finance_hub.domain.exceptions import RecordNotFoundError
from finance_hub.domain.models import Transaction, TransactionType
from finance_hub.infrastructure.database.repositories import TransactionRepository
from finance_hub.services.sync import SyncReconciler

router = APIRouter()


def _to_transaction(body: TransactionRequest, request: Request, transaction_id: Optional[int] = None) -> Transaction:
    return Transaction(
        id=transaction_id,
        amount=body.amount,
        type=body.type,
        category=body.category,
        description=body.description,
        occurred_at=body.occurred_at or request.app.state.clock(),
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    body: TransactionRequest,
    request: Request,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    """
    Record a transaction locally, then push it to the remote when sync is enabled.

    A failed push does not fail the request: the transaction comes back
    with sync_status SYNC_FAILED and is picked up by the retry pass.
    """
    try:
        saved = await reconciler.add_transaction(_to_transaction(body, request))
    except SQLAlchemyError as e:
        logging.error(f"Error saving transaction: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error saving transaction")
    return TransactionResponse.model_validate(saved)


@router.get("/transactions", response_model=List[TransactionResponse])
def list_transactions(
    type: Optional[TransactionType] = None,
    transactions: TransactionRepository = Depends(get_transaction_repository),
):
    """All transactions, newest first, optionally of one type"""
    records = transactions.list_by_type(type) if type else transactions.list_all()
    return [TransactionResponse.model_validate(t) for t in records]


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    transactions: TransactionRepository = Depends(get_transaction_repository),
):
    transaction = transactions.get_by_id(transaction_id)
    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.model_validate(transaction)


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    body: TransactionRequest,
    request: Request,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    try:
        saved = await reconciler.edit_transaction(_to_transaction(body, request, transaction_id))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Error updating transaction: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error updating transaction")
    return TransactionResponse.model_validate(saved)


@router.delete("/transactions/{transaction_id}", response_model=DeleteResponse)
async def delete_transaction(
    transaction_id: int,
    request: Request,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    try:
        result = await reconciler.remove_transaction(transaction_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Error deleting transaction: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error deleting transaction")
    return DeleteResponse(remote_deleted=bool(result.success and result.value), message=result.message or None)
