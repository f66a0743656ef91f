"""
Balance and history API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from payment_ledger.api.deps import get_current_account_id
from payment_ledger.models.base import get_db
from payment_ledger.models.enums import MutationType
from payment_ledger.schemas.history import (
    BalanceData,
    BalanceResponse,
    MutationPageResponse,
    TransactionPageResponse,
)
from payment_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api", tags=["Ledger"])


@router.get("/balance", response_model=BalanceResponse)
def get_balance(
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Current balance of the authenticated account (0 if never credited)."""
    balance = LedgerService(db).get_balance(account_id)
    return BalanceResponse(data=BalanceData(balance=balance))


@router.get("/trx", response_model=TransactionPageResponse)
def list_transactions(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Transactions sent or received by the authenticated account, newest first."""
    page = LedgerService(db).list_transactions(account_id, limit, offset)
    return TransactionPageResponse(data=page)


@router.get("/mut", response_model=MutationPageResponse)
def list_mutations(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    type: MutationType | None = Query(default=None),
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """
    Balance changes of the authenticated account, newest first.

    The summary covers every mutation matching the type filter.
    """
    page = LedgerService(db).list_mutations(account_id, limit, offset, type)
    return MutationPageResponse(data=page)
