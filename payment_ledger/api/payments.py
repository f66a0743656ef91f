"""
Payment API endpoint.

The endpoint is thin: the sender is the account behind the
API key, everything else is decided by PaymentService.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from payment_ledger.api.deps import get_current_account_id, get_lock_manager
from payment_ledger.models.base import get_db
from payment_ledger.schemas.payment import PaymentRequest, PaymentResponse
from payment_ledger.services.locks import AccountLockManager
from payment_ledger.services.payment_service import PaymentService

router = APIRouter(prefix="/api", tags=["Payments"])


@router.post("/pay", response_model=PaymentResponse)
def pay(
    request: PaymentRequest,
    account_id: int = Depends(get_current_account_id),
    db: Session = Depends(get_db),
    lock_manager: AccountLockManager = Depends(get_lock_manager),
):
    """
    Send a payment from the authenticated account to another account.

    Failures are returned as {"success": false, "error", "code"}
    by the PaymentError handler.
    """
    service = PaymentService(db, lock_manager)
    result = service.process_payment(
        sender_id=account_id,
        receiver_id=request.recipient_id,
        amount=request.amount,
        order_id=request.order_id,
        payment_method=request.payment_method,
        product_name=request.product_name,
        notes=request.notes,
    )
    return PaymentResponse(data=result)
