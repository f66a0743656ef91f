"""Business logic services."""

from payment_ledger.services.account_service import AccountService
from payment_ledger.services.ledger_service import LedgerService
from payment_ledger.services.locks import AccountLockManager
from payment_ledger.services.payment_service import PaymentService

__all__ = [
    "AccountService",
    "LedgerService",
    "AccountLockManager",
    "PaymentService",
]
