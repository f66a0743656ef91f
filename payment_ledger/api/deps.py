"""
Shared FastAPI dependencies.
"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from payment_ledger.api.errors import AuthenticationError
from payment_ledger.models.base import get_db
from payment_ledger.services.account_service import AccountService
from payment_ledger.services.locks import AccountLockManager


def get_current_account_id(
    x_api_key: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> int:
    """
    Authenticate the request by its X-API-Key header.

    Returns the id of the verified, non-banned account that
    owns the key.
    """
    if not x_api_key:
        raise AuthenticationError(
            "API key is required for this endpoint", "MISSING_API_KEY"
        )

    account_id = AccountService(db).validate_api_key(x_api_key)
    if account_id is None:
        raise AuthenticationError(
            "The provided API key is invalid or has been revoked",
            "INVALID_API_KEY",
        )
    return account_id


def get_lock_manager(request: Request) -> AccountLockManager:
    """The process-wide lock manager owned by the application."""
    return request.app.state.lock_manager
