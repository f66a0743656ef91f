"""
Account service: read-only lookups on accounts and API keys.

The ledger never creates, bans or verifies accounts. It only
asks this service whether an account exists and what its
status flags are, and resolves an API key to the account that
owns it.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from payment_ledger.models.account import Account
from payment_ledger.models.api_key import ApiKey

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: int) -> Account | None:
        """Return the account, or None if it does not exist."""
        return self.db.get(Account, account_id)

    def account_exists(self, account_id: int) -> bool:
        return self.get_account(account_id) is not None

    def is_banned(self, account_id: int) -> bool:
        """
        Unknown accounts count as banned.

        Callers that need to tell the two apart check
        account_exists first.
        """
        account = self.get_account(account_id)
        return account is None or account.banned

    def is_verified(self, account_id: int) -> bool:
        account = self.get_account(account_id)
        return account is not None and account.verified

    def is_active_participant(self, account_id: int) -> bool:
        """True if the account exists and is not banned."""
        account = self.get_account(account_id)
        return account is not None and not account.banned

    def validate_api_key(self, key: str) -> int | None:
        """
        Resolve an API key to its account id.

        A key is accepted only if it is active and its account
        is verified and not banned. Returns None otherwise.
        Records when the key was last used.
        """
        if not key:
            return None

        row = self.db.execute(
            select(ApiKey, Account)
            .join(Account, ApiKey.account_id == Account.id)
            .where(
                ApiKey.key == key,
                ApiKey.is_active.is_(True),
                Account.banned.is_(False),
                Account.verified.is_(True),
            )
            .limit(1)
        ).first()

        if row is None:
            logger.warning("Rejected API key")
            return None

        api_key, account = row
        api_key.last_used_at = datetime.utcnow()
        self.db.commit()
        return account.id
