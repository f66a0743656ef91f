"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from payment_ledger.models.base import Base
from payment_ledger.models.enums import MutationType, TransactionDirection
from payment_ledger.models.account import Account
from payment_ledger.models.api_key import ApiKey
from payment_ledger.models.balance import Balance
from payment_ledger.models.transaction import Transaction
from payment_ledger.models.mutation import Mutation

__all__ = [
    "Base",
    "MutationType",
    "TransactionDirection",
    "Account",
    "ApiKey",
    "Balance",
    "Transaction",
    "Mutation",
]
