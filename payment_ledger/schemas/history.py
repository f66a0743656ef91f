"""
Pydantic schemas for balance and history queries.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from payment_ledger.models.enums import MutationType, TransactionDirection


# --- Balance ---

class BalanceData(BaseModel):
    balance: Decimal


class BalanceResponse(BaseModel):
    success: bool = True
    data: BalanceData


# --- Transactions ---

class TransactionItem(BaseModel):
    id: uuid.UUID
    sender_id: int
    receiver_id: int
    amount: Decimal
    paid: bool
    items: int
    order_id: str
    payment_method: str
    grand_total: Decimal
    product_name: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    direction: TransactionDirection


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class TransactionPage(BaseModel):
    items: list[TransactionItem]
    pagination: Pagination

    @property
    def total(self) -> int:
        return self.pagination.total

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more


# --- Mutations ---

class MutationItem(BaseModel):
    id: uuid.UUID
    account_id: int
    balance: Decimal
    prev_balance: Decimal
    type: MutationType
    note: str | None
    transaction_id: uuid.UUID | None
    created_at: datetime


class MutationSummary(BaseModel):
    """Totals over every mutation matching the query, not just one page."""
    total_debits: Decimal
    total_credits: Decimal
    net_change: Decimal


class MutationPage(BaseModel):
    items: list[MutationItem]
    pagination: Pagination
    summary: MutationSummary

    @property
    def total(self) -> int:
        return self.pagination.total

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more


class TransactionPageResponse(BaseModel):
    success: bool = True
    data: TransactionPage


class MutationPageResponse(BaseModel):
    success: bool = True
    data: MutationPage
