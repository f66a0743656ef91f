"""
Ledger service: balance and history queries.

Everything here is read-only. Reads take no locks; each query
sees the last committed state, never a payment in progress.
"""

from decimal import Decimal

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session, aliased

from payment_ledger.config import Settings, get_settings
from payment_ledger.exceptions import InvalidRequest
from payment_ledger.models.balance import Balance
from payment_ledger.models.enums import MutationType, TransactionDirection
from payment_ledger.models.mutation import Mutation
from payment_ledger.models.transaction import Transaction
from payment_ledger.schemas.history import (
    MutationItem,
    MutationPage,
    MutationSummary,
    Pagination,
    TransactionItem,
    TransactionPage,
)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    # SQLite hands back floats from aggregates
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT)


class LedgerService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def _clamp(self, limit: int | None, offset: int | None) -> tuple[int, int]:
        """Clamp the page size to 1..MAX_PAGE_SIZE and the offset to >= 0."""
        if limit is None:
            limit = self.settings.DEFAULT_PAGE_SIZE
        limit = max(1, min(limit, self.settings.MAX_PAGE_SIZE))
        offset = max(0, offset or 0)
        return limit, offset

    def get_balance(self, account_id: int) -> Decimal:
        """
        Return the account's balance.

        An account that has never been credited has no balance
        row; its balance is zero, not an error.
        """
        amount = self.db.execute(
            select(Balance.amount).where(Balance.account_id == account_id)
        ).scalar_one_or_none()
        return _money(amount)

    def list_transactions(
        self,
        account_id: int,
        limit: int | None = None,
        offset: int | None = 0,
    ) -> TransactionPage:
        """
        Return transactions the account sent or received, newest first.

        Each item carries a direction: 'sent' when the account
        is the sender, 'received' otherwise.
        """
        limit, offset = self._clamp(limit, offset)
        involves_account = or_(
            Transaction.sender_id == account_id,
            Transaction.receiver_id == account_id,
        )

        total = self.db.execute(
            select(func.count()).select_from(Transaction).where(involves_account)
        ).scalar_one()

        transactions = self.db.execute(
            select(Transaction)
            .where(involves_account)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        items = [
            TransactionItem(
                id=txn.external_id,
                sender_id=txn.sender_id,
                receiver_id=txn.receiver_id,
                amount=_money(txn.amount),
                paid=txn.paid,
                items=txn.items,
                order_id=txn.order_id,
                payment_method=txn.payment_method,
                grand_total=_money(txn.grand_total),
                product_name=txn.product_name,
                notes=txn.notes,
                created_at=txn.created_at,
                updated_at=txn.updated_at,
                direction=(
                    TransactionDirection.SENT
                    if txn.sender_id == account_id
                    else TransactionDirection.RECEIVED
                ),
            )
            for txn in transactions
        ]

        return TransactionPage(
            items=items,
            pagination=Pagination(
                limit=limit,
                offset=offset,
                total=total,
                has_more=offset + limit < total,
            ),
        )

    def list_mutations(
        self,
        account_id: int,
        limit: int | None = None,
        offset: int | None = 0,
        mutation_type: MutationType | str | None = None,
    ) -> MutationPage:
        """
        Return the account's mutations, newest first.

        The summary covers every mutation matching the filter,
        not only the returned page:
            total_debits  = sum of |balance - prev_balance| over debits
            total_credits = sum of (balance - prev_balance) over credits
            net_change    = total_credits - total_debits
        """
        limit, offset = self._clamp(limit, offset)
        if mutation_type is not None:
            try:
                mutation_type = MutationType(mutation_type)
            except ValueError:
                allowed = ", ".join(t.value for t in MutationType)
                raise InvalidRequest(
                    f"Invalid mutation type '{mutation_type}': expected one of {allowed}"
                )

        conditions = [Mutation.account_id == account_id]
        if mutation_type is not None:
            conditions.append(Mutation.type == mutation_type)

        total = self.db.execute(
            select(func.count()).select_from(Mutation).where(*conditions)
        ).scalar_one()

        txn = aliased(Transaction)
        rows = self.db.execute(
            select(Mutation, txn.external_id)
            .outerjoin(txn, Mutation.transaction_id == txn.id)
            .where(*conditions)
            .order_by(Mutation.created_at.desc(), Mutation.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()

        items = [
            MutationItem(
                id=mutation.external_id,
                account_id=mutation.account_id,
                balance=_money(mutation.balance),
                prev_balance=_money(mutation.prev_balance),
                type=mutation.type,
                note=mutation.note,
                transaction_id=transaction_external_id,
                created_at=mutation.created_at,
            )
            for mutation, transaction_external_id in rows
        ]

        return MutationPage(
            items=items,
            pagination=Pagination(
                limit=limit,
                offset=offset,
                total=total,
                has_more=offset + limit < total,
            ),
            summary=self._summarize_mutations(conditions),
        )

    def _summarize_mutations(self, conditions: list) -> MutationSummary:
        totals = dict(
            self.db.execute(
                select(
                    Mutation.type,
                    func.coalesce(
                        func.sum(Mutation.balance - Mutation.prev_balance), 0
                    ),
                )
                .where(*conditions)
                .group_by(Mutation.type)
            ).all()
        )

        total_debits = abs(_money(totals.get(MutationType.DEBIT)))
        total_credits = abs(_money(totals.get(MutationType.CREDIT)))
        return MutationSummary(
            total_debits=total_debits,
            total_credits=total_credits,
            net_change=total_credits - total_debits,
        )
