"""
Mutation model.

Each mutation is one side of a transfer: a debit on the
sender or a credit on the receiver. Mutations are append-only;
once written they are never modified or deleted.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Text, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payment_ledger.models.base import Base
from payment_ledger.models.enums import MutationType


class Mutation(Base):
    """
    An immutable record of a single balance change.

    balance is the amount after the change, prev_balance the
    amount before it. For a debit the difference is negative,
    for a credit it is positive. The pairing rule (one debit and
    one credit of equal size per transaction) is enforced by the
    PaymentService, not by the model.
    """

    __tablename__ = "mutations"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    prev_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    type: Mapped[MutationType] = mapped_column(
        SAEnum(
            MutationType,
            name="mutation_type_enum",
            create_constraint=True,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
        ),
        nullable=False,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    transaction: Mapped["Transaction | None"] = relationship(
        back_populates="mutations"
    )

    @property
    def delta(self) -> Decimal:
        """Signed change applied by this mutation."""
        return self.balance - self.prev_balance

    def __repr__(self) -> str:
        return (
            f"<Mutation {self.type.value} account={self.account_id} "
            f"{self.prev_balance}->{self.balance}>"
        )
