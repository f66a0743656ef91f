"""
Transaction model.

An immutable record of one completed transfer between two
accounts. Duplicate processing is prevented by the unique
order_id constraint.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Text, Boolean, Integer, DateTime, Numeric, ForeignKey,
    CheckConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payment_ledger.models.base import Base


class Transaction(Base):
    """
    One completed payment.

    updated_at exists for future use; the ledger never
    modifies a transaction after inserting it.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint(
            "sender_id <> receiver_id", name="ck_transactions_distinct_parties"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    receiver_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    items: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    order_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    payment_method: Mapped[str] = mapped_column(
        String(50), nullable=False, default="transfer"
    )
    grand_total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False
    )
    product_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    # Relationships
    sender: Mapped["Account"] = relationship(foreign_keys=[sender_id])
    receiver: Mapped["Account"] = relationship(foreign_keys=[receiver_id])
    mutations: Mapped[list["Mutation"]] = relationship(
        back_populates="transaction"
    )

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.order_id} "
            f"{self.sender_id}->{self.receiver_id} {self.amount}>"
        )
