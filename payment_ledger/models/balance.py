"""
Balance model.

One row per account, holding the spendable amount. The row
is created lazily on the first credit; an account without a
row has a balance of zero.

Only the payment service writes to this table.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payment_ledger.models.base import Base


class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_balances_amount_non_negative"),
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="balance")

    def __repr__(self) -> str:
        return f"<Balance account={self.account_id} {self.amount}>"
