"""
API key model.

A static key identifies the account making a request.
Keys are issued and revoked by account management.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payment_ledger.models.base import Base


class ApiKey(Base):
    __tablename__ = "api_keys"
    __table_args__ = (
        Index("ix_api_keys_key_active", "key", "is_active"),
    )

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )

    account: Mapped["Account"] = relationship(back_populates="api_keys")

    def __repr__(self) -> str:
        # Never render the key itself
        return f"<ApiKey account={self.account_id} active={self.is_active}>"
