"""
Account model.

An account is a ledger participant. Accounts are created,
banned and verified by account management; the ledger only
reads them.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payment_ledger.models.base import Base


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String(50), nullable=False, default="user"
    )
    banned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    balance: Mapped["Balance | None"] = relationship(back_populates="account")
    api_keys: Mapped[list["ApiKey"]] = relationship(back_populates="account")

    def __repr__(self) -> str:
        flags = []
        if self.banned:
            flags.append("banned")
        if self.verified:
            flags.append("verified")
        return f"<Account {self.id} {self.email} ({', '.join(flags) or 'new'})>"
