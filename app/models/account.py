from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.ledger import LedgerEntry


class Account(Base):
    """A user's money account. Balance is never stored; it is folded from ledger entries."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    account_type: Mapped[str] = mapped_column(String(32), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    ledger_entries: Mapped[list["LedgerEntry"]] = relationship(back_populates="account")

    def __repr__(self) -> str:
        return f"Account(id={self.id}, user_id={self.user_id!r}, type={self.account_type!r}, currency={self.currency})"
