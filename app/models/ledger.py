from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, String, event, func
from sqlalchemy.orm import Mapped, mapped_column, object_session, relationship

from app.database import Base, utcnow
from app.models.types import Money
from app.services.exceptions import LedgerEntryImmutableError

if TYPE_CHECKING:
    from app.models.account import Account

MONEY = Money()


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class EntryType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class Transaction(Base):
    """One requested money movement. Created pending and completed in the same unit of work."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=_enum_values, name="transaction_type"),
        nullable=False,
    )
    source_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    destination_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, values_callable=_enum_values, name="transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
    )
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    entries: Mapped[list["LedgerEntry"]] = relationship(back_populates="transaction", order_by="LedgerEntry.id")

    __table_args__ = (CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),)

    def __repr__(self) -> str:
        return f"Transaction(id={self.id}, type={self.type.value}, amount={self.amount}, status={self.status.value})"


class LedgerEntry(Base):
    """Single append-only line in the ledger. Amount is always positive; entry_type carries the sign."""

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    entry_type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, values_callable=_enum_values, name="entry_type"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    transaction: Mapped[Transaction] = relationship(back_populates="entries")
    account: Mapped["Account"] = relationship(back_populates="ledger_entries")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        Index("ix_ledger_entries_account_created", "account_id", "created_at"),
    )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.entry_type == EntryType.CREDIT else -self.amount

    def __repr__(self) -> str:
        return (
            f"LedgerEntry(id={self.id}, account_id={self.account_id}, "
            f"{self.entry_type.value} {self.amount}, transaction_id={self.transaction_id})"
        )


@event.listens_for(LedgerEntry, "before_update")
def _reject_entry_update(mapper, connection, target: LedgerEntry) -> None:
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise LedgerEntryImmutableError(f"Ledger entry {target.id} is append-only")


@event.listens_for(LedgerEntry, "before_delete")
def _reject_entry_delete(mapper, connection, target: LedgerEntry) -> None:
    raise LedgerEntryImmutableError(f"Ledger entry {target.id} is append-only")
