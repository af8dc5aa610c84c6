from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import EntryType, LedgerEntry, Transaction, TransactionStatus, TransactionType
from app.services.exceptions import TransactionValidationError


class LedgerRepository:
    async def create_transaction(
        self,
        db: AsyncSession,
        transaction_type: TransactionType,
        amount: Decimal,
        currency: str,
        source_account_id: int | None = None,
        destination_account_id: int | None = None,
        description: str | None = None,
    ) -> Transaction:
        tx = Transaction(
            type=transaction_type,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            amount=amount,
            currency=currency,
            status=TransactionStatus.PENDING,
            description=description,
        )
        db.add(tx)
        await db.flush()
        return tx

    async def add_entry(
        self,
        db: AsyncSession,
        transaction: Transaction,
        account_id: int,
        entry_type: EntryType,
        amount: Decimal,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            transaction_id=transaction.id,
            account_id=account_id,
            entry_type=entry_type,
            amount=amount,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def mark_completed(self, db: AsyncSession, transaction: Transaction) -> Transaction:
        transaction.status = TransactionStatus.COMPLETED
        await db.flush()
        return transaction

    async def record(
        self,
        db: AsyncSession,
        transaction_type: TransactionType,
        amount: Decimal,
        currency: str,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
        description: str | None = None,
    ) -> Transaction:
        """
        Write a completed transaction and its entries inside the caller's unit of work:
        pending row, a debit on the source and/or a credit on the destination, then
        status completed. Nothing is visible to other sessions until the unit commits.
        Funds sufficiency is the caller's concern.
        """
        if amount is None or amount <= 0:
            raise TransactionValidationError("Amount must be positive")
        if debit_account_id is None and credit_account_id is None:
            raise TransactionValidationError("A transaction needs at least one account")

        tx = await self.create_transaction(
            db,
            transaction_type,
            amount,
            currency,
            source_account_id=debit_account_id,
            destination_account_id=credit_account_id,
            description=description,
        )
        if debit_account_id is not None:
            await self.add_entry(db, tx, debit_account_id, EntryType.DEBIT, amount)
        if credit_account_id is not None:
            await self.add_entry(db, tx, credit_account_id, EntryType.CREDIT, amount)
        return await self.mark_completed(db, tx)

    async def get_entries_for_account(self, db: AsyncSession, account_id: int) -> list[LedgerEntry]:
        result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at, LedgerEntry.id)
        )
        return list(result.scalars().all())

    async def get_transaction(self, db: AsyncSession, transaction_id: int) -> Transaction | None:
        result = await db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .options(selectinload(Transaction.entries))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


ledger_repo = LedgerRepository()
