from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account, EntryType, LedgerEntry
from app.models.ledger import MONEY


class AccountRepository:
    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        account_type: str,
        currency: str,
    ) -> Account:
        account = Account(user_id=user_id, account_type=account_type, currency=currency)
        db.add(account)
        await db.flush()
        return account

    async def get_by_id(self, db: AsyncSession, account_id: int) -> Account | None:
        result = await db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    async def get_balance(self, db: AsyncSession, account_id: int) -> Decimal:
        """
        Credits minus debits over every entry of the account, read through the
        caller's session. Zero when the account has no entries or does not exist.
        """
        signed_amount = case(
            (LedgerEntry.entry_type == EntryType.CREDIT, LedgerEntry.amount),
            else_=-LedgerEntry.amount,
        )
        result = await db.execute(
            select(func.coalesce(func.sum(signed_amount), 0, type_=MONEY)).where(
                LedgerEntry.account_id == account_id
            )
        )
        balance = result.scalar_one()
        return Decimal(balance) if balance is not None else Decimal("0")

    async def lock_accounts_for_update(
        self,
        db: AsyncSession,
        account_ids: list[int],
    ) -> list[Account]:
        """Lock accounts by ID in ascending order to avoid deadlocks."""
        if not account_ids:
            return []
        ordered_ids = sorted(set(account_ids))
        result = await db.execute(
            select(Account).where(Account.id.in_(ordered_ids)).order_by(Account.id).with_for_update()
        )
        return list(result.scalars().all())


account_repo = AccountRepository()
