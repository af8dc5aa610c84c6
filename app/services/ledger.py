"""
Ledger service: deposit, withdraw and transfer with double-entry bookkeeping.

Every money movement is one unit of work on the request's session. Debits are
authorized against a balance read under an exclusive hold on the account, and
any failure rolls the whole unit back before the hold is released.
"""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account, LedgerEntry, Transaction, TransactionType
from app.models.types import MONEY_PRECISION, MONEY_SCALE
from app.repositories import account_repo, ledger_repo
from app.services.exceptions import (
    AccountNotFoundError,
    InfrastructureError,
    InsufficientFundsError,
    TransactionNotFoundError,
    TransactionValidationError,
)
from app.services.locking import AccountLockManager

logger = logging.getLogger(__name__)

AMOUNT_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)
# Whole digits left once four places go to the fraction
MAX_AMOUNT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)


class AccountBalance(NamedTuple):
    account: Account
    balance: Decimal


def _require_positive_amount(amount) -> Decimal:
    if amount is None:
        raise TransactionValidationError("Amount is required")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        raise TransactionValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise TransactionValidationError("Amount must be positive")
    if value >= MAX_AMOUNT:
        raise TransactionValidationError(f"Amount must be below {MAX_AMOUNT}")
    quantized = value.quantize(AMOUNT_QUANTUM)
    if quantized != value:
        raise TransactionValidationError(f"Amount supports at most {MONEY_SCALE} decimal places")
    return quantized


def _require_text(field: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise TransactionValidationError(f"{field} is required")
    return str(value).strip()


class LedgerService:
    def __init__(self, locks: AccountLockManager | None = None) -> None:
        self.locks = locks or AccountLockManager()

    @asynccontextmanager
    async def _atomic(self, db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
        """
        One unit of work: commit on success, roll back on any exception.
        Store failures surface as InfrastructureError; business errors pass through.
        """
        try:
            async with db.begin():
                yield db
        except (OSError, SQLAlchemyError) as exc:
            logger.exception("%s failed; unit of work rolled back", operation)
            raise InfrastructureError(f"{operation} failed") from exc

    async def create_account(
        self,
        db: AsyncSession,
        user_id: str,
        account_type: str,
        currency: str,
    ) -> Account:
        user_id = _require_text("user_id", user_id)
        account_type = _require_text("account_type", account_type)
        currency = _require_text("currency", currency).upper()
        async with self._atomic(db, "create_account"):
            account = await account_repo.create(db, user_id, account_type, currency)
        logger.info("Created account %s for user %s", account.id, user_id)
        return account

    async def get_account_with_balance(self, db: AsyncSession, account_id: int) -> AccountBalance:
        async with self._atomic(db, "get_account_with_balance"):
            account = await account_repo.get_by_id(db, account_id)
            if account is None:
                raise AccountNotFoundError(account_id)
            balance = await account_repo.get_balance(db, account_id)
        return AccountBalance(account, balance)

    async def get_ledger(self, db: AsyncSession, account_id: int) -> list[LedgerEntry]:
        """Entries of the account, oldest first."""
        async with self._atomic(db, "get_ledger"):
            if await account_repo.get_by_id(db, account_id) is None:
                raise AccountNotFoundError(account_id)
            return await ledger_repo.get_entries_for_account(db, account_id)

    async def get_transaction(self, db: AsyncSession, transaction_id: int) -> Transaction:
        async with self._atomic(db, "get_transaction"):
            tx = await ledger_repo.get_transaction(db, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(transaction_id)
        return tx

    async def deposit(
        self,
        db: AsyncSession,
        account_id: int,
        amount: Decimal,
        currency: str,
        description: str | None = None,
    ) -> Transaction:
        """
        Credit an account. Credits commute, so no exclusive hold is taken; the
        entry and status update still commit or roll back together.
        """
        amount = _require_positive_amount(amount)
        currency = _require_text("currency", currency).upper()
        async with self._atomic(db, "deposit"):
            if await account_repo.get_by_id(db, account_id) is None:
                raise AccountNotFoundError(account_id)
            tx = await ledger_repo.record(
                db,
                TransactionType.DEPOSIT,
                amount,
                currency,
                credit_account_id=account_id,
                description=description,
            )
        logger.info("Deposit %s completed: %s %s to account %s", tx.id, amount, currency, account_id)
        return tx

    async def withdraw(
        self,
        db: AsyncSession,
        account_id: int,
        amount: Decimal,
        currency: str,
        description: str | None = None,
    ) -> Transaction:
        """Debit an account. Fails with InsufficientFundsError if the balance does not cover it."""
        amount = _require_positive_amount(amount)
        currency = _require_text("currency", currency).upper()
        async with self.locks.hold([account_id]):
            async with self._atomic(db, "withdraw"):
                locked = await account_repo.lock_accounts_for_update(db, [account_id])
                if not locked:
                    raise AccountNotFoundError(account_id)
                await self._ensure_funds(db, account_id, amount)
                tx = await ledger_repo.record(
                    db,
                    TransactionType.WITHDRAWAL,
                    amount,
                    currency,
                    debit_account_id=account_id,
                    description=description,
                )
        logger.info("Withdrawal %s completed: %s %s from account %s", tx.id, amount, currency, account_id)
        return tx

    async def transfer(
        self,
        db: AsyncSession,
        source_account_id: int,
        destination_account_id: int,
        amount: Decimal,
        currency: str,
        description: str | None = None,
    ) -> Transaction:
        """
        Move funds between two accounts as one transaction with a debit on the
        source and a credit on the destination. Both accounts are held in
        ascending id order whichever direction the money flows.
        """
        amount = _require_positive_amount(amount)
        currency = _require_text("currency", currency).upper()
        if source_account_id == destination_account_id:
            raise TransactionValidationError("Source and destination accounts must differ")
        account_ids = [source_account_id, destination_account_id]
        async with self.locks.hold(account_ids):
            async with self._atomic(db, "transfer"):
                locked = await account_repo.lock_accounts_for_update(db, account_ids)
                found = {account.id for account in locked}
                for account_id in account_ids:
                    if account_id not in found:
                        raise AccountNotFoundError(account_id)
                await self._ensure_funds(db, source_account_id, amount)
                tx = await ledger_repo.record(
                    db,
                    TransactionType.TRANSFER,
                    amount,
                    currency,
                    debit_account_id=source_account_id,
                    credit_account_id=destination_account_id,
                    description=description,
                )
        logger.info(
            "Transfer %s completed: %s %s from account %s to account %s",
            tx.id,
            amount,
            currency,
            source_account_id,
            destination_account_id,
        )
        return tx

    async def _ensure_funds(self, db: AsyncSession, account_id: int, amount: Decimal) -> None:
        """Must run under the account's hold, inside the unit that will write the debit."""
        balance = await account_repo.get_balance(db, account_id)
        if balance < amount:
            logger.info("Rejected debit of %s on account %s: balance %s", amount, account_id, balance)
            raise InsufficientFundsError(account_id, balance, amount)


ledger_service = LedgerService()
