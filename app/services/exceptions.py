"""Errors raised by the ledger core.

Business-rule failures (validation, not found, insufficient funds) are
recoverable by the caller. ``InfrastructureError`` means the store failed and
the unit of work was rolled back; it never carries store details.
"""
from decimal import Decimal


class LedgerError(Exception):
    pass


class TransactionValidationError(LedgerError, ValueError):
    pass


class AccountNotFoundError(LedgerError):
    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class TransactionNotFoundError(LedgerError):
    def __init__(self, transaction_id: int):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class InsufficientFundsError(LedgerError):
    def __init__(self, account_id: int, balance: Decimal, requested: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.requested = requested
        super().__init__(f"Insufficient funds: have {balance}, need {requested}")


class InfrastructureError(LedgerError):
    pass


class LedgerEntryImmutableError(LedgerError):
    pass
