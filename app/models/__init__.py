from app.models.account import Account
from app.models.ledger import EntryType, LedgerEntry, Transaction, TransactionStatus, TransactionType

__all__ = [
    "Account",
    "EntryType",
    "LedgerEntry",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
