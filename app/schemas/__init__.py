from app.schemas.account import (
    AccountBalanceResponse,
    AccountCreateRequest,
    AccountResponse,
)
from app.schemas.transaction import (
    DepositRequest,
    LedgerEntryResponse,
    TransactionDetailResponse,
    TransactionResponse,
    TransferRequest,
    WithdrawalRequest,
)

__all__ = [
    "AccountBalanceResponse",
    "AccountCreateRequest",
    "AccountResponse",
    "DepositRequest",
    "LedgerEntryResponse",
    "TransactionDetailResponse",
    "TransactionResponse",
    "TransferRequest",
    "WithdrawalRequest",
]
