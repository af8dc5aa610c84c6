from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from app.models import EntryType, TransactionStatus, TransactionType

Amount = Annotated[Decimal, Field(gt=0, max_digits=18, decimal_places=4, description="Positive amount")]
Currency = Annotated[str, Field(pattern=r"^[A-Za-z]{3}$", description="ISO 4217 code, recorded as given")]
Description = Annotated[str | None, Field(max_length=255)]


class DepositRequest(BaseModel):
    account_id: int
    amount: Amount
    currency: Currency
    description: Description = None


class WithdrawalRequest(BaseModel):
    account_id: int
    amount: Amount
    currency: Currency
    description: Description = None


class TransferRequest(BaseModel):
    source_account: int
    destination_account: int
    amount: Amount
    currency: Currency
    description: Description = None


class TransactionResponse(BaseModel):
    transaction_id: int
    status: TransactionStatus
    message: str


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    transaction_id: int
    entry_type: EntryType
    amount: Decimal
    created_at: datetime


class TransactionDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    source_account_id: int | None
    destination_account_id: int | None
    amount: Decimal
    currency: str
    status: TransactionStatus
    description: str | None
    created_at: datetime
    entries: list[LedgerEntryResponse]
