from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class AccountCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128, description="Owner of the account")
    account_type: str = Field(..., min_length=1, max_length=32, description="e.g. checking, savings")
    currency: str = Field(..., pattern=r"^[A-Za-z]{3}$", description="ISO 4217 code, e.g. USD")


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    account_type: str
    currency: str
    created_at: datetime


class AccountBalanceResponse(AccountResponse):
    balance: Decimal
