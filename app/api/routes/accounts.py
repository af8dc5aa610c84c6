from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import (
    AccountBalanceResponse,
    AccountCreateRequest,
    AccountResponse,
    LedgerEntryResponse,
)
from app.services.exceptions import AccountNotFoundError, TransactionValidationError
from app.services.ledger import ledger_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
)
async def create_account(
    body: AccountCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        account = await ledger_service.create_account(db, body.user_id, body.account_type, body.currency)
    except TransactionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return account


@router.get(
    "/{account_id}",
    response_model=AccountBalanceResponse,
    summary="Get account with balance",
    description="Account details with the balance derived from its ledger entries.",
)
async def get_account(
    account_id: int = Path(..., description="Account id"),
    db: AsyncSession = Depends(get_db),
):
    try:
        account, balance = await ledger_service.get_account_with_balance(db, account_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
    return AccountBalanceResponse(
        id=account.id,
        user_id=account.user_id,
        account_type=account.account_type,
        currency=account.currency,
        created_at=account.created_at,
        balance=balance,
    )


@router.get(
    "/{account_id}/ledger",
    response_model=list[LedgerEntryResponse],
    summary="Ledger history",
    description="Ledger entries of the account, oldest first.",
)
async def get_ledger(
    account_id: int = Path(..., description="Account id"),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ledger_service.get_ledger(db, account_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
