from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import (
    DepositRequest,
    TransactionDetailResponse,
    TransactionResponse,
    TransferRequest,
    WithdrawalRequest,
)
from app.services.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    TransactionNotFoundError,
    TransactionValidationError,
)
from app.services.ledger import ledger_service

router = APIRouter()


@router.post(
    "/deposits",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit",
    description="Credit an account.",
)
async def deposit(
    body: DepositRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        tx = await ledger_service.deposit(db, body.account_id, body.amount, body.currency, body.description)
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
    except TransactionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TransactionResponse(transaction_id=tx.id, status=tx.status, message="Deposit successful")


@router.post(
    "/withdrawals",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Withdraw",
    description="Debit an account. Fails if the balance is insufficient.",
)
async def withdraw(
    body: WithdrawalRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        tx = await ledger_service.withdraw(db, body.account_id, body.amount, body.currency, body.description)
    except InsufficientFundsError:
        raise HTTPException(status_code=422, detail="Insufficient funds")
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
    except TransactionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TransactionResponse(transaction_id=tx.id, status=tx.status, message="Withdrawal successful")


@router.post(
    "/transfers",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer",
    description="Move funds between two accounts. Fails if the source balance is insufficient.",
)
async def transfer(
    body: TransferRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        tx = await ledger_service.transfer(
            db,
            body.source_account,
            body.destination_account,
            body.amount,
            body.currency,
            body.description,
        )
    except InsufficientFundsError:
        raise HTTPException(status_code=422, detail="Insufficient funds")
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail="Account not found")
    except TransactionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TransactionResponse(transaction_id=tx.id, status=tx.status, message="Transfer successful")


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionDetailResponse,
    summary="Get transaction",
    description="A transaction together with its ledger entries.",
)
async def get_transaction(
    transaction_id: int = Path(..., description="Transaction id"),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ledger_service.get_transaction(db, transaction_id)
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
