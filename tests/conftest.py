"""
pytest fixtures shared by the ledger tests.

Each test gets its own file-backed SQLite database so that concurrent sessions
run on separate connections, as they would against a real server.
"""
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.database import Base, build_engine, build_sessionmaker
from app.models import Account
from app.services.ledger import LedgerService


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncEngine:
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def service() -> LedgerService:
    return LedgerService()


@pytest.fixture
def make_account(session_factory, service: LedgerService):
    """Create an account in its own session, optionally funded by a deposit."""

    async def _make(user_id: str = "user-1", opening: Decimal | str | None = None, currency: str = "USD") -> Account:
        async with session_factory() as session:
            account = await service.create_account(session, user_id, "checking", currency)
        if opening is not None:
            async with session_factory() as session:
                await service.deposit(session, account.id, Decimal(opening), currency, "opening balance")
        return account

    return _make


@pytest.fixture
def balance_of(session_factory, service: LedgerService):
    async def _balance(account_id: int) -> Decimal:
        async with session_factory() as session:
            return (await service.get_account_with_balance(session, account_id)).balance

    return _balance


@pytest.fixture
def count_rows(session_factory):
    """Row count of a model, read from a fresh session."""

    async def _count(model, *criteria) -> int:
        async with session_factory() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return (await session.execute(stmt)).scalar_one()

    return _count
