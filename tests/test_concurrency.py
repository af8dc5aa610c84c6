"""Concurrent money movements on shared accounts."""
import asyncio
from decimal import Decimal

from app.models import Transaction, TransactionType
from app.services.exceptions import InsufficientFundsError


class TestConcurrentWithdrawals:
    async def test_only_one_of_two_overdrawing_withdrawals_succeeds(
        self, session_factory, service, make_account, balance_of, count_rows
    ) -> None:
        account = await make_account(opening="100")

        async def withdraw(amount: str):
            async with session_factory() as session:
                return await service.withdraw(session, account.id, Decimal(amount), "USD")

        results = await asyncio.wait_for(
            asyncio.gather(withdraw("70"), withdraw("70"), return_exceptions=True), timeout=30
        )

        succeeded = [r for r in results if isinstance(r, Transaction)]
        rejected = [r for r in results if isinstance(r, InsufficientFundsError)]
        assert len(succeeded) == 1
        assert len(rejected) == 1
        assert await balance_of(account.id) == Decimal("30")
        assert await count_rows(Transaction, Transaction.type == TransactionType.WITHDRAWAL) == 1

    async def test_account_never_goes_negative(self, session_factory, service, make_account, balance_of) -> None:
        account = await make_account(opening="100")

        async def withdraw():
            async with session_factory() as session:
                return await service.withdraw(session, account.id, Decimal("15"), "USD")

        results = await asyncio.wait_for(
            asyncio.gather(*(withdraw() for _ in range(10)), return_exceptions=True), timeout=30
        )

        assert sum(isinstance(r, Transaction) for r in results) == 6
        assert sum(isinstance(r, InsufficientFundsError) for r in results) == 4
        assert await balance_of(account.id) == Decimal("10")


class TestConcurrentTransfers:
    async def test_opposite_directions_both_complete(self, session_factory, service, make_account, balance_of) -> None:
        alice = await make_account("alice", opening="100")
        bob = await make_account("bob", opening="100")

        async def transfer(source, destination):
            async with session_factory() as session:
                return await service.transfer(session, source.id, destination.id, Decimal("60"), "USD")

        results = await asyncio.wait_for(
            asyncio.gather(transfer(alice, bob), transfer(bob, alice), return_exceptions=True), timeout=30
        )

        assert all(isinstance(r, Transaction) for r in results)
        assert await balance_of(alice.id) == Decimal("100")
        assert await balance_of(bob.id) == Decimal("100")

    async def test_total_is_conserved(self, session_factory, service, make_account, balance_of) -> None:
        accounts = [await make_account(f"user-{i}", opening="50") for i in range(3)]
        pairs = [(0, 1), (1, 2), (2, 0), (1, 0), (2, 1), (0, 2)] * 2

        async def transfer(i: int, j: int):
            async with session_factory() as session:
                return await service.transfer(session, accounts[i].id, accounts[j].id, Decimal("20"), "USD")

        results = await asyncio.wait_for(
            asyncio.gather(*(transfer(i, j) for i, j in pairs), return_exceptions=True), timeout=60
        )

        assert all(isinstance(r, (Transaction, InsufficientFundsError)) for r in results)
        balances = [await balance_of(a.id) for a in accounts]
        assert sum(balances) == Decimal("150")
        assert all(b >= 0 for b in balances)


class TestConcurrentDeposits:
    async def test_deposits_all_land(self, session_factory, service, make_account, balance_of) -> None:
        account = await make_account()

        async def deposit():
            async with session_factory() as session:
                return await service.deposit(session, account.id, Decimal("10"), "USD")

        results = await asyncio.wait_for(asyncio.gather(*(deposit() for _ in range(5))), timeout=60)

        assert len({tx.id for tx in results}) == 5
        assert await balance_of(account.id) == Decimal("50")


class TestDepositsAlongsideDebits:
    async def test_deposit_not_blocked_by_held_account(self, session_factory, service, make_account, balance_of) -> None:
        account = await make_account(opening="10")

        async with service.locks.hold([account.id]):
            async with session_factory() as session:
                await asyncio.wait_for(service.deposit(session, account.id, Decimal("5"), "USD"), timeout=30)

        assert await balance_of(account.id) == Decimal("15")

    async def test_interleaved_deposits_and_withdrawals(
        self, session_factory, service, make_account, balance_of
    ) -> None:
        account = await make_account(opening="10")

        async def deposit():
            async with session_factory() as session:
                return await service.deposit(session, account.id, Decimal("10"), "USD")

        async def withdraw():
            async with session_factory() as session:
                return await service.withdraw(session, account.id, Decimal("15"), "USD")

        operations = []
        for _ in range(8):
            operations.extend([withdraw(), deposit()])
        results = await asyncio.wait_for(asyncio.gather(*operations, return_exceptions=True), timeout=60)

        assert all(isinstance(r, (Transaction, InsufficientFundsError)) for r in results)
        withdrawals = sum(isinstance(r, Transaction) and r.type == TransactionType.WITHDRAWAL for r in results)
        deposits = sum(isinstance(r, Transaction) and r.type == TransactionType.DEPOSIT for r in results)
        assert deposits == 8

        final = await balance_of(account.id)
        assert final == Decimal("10") + Decimal("10") * deposits - Decimal("15") * withdrawals
        assert final >= 0

        # Writers commit one at a time, so entry ids follow commit order.
        async with session_factory() as session:
            entries = await service.get_ledger(session, account.id)
        running = Decimal("0")
        for entry in sorted(entries, key=lambda e: e.id):
            running += entry.signed_amount
            assert running >= 0
        assert running == final
