"""AccountLockManager ordering and mutual exclusion."""
import asyncio

import pytest

from app.services.locking import AccountLockManager


@pytest.fixture
def locks() -> AccountLockManager:
    return AccountLockManager()


class TestLockOrder:
    def test_ascending_and_deduplicated(self) -> None:
        assert AccountLockManager.lock_order([7, 3, 7, 5]) == [3, 5, 7]

    async def test_hold_reports_acquisition_order(self, locks: AccountLockManager) -> None:
        async with locks.hold([9, 2]) as ordered:
            assert ordered == [2, 9]
            assert locks.is_locked(2)
            assert locks.is_locked(9)
        assert not locks.is_locked(2)
        assert not locks.is_locked(9)

    async def test_released_on_exception(self, locks: AccountLockManager) -> None:
        with pytest.raises(RuntimeError):
            async with locks.hold([1]):
                raise RuntimeError("boom")
        assert not locks.is_locked(1)


class TestMutualExclusion:
    async def test_same_account_serialized(self, locks: AccountLockManager) -> None:
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold([1]):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    async def test_different_accounts_do_not_block(self, locks: AccountLockManager) -> None:
        async with locks.hold([1]):
            await asyncio.wait_for(self._enter(locks, [2]), timeout=1)

    async def test_opposite_order_pairs_do_not_deadlock(self, locks: AccountLockManager) -> None:
        async def worker(ids: list[int]) -> None:
            for _ in range(20):
                async with locks.hold(ids):
                    await asyncio.sleep(0)

        await asyncio.wait_for(asyncio.gather(worker([1, 2]), worker([2, 1])), timeout=5)

    @staticmethod
    async def _enter(locks: AccountLockManager, ids: list[int]) -> None:
        async with locks.hold(ids):
            pass
