"""
Per-account exclusive holds for operations that check a balance and then debit it.

The hold lives in-process (one asyncio.Lock per account id) so it also works on
stores without row locks. Row locks via SELECT ... FOR UPDATE are taken on top
of it inside the unit of work by the caller.
"""
import asyncio
import logging
import weakref
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

logger = logging.getLogger(__name__)


class AccountLockManager:
    def __init__(self) -> None:
        # Idle locks drop out once nobody references them.
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, account_id: int) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    @staticmethod
    def lock_order(account_ids: Iterable[int]) -> list[int]:
        """Ascending, de-duplicated ids: the only order holds are ever taken in."""
        return sorted(set(account_ids))

    def is_locked(self, account_id: int) -> bool:
        lock = self._locks.get(account_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, account_ids: Iterable[int]) -> AsyncIterator[list[int]]:
        """
        Hold every account in ``account_ids`` until the block exits.
        Acquired in ascending id order and released in reverse, so two flows that
        touch the same pair of accounts in opposite directions cannot deadlock.
        """
        ordered = self.lock_order(account_ids)
        async with AsyncExitStack() as stack:
            for account_id in ordered:
                lock = self._lock_for(account_id)
                if lock.locked():
                    logger.debug("Waiting for hold on account %s", account_id)
                await stack.enter_async_context(lock)
            yield ordered
