"""Per-league mutual exclusion.

Schedule generation, schedule clearing, status transitions, match
scheduling and result submission for the same league must not interleave:
two concurrent generations could both see "no matches" and both insert a
schedule.  ``league_transaction`` holds the lock from the first read to the
commit, so a second request only starts reading once the first one's
writes have landed.  Locks are in-process only; a multi-process deployment
needs a version column on ``leagues`` instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from padeliga.db.repository import Repository


class LeagueLocks:
    """One ``asyncio.Lock`` per league ID, alive only while someone uses it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        # Holder plus waiters per league; the entry goes when this drops to zero.
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, league_id: str) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(league_id, asyncio.Lock())
        self._users[league_id] = self._users.get(league_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[league_id] -= 1
            if not self._users[league_id]:
                del self._users[league_id]
                del self._locks[league_id]

    def is_locked(self, league_id: str) -> bool:
        lock = self._locks.get(league_id)
        return lock is not None and lock.locked()


# Shared registry for the running application.
league_locks = LeagueLocks()


@asynccontextmanager
async def league_transaction(
    repo: Repository,
    league_id: str,
    locks: LeagueLocks | None = None,
) -> AsyncGenerator[None, None]:
    """Hold a league's lock across one whole transaction, commit included.

    Whatever the session already has open is committed on entry, so reads
    under the lock start from a fresh snapshot.  The block's writes are
    committed before the lock is released.  On failure nothing is committed
    here; ``Repository.atomic`` has already undone partial writes and the
    session owner rolls back.
    """
    async with (locks or league_locks).hold(league_id):
        await repo.commit()
        yield
        await repo.commit()
