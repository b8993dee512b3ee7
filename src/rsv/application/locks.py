from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date

from rsv.domain.common.ids import TableId

TableNightKey = tuple[str, str]


class TableNightLocks:
    """Per-(table, night) mutual exclusion for check-and-write sequences.

    Keys are always acquired in sorted order so callers locking several table
    nights at once cannot deadlock each other. Lock objects are reference
    counted and dropped once no caller holds or waits on them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[TableNightKey, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, nights: Iterable[tuple[TableId, date]]) -> Iterator[None]:
        keys = sorted({(str(table_id), night.isoformat()) for table_id, night in nights})
        locks = [self._register(key) for key in keys]
        acquired: list[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in keys:
                self._forget(key)

    def _register(self, key: TableNightKey) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
            return lock

    def _forget(self, key: TableNightKey) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_DEFAULT_LOCKS = TableNightLocks()


def default_table_night_locks() -> TableNightLocks:
    return _DEFAULT_LOCKS
