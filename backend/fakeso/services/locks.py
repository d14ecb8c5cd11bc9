import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import DefaultDict, Dict, Hashable, Iterator


class KeyedLock:
    """One re-entrant lock per key, created on first use.

    Used to serialize read-modify-write sequences on a single chat or game,
    so that two concurrent requests never act on the same stale row.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}
        self._users: DefaultDict[Hashable, int] = defaultdict(int)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._users[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] <= 0:
                    # Nobody waiting; drop it so the table does not grow forever
                    self._users.pop(key, None)
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
