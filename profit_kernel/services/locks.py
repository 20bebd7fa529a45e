"""
In-process mutual exclusion keyed by an arbitrary string.

Two quarterly runs for the same period key, or two payments against the same
distribution or commission, must not interleave inside one process.  Runs for
different keys proceed in parallel.  Cross-process exclusion is the job of
the database (unique period key, conditional UPDATEs, FOR UPDATE).
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLock:
    """A lock per key, created on demand and dropped when nobody holds it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._waiters: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
