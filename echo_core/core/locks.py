"""Per-key lock registry.

Mutations for one key are serialized; distinct keys never contend beyond the
brief registry lookup.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, Iterator


class KeyedLocks:
    def __init__(self):
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, key: Hashable) -> threading.Lock:
        lock = self._locks.get(key)
        if lock is not None:
            return lock
        with self._registry_lock:
            return self._locks.setdefault(key, threading.Lock())

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self.lock_for(key):
            yield

    @contextmanager
    def hold_many(self, keys: Iterable[Hashable]) -> Iterator[None]:
        """Acquire several keys in a stable order so callers cannot deadlock."""
        ordered = sorted(set(keys), key=repr)
        acquired = []
        try:
            for key in ordered:
                lock = self.lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)
