import threading
from contextlib import contextmanager


class KeyedLocks:
    """One re-entrant lock per key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def get(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, key):
        with self.get(key):
            yield
