from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """A family of mutexes addressed by string key.

    Entries are reference counted and dropped once no thread holds or waits on
    them, so the table only grows with the number of keys in flight.
    Multiple keys are always acquired in sorted order.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _release(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry[0].release()
            entry[1] -= 1
            if entry[1] <= 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        ordered = sorted({str(key) for key in keys if key})
        acquired: list[str] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)


# Serializes read-modify-write sequences on one account record (wallet,
# trial usage, parental block, subscription).
account_locks = KeyedLock()

# Serializes uniqueness checks and friend-edge creation between two accounts.
identity_locks = KeyedLock()


def account_key(account_id: str) -> str:
    return f"account:{account_id}"


def pair_key(first_id: str, second_id: str) -> str:
    low, high = sorted((str(first_id), str(second_id)))
    return f"pair:{low}:{high}"
