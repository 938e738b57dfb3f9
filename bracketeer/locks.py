"""Keyed mutual exclusion for read-modify-write cycles on shared documents."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLocks:
    """Registry of locks addressed by string keys.

    The document store only offers whole-document reads and writes, so every
    mutation of a document runs inside ``hold(key)`` for that document. Locks
    are created lazily and live for the lifetime of the registry.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._lock_for(key)
        with lock:
            yield

    def is_held(self, key: str) -> bool:
        """Return True if some thread currently holds ``key``."""
        with self._registry_lock:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)


def tournament_key(tournament_id: str) -> str:
    """Lock key for a tournament document."""
    return f"tournament:{tournament_id}"


def user_key(user_id: str) -> str:
    """Lock key for a user document."""
    return f"user:{user_id}"


def auto_pair_key(game_id: str, size: int) -> str:
    """Lock key for an auto-tournament (game, size) slot."""
    return f"auto:{game_id}:{size}"
