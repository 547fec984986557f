"""
Read-modify-write strategies for the preference document.

Every mutation loads the whole document, changes a copy and writes the whole
document back. Two writers for the same user can therefore drop each other's
change unless one of these strategies serialises them:

- LastWriterWins ("none"): no coordination
- KeyedLockStrategy ("lock"): one lock per user id, within this process
- CompareAndSwapStrategy ("cas"): conditional write, re-run on conflict;
  works across processes sharing one Redis
"""

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Callable

from gamelogd.preferences.errors import ConflictError
from gamelogd.preferences.models import UserPreferences
from gamelogd.preferences.store import PreferenceStore, WriteResult

logger = logging.getLogger(__name__)

Mutation = Callable[[UserPreferences], UserPreferences]


class ConcurrencyStrategy(ABC):
    name = "base"

    def __init__(self, store: PreferenceStore):
        self.store = store

    @abstractmethod
    def apply(self, user_id: str, mutate: Mutation) -> WriteResult:
        """Load the user's preferences, apply ``mutate``, persist the result."""


class LastWriterWins(ConcurrencyStrategy):
    name = "none"

    def apply(self, user_id: str, mutate: Mutation) -> WriteResult:
        preferences = self.store.load(user_id)
        return self.store.save(user_id, mutate(preferences))


class KeyedLockStrategy(ConcurrencyStrategy):
    name = "lock"

    def __init__(self, store: PreferenceStore):
        super().__init__(store)
        # Entries vanish once no request holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def apply(self, user_id: str, mutate: Mutation) -> WriteResult:
        with self.lock_for(user_id):
            preferences = self.store.load(user_id)
            return self.store.save(user_id, mutate(preferences))


class CompareAndSwapStrategy(ConcurrencyStrategy):
    name = "cas"

    def __init__(self, store: PreferenceStore, max_attempts: int = 5):
        super().__init__(store)
        self.max_attempts = max(1, max_attempts)

    def apply(self, user_id: str, mutate: Mutation) -> WriteResult:
        for attempt in range(self.max_attempts):
            snapshot = self.store.snapshot(user_id)
            result = self.store.save_if_unchanged(user_id, mutate(snapshot.preferences), snapshot)
            if result is not None:
                return result
            logger.info(
                f"Concurrent update for user {user_id}, "
                f"re-applying change (attempt {attempt + 1}/{self.max_attempts})"
            )

        logger.error(f"Gave up updating preferences for user {user_id} after {self.max_attempts} attempts")
        raise ConflictError("Your preferences changed while saving. Please try again.")


def build_strategy(name: str, store: PreferenceStore, cas_max_attempts: int = 5) -> ConcurrencyStrategy:
    """Build the strategy named by the CONCURRENCY_STRATEGY setting."""
    if name == LastWriterWins.name:
        return LastWriterWins(store)
    if name == KeyedLockStrategy.name:
        return KeyedLockStrategy(store)
    if name == CompareAndSwapStrategy.name:
        return CompareAndSwapStrategy(store, max_attempts=cas_max_attempts)
    raise ValueError(f"Unknown concurrency strategy: {name!r} (expected none, lock or cas)")
