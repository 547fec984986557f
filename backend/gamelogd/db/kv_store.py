"""
Key-Value Store
===============

Persistence port used by every service. Values are JSON text.

- RedisKeyValueStore: primary store (redis-py, bounded by socket timeouts)
- InMemoryKeyValueStore: process-local store, used when no REDIS_URL is set,
  as the ephemeral fallback behind Redis, and in tests

Key layout:
- user:{user_id}                 user record (with password hash)
- user_email:{email}             email -> user id
- preferences:{user_id}          UserPreferences document
- notes:{user_id}:{game_id}      GameNote
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import redis

from gamelogd.preferences.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Storage is temporarily unavailable. Please try again."


class KeyValueStore(ABC):
    """get / set / delete / list_keys plus a conditional write for CAS."""

    name = "kv"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def list_keys(self, prefix: str) -> List[str]:
        ...

    @abstractmethod
    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        """
        Write ``value`` only if the key still holds ``expected``.

        ``expected=None`` means the key must not exist.

        Returns:
            True if written, False if another writer changed the key first
        """

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe dict-backed store. Contents die with the process."""

    name = "memory"

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list_keys(self, prefix: str) -> List[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))

    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        with self._lock:
            if self._data.get(key) != expected:
                return False
            self._data[key] = value
            return True


class RedisKeyValueStore(KeyValueStore):
    """
    Redis-backed store.

    Every redis.RedisError is re-raised as StoreUnavailableError so callers
    can fall back to an ephemeral copy.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        redis_client: Optional[redis.Redis] = None,
        socket_timeout: float = 5.0
    ):
        """
        Args:
            redis_url: Redis URL (redis://host:port/db)
            redis_client: Existing client (optional, built from redis_url if None)
            socket_timeout: Connect and read timeout in seconds
        """
        if redis_client is not None:
            self.redis_client = redis_client
        else:
            self.redis_client = redis.Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout
            )

        logger.info(f"RedisKeyValueStore initialized: socket_timeout={socket_timeout}s")

    def _unavailable(self, op: str, key: str, error: Exception) -> StoreUnavailableError:
        logger.error(f"Redis error during {op} {key!r}: {error}")
        return StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.redis_client.get(key)
        except redis.RedisError as e:
            raise self._unavailable("get", key, e) from e

    def set(self, key: str, value: str) -> None:
        try:
            self.redis_client.set(key, value)
        except redis.RedisError as e:
            raise self._unavailable("set", key, e) from e

    def delete(self, key: str) -> None:
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            raise self._unavailable("delete", key, e) from e

    def list_keys(self, prefix: str) -> List[str]:
        try:
            return sorted(self.redis_client.scan_iter(match=f"{prefix}*"))
        except redis.RedisError as e:
            raise self._unavailable("scan", prefix, e) from e

    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        try:
            with self.redis_client.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    if pipe.get(key) != expected:
                        pipe.unwatch()
                        return False
                    pipe.multi()
                    pipe.set(key, value)
                    pipe.execute()
                    return True
                except redis.WatchError:
                    return False
        except redis.RedisError as e:
            raise self._unavailable("compare_and_set", key, e) from e
