# arena/games/core/kv_store.py
"""
Key-value collaborator used by the room/game services.

Two backends share one small interface:
  - MemoryStore  ("memory://")  in-process, for dev and tests
  - RedisStore   ("redis://...") redis-py, for anything shared across workers

Every single call is atomic on its own. Nothing here offers multi-key
transactions; callers lean on hsetnx / sadd return values / set(nx=True)
where a check-then-act would otherwise race.
"""
from __future__ import annotations
import functools
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple
import logging

import redis

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """The backing store failed (connection, timeout, wrong type...)."""


class KVStore(ABC):
    """Interface only. Values come back as str (or None when absent)."""

    # ---- strings / keys ----
    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...
    @abstractmethod
    def set(self, key: str, value: Any, ex: Optional[int] = None, nx: bool = False) -> bool: ...
    @abstractmethod
    def delete(self, *keys: str) -> int: ...
    @abstractmethod
    def exists(self, key: str) -> bool: ...
    @abstractmethod
    def expire(self, key: str, seconds: int) -> bool: ...

    # ---- hashes ----
    @abstractmethod
    def hget(self, key: str, field: str) -> Optional[str]: ...
    @abstractmethod
    def hset(self, key: str, field: Optional[str] = None, value: Any = None,
             mapping: Optional[Mapping[str, Any]] = None) -> int: ...
    @abstractmethod
    def hsetnx(self, key: str, field: str, value: Any) -> bool: ...
    @abstractmethod
    def hgetall(self, key: str) -> Dict[str, str]: ...
    @abstractmethod
    def hdel(self, key: str, *fields: str) -> int: ...
    @abstractmethod
    def hexists(self, key: str, field: str) -> bool: ...
    @abstractmethod
    def hincrby(self, key: str, field: str, amount: int = 1) -> int: ...

    # ---- sets ----
    @abstractmethod
    def sadd(self, key: str, *members: str) -> int: ...
    @abstractmethod
    def srem(self, key: str, *members: str) -> int: ...
    @abstractmethod
    def smembers(self, key: str) -> Set[str]: ...
    @abstractmethod
    def sismember(self, key: str, member: str) -> bool: ...
    @abstractmethod
    def scard(self, key: str) -> int: ...

    def close(self) -> None:
        pass


# ============================================================
# In-process backend
# ============================================================

class MemoryStore(KVStore):
    """
    Dict-backed store with lazy per-key expiry. `clock` is injectable so
    tests can move time forward instead of sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._data: Dict[str, Any] = {}
        self._expires: Dict[str, float] = {}
        self._lock = threading.RLock()

    # -------- internals --------
    def _live(self, key: str) -> bool:
        exp = self._expires.get(key)
        if exp is not None and exp <= self.clock():
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return key in self._data

    def _typed(self, key: str, kind: type, create: bool = False):
        if not self._live(key):
            if not create:
                return None
            self._data[key] = kind()
        val = self._data[key]
        if not isinstance(val, kind):
            raise StoreError(f"WRONGTYPE key {key!r} holds {type(val).__name__}")
        return val

    # -------- strings / keys --------
    def get(self, key):
        with self._lock:
            return self._typed(key, str)

    def set(self, key, value, ex=None, nx=False):
        with self._lock:
            if nx and self._live(key):
                return False
            self._data[key] = str(value)
            if ex is not None:
                self._expires[key] = self.clock() + int(ex)
            else:
                self._expires.pop(key, None)
            return True

    def delete(self, *keys):
        with self._lock:
            n = 0
            for k in keys:
                if self._live(k):
                    n += 1
                self._data.pop(k, None)
                self._expires.pop(k, None)
            return n

    def exists(self, key):
        with self._lock:
            return self._live(key)

    def expire(self, key, seconds):
        with self._lock:
            if not self._live(key):
                return False
            self._expires[key] = self.clock() + int(seconds)
            return True

    # -------- hashes --------
    def hget(self, key, field):
        with self._lock:
            h = self._typed(key, dict)
            return h.get(field) if h else None

    def hset(self, key, field=None, value=None, mapping=None):
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        if not items:
            raise StoreError("hset needs at least one field")
        with self._lock:
            h = self._typed(key, dict, create=True)
            added = sum(1 for f in items if f not in h)
            h.update({f: str(v) for f, v in items.items()})
            return added

    def hsetnx(self, key, field, value):
        with self._lock:
            h = self._typed(key, dict, create=True)
            if field in h:
                return False
            h[field] = str(value)
            return True

    def hgetall(self, key):
        with self._lock:
            return dict(self._typed(key, dict) or {})

    def hdel(self, key, *fields):
        with self._lock:
            h = self._typed(key, dict)
            if not h:
                return 0
            n = sum(1 for f in fields if h.pop(f, None) is not None)
            if not h:
                self.delete(key)
            return n

    def hexists(self, key, field):
        with self._lock:
            h = self._typed(key, dict)
            return bool(h) and field in h

    def hincrby(self, key, field, amount=1):
        with self._lock:
            h = self._typed(key, dict, create=True)
            try:
                val = int(h.get(field, 0)) + int(amount)
            except ValueError:
                raise StoreError(f"hash value {key}.{field} is not an integer") from None
            h[field] = str(val)
            return val

    # -------- sets --------
    def sadd(self, key, *members):
        with self._lock:
            s = self._typed(key, set, create=True)
            before = len(s)
            s.update(str(m) for m in members)
            return len(s) - before

    def srem(self, key, *members):
        with self._lock:
            s = self._typed(key, set)
            if not s:
                return 0
            n = 0
            for m in members:
                if str(m) in s:
                    s.discard(str(m))
                    n += 1
            if not s:
                self.delete(key)
            return n

    def smembers(self, key):
        with self._lock:
            return set(self._typed(key, set) or ())

    def sismember(self, key, member):
        with self._lock:
            s = self._typed(key, set)
            return bool(s) and str(member) in s

    def scard(self, key):
        with self._lock:
            return len(self._typed(key, set) or ())


# ============================================================
# Redis backend
# ============================================================

def _wrap(fn):
    @functools.wraps(fn)
    def inner(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except redis.RedisError as e:
            logger.exception("redis %s failed", fn.__name__)
            raise StoreError(f"{fn.__name__} failed: {e}") from e
    return inner


class RedisStore(KVStore):
    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    @_wrap
    def get(self, key):
        return self.client.get(key)

    @_wrap
    def set(self, key, value, ex=None, nx=False):
        return bool(self.client.set(key, value, ex=ex, nx=nx))

    @_wrap
    def delete(self, *keys):
        return int(self.client.delete(*keys)) if keys else 0

    @_wrap
    def exists(self, key):
        return bool(self.client.exists(key))

    @_wrap
    def expire(self, key, seconds):
        return bool(self.client.expire(key, seconds))

    @_wrap
    def hget(self, key, field):
        return self.client.hget(key, field)

    @_wrap
    def hset(self, key, field=None, value=None, mapping=None):
        return int(self.client.hset(key, key=field, value=value, mapping=mapping))

    @_wrap
    def hsetnx(self, key, field, value):
        return bool(self.client.hsetnx(key, field, value))

    @_wrap
    def hgetall(self, key):
        return dict(self.client.hgetall(key))

    @_wrap
    def hdel(self, key, *fields):
        return int(self.client.hdel(key, *fields)) if fields else 0

    @_wrap
    def hexists(self, key, field):
        return bool(self.client.hexists(key, field))

    @_wrap
    def hincrby(self, key, field, amount=1):
        return int(self.client.hincrby(key, field, amount))

    @_wrap
    def sadd(self, key, *members):
        return int(self.client.sadd(key, *members)) if members else 0

    @_wrap
    def srem(self, key, *members):
        return int(self.client.srem(key, *members)) if members else 0

    @_wrap
    def smembers(self, key):
        return set(self.client.smembers(key))

    @_wrap
    def sismember(self, key, member):
        return bool(self.client.sismember(key, member))

    @_wrap
    def scard(self, key):
        return int(self.client.scard(key))

    def close(self) -> None:
        try:
            self.client.close()
        except redis.RedisError:
            logger.warning("redis close failed", exc_info=True)


# ============================================================
# Factory
# ============================================================

_REDIS_SCHEMES: Tuple[str, ...] = ("redis://", "rediss://", "unix://")


def build_store(url: str, clock: Callable[[], float] = time.time) -> KVStore:
    url = (url or "").strip()
    if url.startswith("memory://"):
        return MemoryStore(clock=clock)
    if url.startswith(_REDIS_SCHEMES):
        return RedisStore.from_url(url)
    raise ValueError(f"unsupported KV_URL {url!r} (use memory:// or redis://)")
