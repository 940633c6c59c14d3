"""Cache adapters for fetched content.

Provides:
    * The two-method adapter contract, in a synchronous (:class:`CacheAdapter`)
      and an asynchronous (:class:`AsyncCacheAdapter`) flavour.
    * An unbounded in-memory adapter used by default, one per client.
    * Optional Redis-backed adapters for sharing cached content between
      processes.
    * The expiration envelope and the pure lookup procedure the fetcher uses
      to decide between "serve from cache" and "go to the network".

Design goals:
    1. Deterministic keys: keys are md5 hashes of the fully resolved URL, so
       the environment tag, selector and language all take part.
    2. Fail soft: adapter errors and malformed payloads become cache misses.
    3. Expiration lives in the client, not the adapter. Values are stored as
       ``{"data": ..., "_ts": <epoch millis>}`` when an expiration window is
       configured and as the bare JSON value otherwise; both shapes are read.

Quick examples:

Local adapter::

    from sleekcms.cache import MemoryCacheAdapter
    adapter = MemoryCacheAdapter()
    adapter.set_item("k", '{"pages": []}')
    assert adapter.get_item("k") == '{"pages": []}'

Lookup decision::

    from sleekcms.cache import CacheHit, encode_cached, interpret_cached
    raw = encode_cached({"pages": []}, expiration_minutes=5, now=1000.0)
    assert isinstance(interpret_cached(raw, 5, now=1010.0), CacheHit)

Redis (shared between processes)::

    from sleekcms.cache import RedisCacheAdapter
    adapter = RedisCacheAdapter.from_url("redis://localhost:6379/0", ttl=600)
"""

from __future__ import annotations

import abc
import hashlib
import inspect
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .errors import CacheError, ConfigError

logger = logging.getLogger(__name__)

KEY_PREFIX = "sleekcms:"
ENVELOPE_DATA = "data"
ENVELOPE_TS = "_ts"


def make_cache_key(url: str) -> str:
    """Create the cache key for a fully resolved content URL."""
    return f"{KEY_PREFIX}{hashlib.md5(url.encode()).hexdigest()}"


class CacheAdapter(abc.ABC):
    """Synchronous key/value store consulted by the fetcher."""

    @abc.abstractmethod
    def get_item(self, key: str) -> Optional[Any]:
        """Return the stored value or ``None`` when absent."""

    @abc.abstractmethod
    def set_item(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class AsyncCacheAdapter(abc.ABC):
    """Asynchronous counterpart of :class:`CacheAdapter`."""

    @abc.abstractmethod
    async def get_item(self, key: str) -> Optional[Any]:
        """Return the stored value or ``None`` when absent."""

    @abc.abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


AnyCacheAdapter = Union[CacheAdapter, AsyncCacheAdapter]


def _is_async_shaped(adapter: Any) -> bool:
    return inspect.iscoroutinefunction(
        getattr(adapter, "get_item", None)
    ) and inspect.iscoroutinefunction(getattr(adapter, "set_item", None))


def _require_methods(adapter: Any) -> None:
    if not (callable(getattr(adapter, "get_item", None)) and callable(getattr(adapter, "set_item", None))):
        raise ConfigError(
            f"{type(adapter).__name__} does not implement get_item/set_item"
        )


class _DuckSyncAdapter(CacheAdapter):
    """Wraps an object that only has the right method names."""

    def __init__(self, target: Any):
        self._target = target

    def get_item(self, key: str) -> Optional[Any]:
        return self._target.get_item(key)

    def set_item(self, key: str, value: Any) -> None:
        self._target.set_item(key, value)


class _DuckAsyncAdapter(AsyncCacheAdapter):
    def __init__(self, target: Any):
        self._target = target

    async def get_item(self, key: str) -> Optional[Any]:
        return await self._target.get_item(key)

    async def set_item(self, key: str, value: Any) -> None:
        await self._target.set_item(key, value)


class SyncAdapterBridge(AsyncCacheAdapter):
    """Presents a synchronous adapter through the asynchronous contract."""

    def __init__(self, adapter: CacheAdapter):
        self.adapter = adapter

    async def get_item(self, key: str) -> Optional[Any]:
        return self.adapter.get_item(key)

    async def set_item(self, key: str, value: Any) -> None:
        self.adapter.set_item(key, value)


def as_sync_adapter(adapter: Any) -> Optional[CacheAdapter]:
    """Select the synchronous view of ``adapter`` once, at construction.

    Raises:
        ConfigError: For asynchronous adapters, which a blocking fetcher
            cannot drive.
    """
    if adapter is None or isinstance(adapter, CacheAdapter):
        return adapter
    if isinstance(adapter, AsyncCacheAdapter) or _is_async_shaped(adapter):
        raise ConfigError("An async cache adapter requires the async client")
    _require_methods(adapter)
    return _DuckSyncAdapter(adapter)


def as_async_adapter(adapter: Any) -> Optional[AsyncCacheAdapter]:
    """Select the asynchronous view of ``adapter`` once, at construction."""
    if adapter is None or isinstance(adapter, AsyncCacheAdapter):
        return adapter
    if isinstance(adapter, CacheAdapter):
        return SyncAdapterBridge(adapter)
    _require_methods(adapter)
    if _is_async_shaped(adapter):
        return _DuckAsyncAdapter(adapter)
    return SyncAdapterBridge(_DuckSyncAdapter(adapter))


class MemoryCacheAdapter(CacheAdapter):
    """Unbounded in-process store, scoped to the client that owns it.

    Notes:
        * Single-thread oriented, like the clients themselves.
        * Memory footprint estimation is approximate (shallow object sizes).
    """

    def __init__(self) -> None:
        self._store: Dict[str, Any] = {}

    def get_item(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self._store[key] = value

    def invalidate(self, key: str) -> None:
        """Remove specific entry from cache."""
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def _estimate_memory_usage(self) -> float:
        """Estimate memory usage of cache in MB."""
        total_size = sys.getsizeof(self._store)
        for key, value in self._store.items():
            total_size += sys.getsizeof(key) + sys.getsizeof(value)
        return total_size / (1024 * 1024)

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "cache_size": len(self._store),
            "memory_usage_mb": self._estimate_memory_usage(),
        }


class RedisCacheAdapter(CacheAdapter):
    """Redis-backed adapter for content shared across processes.

    Backend errors are re-raised as :class:`CacheError`; the fetcher treats
    them as misses, so a Redis outage degrades to plain network fetches.

    Args:
        redis_client: A ``redis.Redis`` (or ``fakeredis.FakeRedis``) instance.
        prefix: Namespace prepended to every key.
        ttl: Optional native expiry in seconds, applied with ``SETEX``.
    """

    def __init__(self, redis_client: Any, prefix: str = "", ttl: Optional[int] = None):
        self._redis = redis_client
        self.prefix = prefix
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisCacheAdapter":
        import redis

        return cls(redis.from_url(url), **kwargs)

    def get_item(self, key: str) -> Optional[Any]:
        try:
            blob = self._redis.get(self.prefix + key)
        except Exception as e:
            raise CacheError(f"redis get failed: {e}") from e
        return _decode_blob(blob)

    def set_item(self, key: str, value: Any) -> None:
        try:
            if self.ttl:
                self._redis.setex(self.prefix + key, int(self.ttl), value)
            else:
                self._redis.set(self.prefix + key, value)
        except Exception as e:
            raise CacheError(f"redis set failed: {e}") from e


class AsyncRedisCacheAdapter(AsyncCacheAdapter):
    """:class:`RedisCacheAdapter` for ``redis.asyncio`` clients."""

    def __init__(self, redis_client: Any, prefix: str = "", ttl: Optional[int] = None):
        self._redis = redis_client
        self.prefix = prefix
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "AsyncRedisCacheAdapter":
        from redis import asyncio as aioredis

        return cls(aioredis.from_url(url), **kwargs)

    async def get_item(self, key: str) -> Optional[Any]:
        try:
            blob = await self._redis.get(self.prefix + key)
        except Exception as e:
            raise CacheError(f"redis get failed: {e}") from e
        return _decode_blob(blob)

    async def set_item(self, key: str, value: Any) -> None:
        try:
            if self.ttl:
                await self._redis.setex(self.prefix + key, int(self.ttl), value)
            else:
                await self._redis.set(self.prefix + key, value)
        except Exception as e:
            raise CacheError(f"redis set failed: {e}") from e


def _decode_blob(blob: Any) -> Any:
    if isinstance(blob, bytes):
        try:
            return blob.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CacheError("cached value is not UTF-8") from e
    return blob


# ---------------- Lookup results -----------------


@dataclass(frozen=True)
class CacheHit:
    data: Any


@dataclass(frozen=True)
class CacheMiss:
    pass


@dataclass(frozen=True)
class CacheExpired:
    written_at: float


@dataclass(frozen=True)
class CacheInvalid:
    reason: str


CacheLookup = Union[CacheHit, CacheMiss, CacheExpired, CacheInvalid]


def encode_cached(data: Any, expiration_minutes: Optional[float], now: float) -> str:
    """Serialize ``data`` for storage, enveloped when expiration is in use.

    Args:
        data: Decoded JSON value returned by the API.
        expiration_minutes: Expiration window; ``None`` stores the bare value.
        now: Current time in epoch seconds.
    """
    if expiration_minutes is None:
        return json.dumps(data)
    return json.dumps({ENVELOPE_DATA: data, ENVELOPE_TS: int(now * 1000)})


def _is_envelope(value: Any) -> bool:
    return isinstance(value, dict) and set(value) == {ENVELOPE_DATA, ENVELOPE_TS}


def interpret_cached(raw: Any, expiration_minutes: Optional[float], now: float) -> CacheLookup:
    """Classify a raw adapter payload.

    Args:
        raw: Whatever the adapter returned (JSON text, or an already decoded
            value for adapters that store objects).
        expiration_minutes: Expiration window; ``None`` disables expiry.
        now: Current time in epoch seconds.
    Returns:
        ``CacheMiss`` for absent values, ``CacheInvalid`` for undecodable or
        mis-shaped values, ``CacheExpired`` for enveloped values older than
        the window, ``CacheHit`` otherwise.
    """
    if raw is None:
        return CacheMiss()
    value = raw
    if isinstance(raw, (str, bytes)):
        try:
            value = json.loads(raw)
        except ValueError as e:
            return CacheInvalid(f"not JSON: {e}")

    if expiration_minutes is None:
        return CacheHit(value[ENVELOPE_DATA] if _is_envelope(value) else value)

    if not _is_envelope(value):
        return CacheInvalid("missing expiration envelope")
    ts = value[ENVELOPE_TS]
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        return CacheInvalid("envelope timestamp is not a number")
    written_at = ts / 1000.0
    if now - written_at > expiration_minutes * 60:
        return CacheExpired(written_at)
    return CacheHit(value[ENVELOPE_DATA])
