"""Content fetchers: URL building, cache consultation and HTTP exchange.

Both fetchers follow the same procedure for every call:

    1. Validate the options (token, routing mode) and the selector syntax.
    2. Build the fully resolved URL. With ``cdn`` enabled the environment
       alias is first resolved to an immutable tag, once per fetcher.
    3. Consult the cache adapter. Adapter errors, undecodable payloads and
       expired envelopes are misses; a fresh value short-circuits.
    4. ``GET`` the URL with the token as ``Authorization``. Non-2xx responses
       raise :class:`~sleekcms.errors.FetchError`, preferring the server's
       ``message`` over the reason phrase.
    5. Write the decoded body back to the adapter (best effort).
    6. Return the decoded body.

:class:`ContentFetcher` is blocking (``httpx.Client``);
:class:`AsyncContentFetcher` is its ``httpx.AsyncClient`` twin. Each owns the
HTTP client only when it created it.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from .cache import (
    AsyncCacheAdapter,
    CacheAdapter,
    CacheExpired,
    CacheHit,
    CacheInvalid,
    CacheLookup,
    MemoryCacheAdapter,
    as_async_adapter,
    as_sync_adapter,
    encode_cached,
    interpret_cached,
    make_cache_key,
)
from .config import ClientOptions, auth_headers, content_url
from .errors import FetchError
from .query import compile_query
from .resolver import EnvironmentResolver, get_default_resolver

logger = logging.getLogger(__name__)


def error_from_response(response: httpx.Response) -> FetchError:
    """Map a non-success response to :class:`FetchError`."""
    message = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
    return FetchError(response.status_code, message)


def decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise FetchError(response.status_code, f"Invalid JSON response: {e}") from e


class _FetcherBase:
    """State and decisions shared by the sync and async fetchers."""

    def __init__(
        self,
        options: ClientOptions,
        resolver: Optional[EnvironmentResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.options = options.validate()
        self.resolver = resolver if resolver is not None else get_default_resolver()
        self.clock = clock
        self.environment: Optional[str] = None if options.cdn else options.env
        self.stats: Dict[str, int] = {
            "requests": 0,
            "hits": 0,
            "misses": 0,
            "expired": 0,
            "invalid": 0,
            "read_errors": 0,
            "writes": 0,
            "write_errors": 0,
        }

    def build_url(self, search: Optional[str], environment: str) -> str:
        if search:
            compile_query(search)
        return content_url(self.options, environment, search)

    def _classify(self, key: str, raw: Any) -> CacheLookup:
        lookup = interpret_cached(raw, self.options.expiration_minutes, self.clock())
        if isinstance(lookup, CacheHit):
            self.stats["hits"] += 1
            logger.debug(f"Cache hit for {key}")
        elif isinstance(lookup, CacheExpired):
            self.stats["expired"] += 1
            logger.debug(f"Cache entry {key} expired (written at {lookup.written_at})")
        elif isinstance(lookup, CacheInvalid):
            self.stats["invalid"] += 1
            logger.warning(f"Ignoring malformed cache entry {key}: {lookup.reason}")
        else:
            self.stats["misses"] += 1
        return lookup

    def _read_failed(self, key: str, error: Exception) -> None:
        self.stats["read_errors"] += 1
        logger.warning(f"Cache read for {key} failed: {error}")

    def _write_failed(self, key: str, error: Exception) -> None:
        self.stats["write_errors"] += 1
        logger.warning(f"Cache write for {key} failed: {error}")

    def _pin(self, tag: str) -> str:
        if tag != self.options.env:
            self.environment = tag
        return tag

    def _encode(self, data: Any) -> str:
        return encode_cached(data, self.options.expiration_minutes, self.clock())

    def _check(self, response: httpx.Response) -> Any:
        if not response.is_success:
            raise error_from_response(response)
        return decode_body(response)

    def get_cache_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = dict(self.stats)
        stats["environment"] = self.environment
        stats["expiration_minutes"] = self.options.expiration_minutes
        return stats


class ContentFetcher(_FetcherBase):
    """Blocking content fetcher.

    Args:
        options: Client options.
        http_client: Optional ``httpx.Client`` to reuse (not closed by us).
        resolver: Tag resolver; defaults to the process-wide one.
        clock: Time source in epoch seconds, injectable for expiry tests.
    Raises:
        ConfigError: On invalid options or an async cache adapter.
    """

    def __init__(
        self,
        options: ClientOptions,
        http_client: Optional[httpx.Client] = None,
        resolver: Optional[EnvironmentResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(options, resolver=resolver, clock=clock)
        adapter = as_sync_adapter(options.cache_adapter)
        self.cache: CacheAdapter = adapter if adapter is not None else MemoryCacheAdapter()
        self._owns_client = http_client is None
        self.http = http_client or httpx.Client(timeout=options.timeout)

    def __enter__(self) -> "ContentFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.http.close()

    def resolve_environment(self) -> str:
        """Return the environment to address, resolving the alias on first use.

        A failed resolution yields the alias for this call only; the next
        call asks again.
        """
        if self.environment is not None:
            return self.environment
        tag = self.resolver.resolve_tag(
            self.options.site_token,
            self.options.env,
            self.options.dev_env,
            http_client=self.http,
        )
        return self._pin(tag)

    def fetch(self, search: Optional[str] = None) -> Any:
        """Fetch the document, or the part of it selected by ``search``.

        Raises:
            ConfigError: Invalid token or routing mode.
            QueryError: ``search`` is not a valid expression.
            FetchError: Non-success response or transport failure.
        """
        url = self.build_url(search, self.resolve_environment())
        key = make_cache_key(url)

        try:
            raw = self.cache.get_item(key)
        except Exception as e:
            self._read_failed(key, e)
        else:
            lookup = self._classify(key, raw)
            if isinstance(lookup, CacheHit):
                return lookup.data

        self.stats["requests"] += 1
        logger.debug(f"GET {url}")
        try:
            response = self.http.get(url, headers=auth_headers(self.options.site_token))
        except httpx.HTTPError as e:
            raise FetchError(0, str(e)) from e
        data = self._check(response)

        try:
            self.cache.set_item(key, self._encode(data))
            self.stats["writes"] += 1
        except Exception as e:
            self._write_failed(key, e)
        return data


class AsyncContentFetcher(_FetcherBase):
    """Non-blocking content fetcher; same contract as :class:`ContentFetcher`.

    Accepts synchronous and asynchronous cache adapters alike; the choice of
    wrapper is made here, once.
    """

    def __init__(
        self,
        options: ClientOptions,
        http_client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[EnvironmentResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(options, resolver=resolver, clock=clock)
        adapter = options.cache_adapter
        self.cache: AsyncCacheAdapter = as_async_adapter(
            adapter if adapter is not None else MemoryCacheAdapter()
        )
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=options.timeout)

    async def __aenter__(self) -> "AsyncContentFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def resolve_environment(self) -> str:
        # Concurrent first calls may both resolve; the result is the same.
        if self.environment is not None:
            return self.environment
        tag = await self.resolver.aresolve_tag(
            self.options.site_token,
            self.options.env,
            self.options.dev_env,
            http_client=self.http,
        )
        return self._pin(tag)

    async def fetch(self, search: Optional[str] = None) -> Any:
        """Asynchronous :meth:`ContentFetcher.fetch`."""
        url = self.build_url(search, await self.resolve_environment())
        key = make_cache_key(url)

        try:
            raw = await self.cache.get_item(key)
        except Exception as e:
            self._read_failed(key, e)
        else:
            lookup = self._classify(key, raw)
            if isinstance(lookup, CacheHit):
                return lookup.data

        self.stats["requests"] += 1
        logger.debug(f"GET {url}")
        try:
            response = await self.http.get(
                url, headers=auth_headers(self.options.site_token)
            )
        except httpx.HTTPError as e:
            raise FetchError(0, str(e)) from e
        data = self._check(response)

        try:
            await self.cache.set_item(key, self._encode(data))
            self.stats["writes"] += 1
        except Exception as e:
            self._write_failed(key, e)
        return data
