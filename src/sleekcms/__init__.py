"""SleekCMS Client
==================

Python client for the SleekCMS hosted content API. Given a site token it
retrieves the site's content document (pages, entries, images, lists and
config) and exposes typed accessors and JMESPath queries over it.

Key capabilities
----------------
- :class:`~sleekcms.client.SyncClient` prefetches the whole document once and
  answers every call from memory.
- :class:`~sleekcms.async_client.AsyncClient` fetches one facet at a time until
  the first full ``get_content()`` call, then behaves like the sync client.
- Pluggable cache adapters (in-memory, Redis, or your own two-method object)
  with optional expiration.
- Environment alias resolution (``latest`` -> immutable tag) for CDN friendly
  URLs.

Design principles
-----------------
1. **One query language** – JMESPath expressions behave the same whether they
   run locally over a cached document or server-side as a ``search`` selector.
2. **Fail soft on caches** – cache and tag-resolution problems degrade to a
   network fetch or the literal alias; they never reach the caller.
3. **Missing is None** – unknown pages, images, lists and entries return
   ``None`` in both clients.

Minimal quick start
-------------------
>>> from sleekcms import ClientOptions, create_client
>>> client = create_client(ClientOptions(site_token="prod-abc123-secret"))
>>> client.get_slugs("/blog")

Async:
>>> from sleekcms import AsyncClient
>>> async with AsyncClient(ClientOptions(site_token="prod-abc123-secret")) as c:
...     page = await c.get_page("/about")
"""

__version__ = "0.4.0"

from .async_client import AsyncClient
from .cache import AsyncCacheAdapter, CacheAdapter, MemoryCacheAdapter
from .client import SyncClient, acreate_client, create_client
from .config import ClientOptions
from .errors import (
    CacheError,
    ClientNotReadyError,
    ConfigError,
    FetchError,
    QueryError,
    SleekCMSError,
)
from .models import ContentDocument, EntryList, SingleEntry
from .query import evaluate
from .resolver import EnvironmentResolver, get_default_resolver

__all__ = [
    "AsyncClient",
    "SyncClient",
    "create_client",
    "acreate_client",
    "ClientOptions",
    "CacheAdapter",
    "AsyncCacheAdapter",
    "MemoryCacheAdapter",
    "ContentDocument",
    "SingleEntry",
    "EntryList",
    "EnvironmentResolver",
    "get_default_resolver",
    "evaluate",
    "SleekCMSError",
    "ConfigError",
    "FetchError",
    "QueryError",
    "CacheError",
    "ClientNotReadyError",
]
