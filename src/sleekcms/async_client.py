"""On-demand (asynchronous) SleekCMS client.

Until it is upgraded the client fetches only the facet each accessor needs,
using a server-side field selector (``pages``, ``images``, ``entries.<handle>``,
``lists``, ``config``), and memoizes each result under its selector. A request
path that renders one page therefore pays for the pages facet and nothing
else.

The first ``get_content()`` call without a query fetches the whole document
and upgrades the client: from then on every accessor is answered by an
internal :class:`~sleekcms.client.SyncClient` and no further requests are
made. The upgrade is one-way; facets fetched before it are dropped.

Example:
        async with AsyncClient(ClientOptions(site_token=token)) as client:
                page = await client.get_page("/about")     # fetches "pages"
                slugs = await client.get_slugs("/blog")    # served from memo
                doc = await client.get_content()           # full fetch, upgrade

Known race: concurrent calls issued before the upgrade completes may each
perform the full fetch. The first result to arrive becomes the unified
document; the rest are discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx

from .client import SyncClient
from .config import ClientOptions
from .fetcher import AsyncContentFetcher
from .models import (
    Entry,
    Record,
    collect_slugs,
    filter_pages,
    find_page,
    pick_image,
    pick_list,
    to_entry,
)
from .query import evaluate, facet_selector
from .resolver import EnvironmentResolver

logger = logging.getLogger(__name__)


@dataclass
class PerFacetCaching:
    """Pre-upgrade state: raw results keyed by field selector.

    ``fetched_at`` records when each facet arrived, for expiration.
    """

    facets: Dict[str, Any] = field(default_factory=dict)
    fetched_at: Dict[str, float] = field(default_factory=dict)

    def is_fresh(self, selector: str, expiration_minutes: Optional[int], now: float) -> bool:
        if selector not in self.facets:
            return False
        if expiration_minutes is None:
            return True
        return now - self.fetched_at[selector] <= expiration_minutes * 60


@dataclass(frozen=True)
class UnifiedDocument:
    """Post-upgrade state: everything is served by one prefetched client."""

    client: SyncClient


ClientMode = Union[PerFacetCaching, UnifiedDocument]


class AsyncClient:
    """Serve content on demand, upgrading to a full document when asked for it.

    Args:
        options: Client options. With ``cache=True`` (or ``mock`` on a dev
            token) the first call of any accessor loads the full document.
        fetcher: Optional fetcher to use instead of building one.
        http_client: Optional ``httpx.AsyncClient`` for the default fetcher.
        resolver: Optional tag resolver for the default fetcher.
    """

    def __init__(
        self,
        options: ClientOptions,
        fetcher: Optional[AsyncContentFetcher] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[EnvironmentResolver] = None,
    ):
        self.options = options
        self.fetcher = fetcher or AsyncContentFetcher(
            options, http_client=http_client, resolver=resolver
        )
        self._mode: ClientMode = PerFacetCaching()
        self._eager = options.cache or options.wants_mock

    async def __aenter__(self) -> "AsyncClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    @property
    def upgraded(self) -> bool:
        return isinstance(self._mode, UnifiedDocument)

    # ---------------- Mode handling -----------------
    def _upgrade(self, data: Any) -> SyncClient:
        if isinstance(self._mode, UnifiedDocument):
            return self._mode.client
        client = SyncClient.from_document(self.options, data)
        self._mode = UnifiedDocument(client)
        logger.debug("Async client upgraded to unified document")
        return client

    async def _load_full(self) -> SyncClient:
        data = await self.fetcher.fetch()
        return self._upgrade(data)

    async def _unified(self) -> Optional[SyncClient]:
        if isinstance(self._mode, UnifiedDocument):
            return self._mode.client
        if self._eager:
            return await self._load_full()
        return None

    async def _facet(self, selector: str) -> Any:
        mode = self._mode
        expiration = self.options.expiration_minutes
        if isinstance(mode, PerFacetCaching) and mode.is_fresh(
            selector, expiration, self.fetcher.clock()
        ):
            return mode.facets[selector]
        data = await self.fetcher.fetch(selector)
        if isinstance(self._mode, PerFacetCaching):
            self._mode.facets[selector] = data
            self._mode.fetched_at[selector] = self.fetcher.clock()
        return data

    async def _pages(self) -> List[Any]:
        pages = await self._facet("pages")
        return pages if isinstance(pages, list) else []

    # ---------------- Accessors -----------------
    async def get_content(self, query: Optional[str] = None) -> Any:
        """Full document, or the result of ``query`` over it.

        Before the upgrade a query is evaluated server-side; without a query
        the full document is fetched and the client upgrades.
        """
        client = await self._unified()
        if client is not None:
            return client.get_content(query)
        if not query:
            return (await self._load_full()).get_content()
        return await self._facet(query)

    async def get_pages(self, path: Optional[str] = None, query: Optional[str] = None) -> Any:
        client = await self._unified()
        if client is not None:
            return client.get_pages(path, query)
        return evaluate(filter_pages(await self._pages(), path), query)

    find_pages = get_pages

    async def get_page(self, path: str) -> Optional[Record]:
        client = await self._unified()
        if client is not None:
            return client.get_page(path)
        return find_page(await self._pages(), path)

    async def get_slugs(self, path: Optional[str] = None) -> List[str]:
        client = await self._unified()
        if client is not None:
            return client.get_slugs(path)
        return collect_slugs(await self._pages(), path)

    async def get_entry(self, handle: str) -> Optional[Entry]:
        if not handle:
            return None
        client = await self._unified()
        if client is not None:
            return client.get_entry(handle)
        return to_entry(handle, await self._facet(facet_selector("entries", handle)))

    async def get_images(self) -> Dict[str, Record]:
        client = await self._unified()
        if client is not None:
            return client.get_images()
        images = await self._facet("images")
        return images if isinstance(images, dict) else {}

    async def get_image(self, name: str) -> Optional[Record]:
        if not name:
            return None
        return pick_image(await self.get_images(), name)

    async def get_list(self, name: str) -> Optional[List[Record]]:
        if not name:
            return None
        client = await self._unified()
        if client is not None:
            return client.get_list(name)
        lists = await self._facet("lists")
        if lists is None:
            # Same facet, older name.
            lists = await self._facet("options")
        return pick_list(lists, name)

    get_options = get_list

    async def get_config(self) -> Record:
        client = await self._unified()
        if client is not None:
            return client.get_config()
        config = await self._facet("config")
        return config if isinstance(config, dict) else {}
