"""Prefetching (synchronous) SleekCMS client.

The client performs exactly one full fetch while loading and answers every
accessor from that in-memory copy afterwards. Queries are evaluated locally
with the same JMESPath semantics the API applies server-side.

Lifecycle::

        UNINITIALIZED --load()--> LOADING --ok--> READY
                                          \\-error--> FAILED

Example:
        from sleekcms import ClientOptions, create_client

        client = create_client(ClientOptions(site_token="prod-abc123-xyz"))
        titles = client.get_content("pages[?published].title")
        blog = client.get_pages("/blog")

Missing items (unknown path, image, list or entry) are reported as ``None``
rather than raised, in both this client and :class:`~sleekcms.AsyncClient`.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, List, Optional

from .config import ClientOptions
from .errors import ClientNotReadyError
from .fetcher import AsyncContentFetcher, ContentFetcher
from .models import (
    ContentDocument,
    Entry,
    Record,
    collect_slugs,
    filter_pages,
    find_page,
    pick_image,
    pick_list,
)
from .query import evaluate

logger = logging.getLogger(__name__)


class ClientState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SyncClient:
    """Serve content from a document fetched once up front."""

    def __init__(self, options: ClientOptions, fetcher: Optional[ContentFetcher] = None):
        self.options = options
        self._fetcher = fetcher
        self.state = ClientState.UNINITIALIZED
        self._document: Optional[ContentDocument] = None
        self.error: Optional[BaseException] = None

    @classmethod
    def from_document(cls, options: ClientOptions, data: Any) -> "SyncClient":
        """Build a ready client around already fetched content (no I/O)."""
        client = cls(options)
        client._become_ready(data)
        return client

    def _become_ready(self, data: Any) -> None:
        self._document = ContentDocument(data)
        self.state = ClientState.READY

    def _begin_loading(self) -> None:
        if self.state is not ClientState.UNINITIALIZED:
            raise ClientNotReadyError(f"Client cannot load from state {self.state.value}")
        self.state = ClientState.LOADING

    def _fail(self, error: BaseException) -> None:
        self.state = ClientState.FAILED
        self.error = error
        logger.error(f"Loading site content failed: {error}")

    def load(self) -> "SyncClient":
        """Perform the one full fetch; returns ``self`` once ``READY``.

        Raises:
            ConfigError, FetchError: Propagated after moving to ``FAILED``.
        """
        self._begin_loading()
        try:
            if self._fetcher is None:
                with ContentFetcher(self.options) as fetcher:
                    data = fetcher.fetch()
            else:
                data = self._fetcher.fetch()
        except Exception as e:
            self._fail(e)
            raise
        self._become_ready(data)
        return self

    async def aload(self, fetcher: Optional[AsyncContentFetcher] = None) -> "SyncClient":
        """Asynchronous :meth:`load` through an :class:`AsyncContentFetcher`."""
        self._begin_loading()
        try:
            if fetcher is None:
                async with AsyncContentFetcher(self.options) as own:
                    data = await own.fetch()
            else:
                data = await fetcher.fetch()
        except Exception as e:
            self._fail(e)
            raise
        self._become_ready(data)
        return self

    @property
    def document(self) -> ContentDocument:
        if self.state is not ClientState.READY or self._document is None:
            raise ClientNotReadyError(f"Client is {self.state.value}, not ready")
        return self._document

    # ---------------- Accessors -----------------
    def get_content(self, query: Optional[str] = None) -> Any:
        return evaluate(self.document.raw, query)

    def get_pages(self, path: Optional[str] = None, query: Optional[str] = None) -> Any:
        """Pages whose ``_path`` starts with ``path``, optionally queried."""
        return evaluate(filter_pages(self.document.pages, path), query)

    find_pages = get_pages

    def get_page(self, path: str) -> Optional[Record]:
        return find_page(self.document.pages, path)

    def get_entry(self, handle: str) -> Optional[Entry]:
        return self.document.entry(handle)

    def get_slugs(self, path: Optional[str] = None) -> List[str]:
        return collect_slugs(self.document.pages, path)

    def get_images(self) -> Dict[str, Record]:
        return self.document.images

    def get_image(self, name: str) -> Optional[Record]:
        return pick_image(self.document.images, name)

    def get_list(self, name: str) -> Optional[List[Record]]:
        return pick_list(self.document.lists, name)

    get_options = get_list

    def get_config(self) -> Record:
        return self.document.config


def create_client(options: ClientOptions, fetcher: Optional[ContentFetcher] = None) -> SyncClient:
    """Create and load a :class:`SyncClient` (blocking)."""
    return SyncClient(options, fetcher=fetcher).load()


async def acreate_client(
    options: ClientOptions, fetcher: Optional[AsyncContentFetcher] = None
) -> SyncClient:
    """Create and load a :class:`SyncClient` without blocking the event loop."""
    return await SyncClient(options).aload(fetcher)
