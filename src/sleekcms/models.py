"""Data structures for the SleekCMS content document.

A content document is the JSON tree returned by the content API. It has five
optional top-level facets:

        * ``entries`` – handle -> record, or handle -> list of records. The
            producer decides the cardinality, so entries are surfaced as the
            :class:`SingleEntry` / :class:`EntryList` union.
        * ``pages`` – ordered list of page records, each carrying a unique
            ``_path`` and an optional ``_slug``.
        * ``images`` – name -> image record with at least a ``url``.
        * ``lists`` (``options`` in some sites) – name -> ordered list of
            ``{"label", "value"}`` pairs.
        * ``config`` – small record of site-wide settings.

Typical usage::

        from sleekcms.models import ContentDocument, filter_pages

        doc = ContentDocument(raw)
        blog = filter_pages(doc.pages, "/blog")
        entry = doc.entry("team")
        if isinstance(entry, EntryList):
                names = [r["name"] for r in entry.records]

Design notes:
        * Path filtering is a plain string-prefix test; ``/blog`` also matches
            ``/blogging``. Pages whose ``_path`` is not a string never match.
        * The helper functions are shared by the sync client (whole document)
            and the async client (individually fetched facets), so both modes
            answer the same question the same way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

Record = Dict[str, Any]


@dataclass(frozen=True)
class SingleEntry:
    """Entry handle that maps to exactly one record."""

    handle: str
    record: Record

    @property
    def records(self) -> Tuple[Record, ...]:
        return (self.record,)


@dataclass(frozen=True)
class EntryList:
    """Entry handle that maps to an ordered collection of records."""

    handle: str
    records: Tuple[Record, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.records)


Entry = Union[SingleEntry, EntryList]


def to_entry(handle: str, raw: Any) -> Optional[Entry]:
    """Map a raw ``entries[handle]`` value into the entry union.

    Args:
        handle: Entry handle the value was found under.
        raw: Decoded JSON value.
    Returns:
        ``SingleEntry`` for an object, ``EntryList`` for an array, ``None``
        for anything else (including a missing entry).
    """
    if isinstance(raw, dict):
        return SingleEntry(handle=handle, record=raw)
    if isinstance(raw, list):
        return EntryList(
            handle=handle, records=tuple(r for r in raw if isinstance(r, dict))
        )
    return None


def _page_path(page: Any) -> Optional[str]:
    if not isinstance(page, dict):
        return None
    path = page.get("_path")
    return path if isinstance(path, str) else None


def filter_pages(pages: Optional[Sequence[Any]], prefix: Optional[str]) -> List[Record]:
    """Return pages whose ``_path`` starts with ``prefix``, in document order.

    A ``None`` or empty prefix returns every page.
    """
    result = []
    for page in pages or []:
        path = _page_path(page)
        if path is None:
            continue
        if not prefix or path.startswith(prefix):
            result.append(page)
    return result


def find_page(pages: Optional[Sequence[Any]], path: str) -> Optional[Record]:
    """Return the page whose ``_path`` equals ``path`` exactly, or ``None``."""
    if not path:
        return None
    for page in pages or []:
        if _page_path(page) == path:
            return page
    return None


def collect_slugs(pages: Optional[Sequence[Any]], prefix: Optional[str]) -> List[str]:
    """Return ``_slug`` values of pages matching ``prefix`` that declare one."""
    slugs = []
    for page in filter_pages(pages, prefix):
        slug = page.get("_slug")
        if isinstance(slug, str):
            slugs.append(slug)
    return slugs


def pick_image(images: Optional[Mapping[str, Any]], name: str) -> Optional[Record]:
    if not name or not isinstance(images, Mapping):
        return None
    image = images.get(name)
    return image if isinstance(image, dict) else None


def pick_list(lists: Optional[Mapping[str, Any]], name: str) -> Optional[List[Record]]:
    if not name or not isinstance(lists, Mapping):
        return None
    value = lists.get(name)
    return value if isinstance(value, list) else None


class ContentDocument:
    """Read-only view over a fetched content document.

    The raw mapping is kept as fetched (queries run against it verbatim); the
    facet properties only normalise missing or mistyped facets to empty
    containers.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: Any):
        self._raw = raw

    @property
    def raw(self) -> Any:
        return self._raw

    def _facet(self, name: str, kind: type) -> Any:
        if isinstance(self._raw, dict):
            value = self._raw.get(name)
            if isinstance(value, kind):
                return value
        return kind()

    @property
    def pages(self) -> List[Record]:
        return self._facet("pages", list)

    @property
    def images(self) -> Dict[str, Record]:
        return self._facet("images", dict)

    @property
    def entries(self) -> Dict[str, Any]:
        return self._facet("entries", dict)

    @property
    def lists(self) -> Dict[str, List[Record]]:
        # Some sites publish the same facet under ``options``.
        if isinstance(self._raw, dict) and "lists" not in self._raw:
            return self._facet("options", dict)
        return self._facet("lists", dict)

    @property
    def config(self) -> Record:
        return self._facet("config", dict)

    def entry(self, handle: str) -> Optional[Entry]:
        if not handle:
            return None
        return to_entry(handle, self.entries.get(handle))

    def __repr__(self) -> str:
        keys = sorted(self._raw) if isinstance(self._raw, dict) else type(self._raw).__name__
        return f"ContentDocument({keys})"
