"""Exception hierarchy for the SleekCMS client.

Only configuration, transport and query problems reach the caller. Cache
failures are represented by :class:`CacheError` so adapters have something
meaningful to raise, but the fetcher always catches them and degrades to a
plain network fetch.
"""

from __future__ import annotations


class SleekCMSError(Exception):
    """Base class for all client errors."""


class ConfigError(SleekCMSError):
    """Missing or invalid client configuration (token, routing mode, adapter)."""


class FetchError(SleekCMSError):
    """Non-success response from the content API.

    Attributes:
        status: HTTP status code, or ``0`` when no response was received.
        message: Server supplied message, falling back to the reason phrase.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Request failed ({status}): {message}")


class QueryError(SleekCMSError):
    """Syntactically invalid JMESPath expression."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid query {expression!r}: {reason}")


class CacheError(SleekCMSError):
    """Cache adapter failure. Never propagated past the fetcher."""


class ClientNotReadyError(SleekCMSError):
    """Accessor used before the sync client finished loading (or after it failed)."""
