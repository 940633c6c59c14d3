"""Environment alias resolution.

Aliases such as ``latest`` or ``staging`` are mutable pointers to a content
version. Resolving one to its immutable tag lets every later fetch address a
URL whose response never changes, which CDNs and cache adapters can keep
forever.

Resolution is a ``POST {base_url}/{alias}`` carrying the site token; the
response body is ``{"tag": "<tag>"}``. Failure of any kind is not an error:
the alias is still a valid environment identifier, so it is returned as-is
(and not memoized, so a later call may try again).

Example:
        from sleekcms.resolver import get_default_resolver
        tag = get_default_resolver().resolve_tag(token, "latest")
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import httpx

from .config import DEFAULT_DEV_ENV, auth_headers, base_url

logger = logging.getLogger(__name__)


def _extract_tag(response: httpx.Response) -> Optional[str]:
    if not response.is_success:
        logger.warning(
            f"Tag resolution failed with HTTP {response.status_code}; using alias"
        )
        return None
    try:
        body = response.json()
    except ValueError:
        logger.warning("Tag resolution returned a non-JSON body; using alias")
        return None
    tag = body.get("tag") if isinstance(body, dict) else None
    if not isinstance(tag, str) or not tag:
        logger.warning("Tag resolution response has no tag; using alias")
        return None
    return tag


class EnvironmentResolver:
    """Resolve environment aliases to tags, memoized per ``(token, alias, dev_env)``.

    One instance is normally shared by the whole process (see
    :func:`get_default_resolver`); tests and long-running services can inject
    their own or call :meth:`clear`.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._tags: Dict[Tuple[str, str, str], str] = {}

    def __len__(self) -> int:
        return len(self._tags)

    def cached_tag(
        self, token: str, alias: str, dev_env: str = DEFAULT_DEV_ENV
    ) -> Optional[str]:
        return self._tags.get((token, alias, dev_env))

    def clear(self) -> None:
        """Forget every resolved tag."""
        self._tags.clear()

    def _remember(self, key: Tuple[str, str, str], tag: Optional[str]) -> str:
        alias = key[1]
        if tag is None:
            return alias
        self._tags[key] = tag
        logger.debug(f"Resolved environment {alias!r} to tag {tag!r}")
        return tag

    def resolve_tag(
        self,
        token: str,
        alias: str,
        dev_env: str = DEFAULT_DEV_ENV,
        http_client: Optional[httpx.Client] = None,
    ) -> str:
        """Resolve ``alias`` to a tag, blocking.

        Args:
            token: Site token used for routing and authorization.
            alias: Environment alias to resolve.
            dev_env: Routing mode (see :mod:`sleekcms.config`).
            http_client: Optional client to reuse; a short-lived one is
                created otherwise.
        Returns:
            The resolved tag, or ``alias`` if resolution failed.
        Raises:
            ConfigError: If the token or routing mode is invalid.
        """
        known = self.cached_tag(token, alias, dev_env)
        if known is not None:
            return known
        url = f"{base_url(token, dev_env)}/{alias}"
        try:
            if http_client is not None:
                response = http_client.post(url, headers=auth_headers(token))
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, headers=auth_headers(token))
        except httpx.HTTPError as e:
            logger.warning(f"Tag resolution for {alias!r} failed: {e}; using alias")
            return alias
        return self._remember((token, alias, dev_env), _extract_tag(response))

    async def aresolve_tag(
        self,
        token: str,
        alias: str,
        dev_env: str = DEFAULT_DEV_ENV,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> str:
        """Asynchronous :meth:`resolve_tag`."""
        known = self.cached_tag(token, alias, dev_env)
        if known is not None:
            return known
        url = f"{base_url(token, dev_env)}/{alias}"
        try:
            if http_client is not None:
                response = await http_client.post(url, headers=auth_headers(token))
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, headers=auth_headers(token))
        except httpx.HTTPError as e:
            logger.warning(f"Tag resolution for {alias!r} failed: {e}; using alias")
            return alias
        return self._remember((token, alias, dev_env), _extract_tag(response))

    def get_stats(self) -> Dict[str, Any]:
        return {"resolved_tags": len(self._tags)}


@lru_cache(maxsize=1)
def get_default_resolver() -> EnvironmentResolver:
    """Return the process-wide resolver, creating it on first use."""
    return EnvironmentResolver()
