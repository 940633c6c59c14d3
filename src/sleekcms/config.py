"""Client options, token routing and URL construction.

A site token looks like ``<env_class>-<site_id>-<secret...>``. The first two
segments route the request; the whole token is sent verbatim as the
``Authorization`` header.

URL shapes (``dev_env`` selects the host scheme)::

        production   https://{env_class}.sleekcms.com/{site_id}/{environment}
        development  https://{env_class}.sleekcms.net/{site_id}/{environment}
        localhost    http://localhost:9001/{env_class}/{site_id}/{environment}

Query parameters are appended in a fixed order: ``search``, ``lang`` and
``mock`` (only for ``dev-`` tokens that asked for simulated data).

Environment variables read by :meth:`ClientOptions.from_env`:
        SLEEKCMS_SITE_TOKEN      Site token.
        SLEEKCMS_ENV             Environment alias or tag (default: ``latest``).
        SLEEKCMS_DEV_ENV         Routing mode (default: ``production``).
        SLEEKCMS_LANG            Content language.
        SLEEKCMS_CDN             ``1``/``true`` to resolve the alias to a tag.
        SLEEKCMS_CACHE_MINUTES   Expiration window for cached responses.
        SLEEKCMS_TIMEOUT         HTTP timeout in seconds (default: 30).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import urlencode

from .errors import ConfigError

DEFAULT_ENV = "latest"
DEFAULT_DEV_ENV = "production"
LOCALHOST_PORT = 9001

DEV_ENVS = {
    "production": "https://{env_class}.sleekcms.com/{site_id}",
    "development": "https://{env_class}.sleekcms.net/{site_id}",
    "localhost": "http://localhost:" + str(LOCALHOST_PORT) + "/{env_class}/{site_id}",
}

_TRUTHY = {"1", "true", "yes", "on"}


class SiteRoute(NamedTuple):
    env_class: str
    site_id: str


def parse_token(token: str) -> SiteRoute:
    """Split a site token into its routing segments.

    Raises:
        ConfigError: If the token is empty or has no site id segment.
    """
    if not token:
        raise ConfigError("site_token is required")
    env_class, _, rest = token.partition("-")
    site_id = rest.split("-", 1)[0]
    if not env_class or not site_id:
        raise ConfigError("site_token must look like '<env>-<site>-<key>'")
    return SiteRoute(env_class, site_id)


def is_dev_token(token: str) -> bool:
    return bool(token) and token.startswith("dev-")


def base_url(token: str, dev_env: str = DEFAULT_DEV_ENV) -> str:
    """Return the routing base URL (no trailing slash) for a token."""
    route = parse_token(token)
    template = DEV_ENVS.get(dev_env)
    if template is None:
        raise ConfigError(
            f"Unknown dev_env: {dev_env!r}. Available: {sorted(DEV_ENVS)}"
        )
    return template.format(env_class=route.env_class, site_id=route.site_id).rstrip("/")


@dataclass(frozen=True)
class ClientOptions:
    """Configuration shared by the sync and async clients.

    Attributes:
        site_token: Site token; routing information and credential in one.
        env: Environment alias (``latest``, ``staging``) or immutable tag.
        dev_env: Routing mode, one of ``production``, ``development``, ``localhost``.
        mock: Ask for simulated data (honoured for ``dev-`` tokens only).
        cache: Make the async client load the full document on first use.
        cdn: Resolve ``env`` to an immutable tag before fetching.
        lang: Optional content language.
        cache_adapter: Sync or async adapter consulted around every fetch.
        expiration_minutes: Expiration window for cached responses; ``None``
            keeps cached values until the adapter drops them.
        timeout: HTTP timeout in seconds.
    """

    site_token: str
    env: str = DEFAULT_ENV
    dev_env: str = DEFAULT_DEV_ENV
    mock: bool = False
    cache: bool = False
    cdn: bool = False
    lang: Optional[str] = None
    cache_adapter: Any = None
    expiration_minutes: Optional[float] = None
    timeout: float = 30.0

    def validate(self) -> "ClientOptions":
        """Fail fast on unusable options; returns ``self`` for chaining."""
        base_url(self.site_token, self.dev_env)
        if not self.env:
            raise ConfigError("env must be a non-empty alias or tag")
        if self.expiration_minutes is not None and self.expiration_minutes < 0:
            raise ConfigError("expiration_minutes must be >= 0")
        return self

    @property
    def wants_mock(self) -> bool:
        return self.mock and is_dev_token(self.site_token)

    def with_overrides(self, **changes: Any) -> "ClientOptions":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientOptions":
        """Build options from ``SLEEKCMS_*`` environment variables.

        Explicit keyword overrides win over the environment; ``None`` values
        are ignored so CLI flags can be passed through unconditionally.
        """
        values: Dict[str, Any] = {
            "site_token": os.getenv("SLEEKCMS_SITE_TOKEN", ""),
            "env": os.getenv("SLEEKCMS_ENV", DEFAULT_ENV),
            "dev_env": os.getenv("SLEEKCMS_DEV_ENV", DEFAULT_DEV_ENV),
            "lang": os.getenv("SLEEKCMS_LANG") or None,
            "cdn": os.getenv("SLEEKCMS_CDN", "").lower() in _TRUTHY,
        }
        minutes = os.getenv("SLEEKCMS_CACHE_MINUTES")
        if minutes:
            try:
                values["expiration_minutes"] = float(minutes)
            except ValueError as e:
                raise ConfigError(f"SLEEKCMS_CACHE_MINUTES is not a number: {minutes!r}") from e
        timeout = os.getenv("SLEEKCMS_TIMEOUT")
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError as e:
                raise ConfigError(f"SLEEKCMS_TIMEOUT is not a number: {timeout!r}") from e
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def content_url(
    options: ClientOptions, environment: Optional[str] = None, search: Optional[str] = None
) -> str:
    """Build the fully resolved content URL for one fetch.

    Args:
        options: Client options (token, routing mode, language, mock flag).
        environment: Alias or tag to address; defaults to ``options.env``.
        search: Optional JMESPath field selector evaluated server-side.
    """
    url = f"{base_url(options.site_token, options.dev_env)}/{environment or options.env}"
    params = []
    if search:
        params.append(("search", search))
    if options.lang:
        params.append(("lang", options.lang))
    if options.wants_mock:
        params.append(("mock", "true"))
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def auth_headers(token: str) -> Dict[str, str]:
    return {"Content-Type": "application/json", "Authorization": token}
