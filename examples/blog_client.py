#!/usr/bin/env python3
"""
Example usage of the SleekCMS client.

This script renders a tiny text listing of a site's blog, first with the
prefetching sync client and then with the on-demand async client, and shows
how to plug in an expiring cache shared through Redis.

Usage:
    SLEEKCMS_SITE_TOKEN=prod-abc123-secret python examples/blog_client.py
"""

import asyncio
import os

from sleekcms import AsyncClient, ClientOptions, FetchError, create_client
from sleekcms.cache import RedisCacheAdapter


def print_blog(pages):
    print(f"{len(pages)} blog pages")
    for page in pages:
        slug = page.get("_slug") or "-"
        print(f"  /{slug}: {page.get('title', '(untitled)')}")


def sync_example(options: ClientOptions) -> None:
    """One request up front, everything else from memory."""
    client = create_client(options)
    print("Site:", client.get_config().get("title"))
    print_blog(client.get_pages("/blog"))
    print("Slugs:", ", ".join(client.get_slugs("/blog")))

    published = client.get_content("pages[?published].title")
    print("Published:", ", ".join(published or []))


async def async_example(options: ClientOptions) -> None:
    """Only the pages facet is fetched; the rest of the document is never loaded."""
    async with AsyncClient(options) as client:
        about = await client.get_page("/about")
        print("About page:", about["title"] if about else "missing")
        print_blog(await client.get_pages("/blog"))
        print("Upgraded to full document:", client.upgraded)


def main():
    options = ClientOptions.from_env(cdn=True)

    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        options = options.with_overrides(
            cache_adapter=RedisCacheAdapter.from_url(redis_url),
            expiration_minutes=5,
        )

    try:
        sync_example(options)
        asyncio.run(async_example(options))
    except FetchError as e:
        print(f"✗ {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
