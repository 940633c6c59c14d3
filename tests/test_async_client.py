"""Tests for the on-demand async client and its upgrade to a unified document."""

import asyncio

import httpx
import pytest
import respx

from sleekcms.async_client import AsyncClient, PerFacetCaching, UnifiedDocument
from sleekcms.config import ClientOptions
from sleekcms.errors import FetchError, QueryError
from sleekcms.fetcher import AsyncContentFetcher
from sleekcms.models import EntryList, SingleEntry
from sleekcms.query import evaluate

from conftest import BASE, DEV_TOKEN, TOKEN

LATEST = f"{BASE}/latest"
STAGING = f"{BASE}/staging"


def json_null():
    return httpx.Response(200, content=b"null", headers={"Content-Type": "application/json"})


def searches(route):
    return [call.request.url.params.get("search") for call in route.calls]


@pytest.mark.asyncio
@respx.mock
async def test_get_content_is_cached():
    route = respx.get(LATEST).mock(
        side_effect=[httpx.Response(200, json={"test": 1}), httpx.Response(200, json={"test": 2})]
    )
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        assert await client.get_content() == {"test": 1}
        assert await client.get_content() == {"test": 1}
        assert client.upgraded
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_pages_facet_is_cached(site_content):
    route = respx.get(LATEST).respond(json=site_content["pages"])
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        assert await client.get_pages() == site_content["pages"]
        assert len(await client.get_pages("/blog")) == 2
        assert (await client.get_page("/about"))["title"] == "About"
        assert await client.get_slugs("/blog") == ["post-1", "post-2"]
        assert not client.upgraded
    assert searches(route) == ["pages"]


@pytest.mark.asyncio
@respx.mock
async def test_all_methods_after_full_fetch(site_content):
    """After one query-less get_content every accessor is served locally."""
    route = respx.get(STAGING).respond(json=site_content)
    async with AsyncClient(ClientOptions(site_token=TOKEN, env="staging")) as client:
        assert await client.get_content() == site_content
        assert len(await client.get_pages("/blog")) == 2
        assert await client.get_page("/about") == {"_path": "/about", "title": "About", "published": True}
        assert await client.get_entry("foo") == SingleEntry("foo", {"title": "Foo Entry", "content": "This is foo."})
        assert isinstance(await client.get_entry("bar"), EntryList)
        assert len(await client.get_list("categories")) == 2
        assert (await client.get_image("logo"))["width"] == 200
        assert set(await client.get_images()) == {"logo", "hero"}
        assert await client.get_slugs("/blog") == ["post-1", "post-2"]
        assert await client.get_config() == {"title": "Test Site"}
        assert await client.get_content("pages[]._path") == ["/", "/blog/post-1", "/blog/post-2", "/about"]
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_all_methods_with_active_fetch(site_content):
    """Before the upgrade each accessor fetches only its own facet."""
    route = respx.get(STAGING).mock(
        side_effect=[
            httpx.Response(200, json=site_content["images"]["logo"]),
            httpx.Response(200, json=site_content["pages"]),
            httpx.Response(200, json=site_content["entries"]["foo"]),
            httpx.Response(200, json=site_content["lists"]),
            httpx.Response(200, json=site_content["images"]),
            httpx.Response(200, json=["foo"]),
        ]
    )
    async with AsyncClient(ClientOptions(site_token=TOKEN, env="staging")) as client:
        assert await client.get_content("images.logo") == site_content["images"]["logo"]
        assert len(await client.get_pages("/blog")) == 2
        assert (await client.get_page("/about"))["title"] == "About"
        assert (await client.get_entry("foo")).record["title"] == "Foo Entry"
        assert len(await client.get_list("categories")) == 2
        assert (await client.get_image("logo"))["url"] == "https://example.com/logo.png"
        assert await client.get_slugs("/blog") == ["post-1", "post-2"]
        assert await client.get_content("pages[]._path") == ["foo"]
        assert not client.upgraded

    assert searches(route) == [
        "images.logo",
        "pages",
        "entries.foo",
        "lists",
        "images",
        "pages[]._path",
    ]


@pytest.mark.asyncio
@respx.mock
async def test_upgrade_abandons_facets(site_content):
    route = respx.get(LATEST).mock(
        side_effect=[
            httpx.Response(200, json=site_content["pages"]),
            httpx.Response(200, json=site_content),
        ]
    )
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        await client.get_pages("/blog")
        assert isinstance(client._mode, PerFacetCaching)
        assert "pages" in client._mode.facets

        await client.get_content()
        assert isinstance(client._mode, UnifiedDocument)

        for _ in range(3):
            await client.get_pages("/blog")
            await client.get_image("hero")
            await client.get_entry("bar")
            await client.get_list("categories")
            await client.get_content("config.title")
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_entry_selectors_are_quoted():
    route = respx.get(LATEST).respond(json=[{"name": "Ada"}, {"name": "Linus"}])
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        entry = await client.get_entry("team-members")
        assert isinstance(entry, EntryList)
        assert len(entry) == 2
        assert await client.get_entry("") is None
    assert searches(route) == ['entries."team-members"']


@pytest.mark.asyncio
@respx.mock
async def test_missing_facets():
    route = respx.get(LATEST).mock(side_effect=lambda request: json_null())
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        assert await client.get_page("/about") is None
        assert await client.get_image("logo") is None
        assert await client.get_images() == {}
        assert await client.get_entry("foo") is None
        assert await client.get_config() == {}
        assert await client.get_list("categories") is None
    assert searches(route) == ["pages", "images", "entries.foo", "config", "lists", "options"]


@pytest.mark.asyncio
@respx.mock
async def test_options_facet_fallback():
    respx.get(LATEST).mock(
        side_effect=[
            json_null(),
            httpx.Response(200, json={"sizes": [{"label": "Small", "value": "s"}]}),
        ]
    )
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        assert await client.get_options("sizes") == [{"label": "Small", "value": "s"}]


@pytest.mark.asyncio
@respx.mock
async def test_facets_refresh_after_expiration(site_content, clock):
    route = respx.get(LATEST).respond(json=site_content["pages"])
    options = ClientOptions(site_token=TOKEN, expiration_minutes=1)
    fetcher = AsyncContentFetcher(options, clock=clock)
    async with AsyncClient(options, fetcher=fetcher) as client:
        await client.get_pages()
        clock.advance(60)
        await client.get_pages("/blog")
        assert route.call_count == 1
        clock.advance(60)
        await client.get_pages()
        assert route.call_count == 2
        assert not client.upgraded


@pytest.mark.asyncio
@respx.mock
async def test_cache_option_loads_full_document(site_content):
    route = respx.get(LATEST).respond(json=site_content)
    async with AsyncClient(ClientOptions(site_token=TOKEN, cache=True)) as client:
        assert await client.get_slugs("/blog") == ["post-1", "post-2"]
        assert client.upgraded
        assert await client.get_content("config.title") == "Test Site"
    assert searches(route) == [None]


@pytest.mark.asyncio
@respx.mock
async def test_mock_dev_token_loads_full_document(site_content):
    route = respx.get("https://dev.sleekcms.com/site123/latest").respond(json=site_content)
    async with AsyncClient(ClientOptions(site_token=DEV_TOKEN, mock=True)) as client:
        await client.get_page("/about")
        await client.get_image("logo")
    assert route.call_count == 1
    assert route.calls.last.request.url.params["mock"] == "true"


@pytest.mark.asyncio
@respx.mock
async def test_tag_resolved_lazily_once(site_content, resolver):
    tag_route = respx.post(LATEST).respond(json={"tag": "abc123"})
    content_route = respx.get(f"{BASE}/abc123").mock(
        side_effect=[
            httpx.Response(200, json=site_content["pages"]),
            httpx.Response(200, json=site_content["images"]),
        ]
    )
    client = AsyncClient(ClientOptions(site_token=TOKEN, cdn=True), resolver=resolver)
    assert tag_route.call_count == 0

    await client.get_pages("/blog")
    await client.get_image("logo")
    await client.aclose()

    assert tag_route.call_count == 1
    assert content_route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_tag_memo_shared_across_clients(site_content, resolver):
    tag_route = respx.post(LATEST).respond(json={"tag": "abc123"})
    respx.get(f"{BASE}/abc123").respond(json=site_content)
    for _ in range(2):
        async with AsyncClient(ClientOptions(site_token=TOKEN, cdn=True), resolver=resolver) as client:
            await client.get_content()
    assert tag_route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_concurrent_first_calls_converge(site_content):
    """Racing full fetches may both go out, but the client ends up unified."""
    route = respx.get(LATEST).respond(json=site_content)
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        first, second = await asyncio.gather(client.get_content(), client.get_content())
        assert first == second == site_content
        assert client.upgraded
        calls = route.call_count
        await client.get_pages("/blog")
        assert route.call_count == calls
    assert 1 <= calls <= 2


@pytest.mark.asyncio
@respx.mock
async def test_errors_propagate():
    respx.get(LATEST).respond(status_code=500, json={"message": "boom"})
    async with AsyncClient(ClientOptions(site_token=TOKEN)) as client:
        with pytest.raises(FetchError, match="boom"):
            await client.get_pages("/")
        with pytest.raises(QueryError):
            await client.get_content("pages[?")
        assert not client.upgraded


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize(
    "expression",
    [
        "pages[?published == `true`].title",
        "pages[?category == 'tech'] | [0]._slug",
        "sort_by(pages, &_path)[*]._path",
        "images.logo.url",
        "entries.bar[].title",
        "length(pages)",
        "lists.categories[?value == 'tech'].label | [0]",
    ],
)
async def test_local_and_remote_queries_agree(site_content, expression):
    """A query answered server-side equals the same query evaluated locally."""

    def server(request):
        search = request.url.params.get("search")
        return httpx.Response(200, json=evaluate(site_content, search))

    respx.get(LATEST).mock(side_effect=server)

    async with AsyncClient(ClientOptions(site_token=TOKEN)) as remote:
        remote_result = await remote.get_content(expression)
        assert not remote.upgraded

    async with AsyncClient(ClientOptions(site_token=TOKEN)) as local:
        await local.get_content()
        local_result = await local.get_content(expression)
        assert local.upgraded

    assert remote_result == local_result
    assert httpx.Response(200, json=remote_result).content == httpx.Response(200, json=local_result).content
