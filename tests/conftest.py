"""Shared fixtures: a representative site document and isolated resolvers."""

import copy

import pytest

from sleekcms.resolver import EnvironmentResolver, get_default_resolver

TOKEN = "prod-site123-secretkey"
DEV_TOKEN = "dev-site123-secretkey"
BASE = "https://prod.sleekcms.com/site123"

SITE_CONTENT = {
    "entries": {
        "foo": {"title": "Foo Entry", "content": "This is foo."},
        "bar": [
            {"title": "Bar Entry 1", "content": "This is bar 1."},
            {"title": "Bar Entry 2", "content": "This is bar 2."},
        ],
    },
    "pages": [
        {"_path": "/", "title": "Home", "published": True},
        {"_path": "/blog/post-1", "_slug": "post-1", "title": "Post 1", "published": True, "category": "tech"},
        {"_path": "/blog/post-2", "_slug": "post-2", "title": "Post 2", "published": False, "category": "tech"},
        {"_path": "/about", "title": "About", "published": True},
    ],
    "images": {
        "logo": {"url": "https://example.com/logo.png", "width": 200, "height": 100},
        "hero": {"url": "https://example.com/hero.jpg", "width": 1200, "height": 600},
    },
    "lists": {
        "categories": [
            {"label": "Technology", "value": "tech"},
            {"label": "Business", "value": "business"},
        ]
    },
    "config": {"title": "Test Site"},
}


@pytest.fixture
def site_content():
    """Fresh copy of the sample document for each test."""
    return copy.deepcopy(SITE_CONTENT)


@pytest.fixture
def resolver():
    """Resolver private to one test."""
    return EnvironmentResolver()


@pytest.fixture(autouse=True)
def clear_default_resolver():
    get_default_resolver().clear()
    yield
    get_default_resolver().clear()


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
