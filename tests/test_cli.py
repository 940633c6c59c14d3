"""Tests for the sleekcms command line interface."""

import json
import os
from unittest.mock import patch

import respx

from sleekcms.cli import main

from conftest import BASE, TOKEN

LATEST = f"{BASE}/latest"


@respx.mock
def test_content_query(site_content, capsys):
    respx.get(LATEST).respond(json=site_content)
    assert main(["--token", TOKEN, "content", "--query", "config.title"]) == 0
    assert json.loads(capsys.readouterr().out) == "Test Site"


@respx.mock
def test_pages_and_slugs(site_content, capsys):
    respx.get(LATEST).respond(json=site_content)
    assert main(["--token", TOKEN, "pages", "/blog", "--query", "[]._path"]) == 0
    assert json.loads(capsys.readouterr().out) == ["/blog/post-1", "/blog/post-2"]

    assert main(["--token", TOKEN, "slugs", "/blog"]) == 0
    assert json.loads(capsys.readouterr().out) == ["post-1", "post-2"]


@respx.mock
def test_missing_page(site_content, capsys):
    respx.get(LATEST).respond(json=site_content)
    assert main(["--token", TOKEN, "page", "/nope"]) == 1
    assert "No page at /nope" in capsys.readouterr().out


@respx.mock
def test_token_from_environment(site_content, capsys):
    route = respx.get(f"{BASE}/staging").respond(json=site_content)
    env = {"SLEEKCMS_SITE_TOKEN": TOKEN, "SLEEKCMS_ENV": "staging"}
    with patch.dict(os.environ, env, clear=True):
        assert main(["page", "/about"]) == 0
    assert json.loads(capsys.readouterr().out)["title"] == "About"
    assert route.call_count == 1


@respx.mock
def test_fetch_error_exit_code(capsys):
    respx.get(LATEST).respond(status_code=401, json={"message": "Invalid token"})
    assert main(["--token", TOKEN, "content"]) == 1
    assert "Invalid token" in capsys.readouterr().out


def test_missing_token(capsys):
    with patch.dict(os.environ, {}, clear=True):
        assert main(["content"]) == 1
    assert "site_token is required" in capsys.readouterr().out


@respx.mock
def test_resolve(capsys):
    respx.post(LATEST).respond(json={"tag": "abc123"})
    assert main(["--token", TOKEN, "resolve"]) == 0
    assert capsys.readouterr().out.strip() == "abc123"


def test_no_command(capsys):
    assert main([]) == 1
