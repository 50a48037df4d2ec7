"""Tests for the manifest registry client."""

from __future__ import annotations

import pytest

from starter.errors import NetworkError, ParseError
from starter.models import DownloadEntry
from starter.templates import RegistryClient
from tests._fixtures.remote import FakeRemote


def test_fetch_manifest_substitutes_branch(remote: FakeRemote) -> None:
    remote.publish("7", branch="develop", dockerfiles={"ruby.dockerfile.template": "FROM ruby"})
    client = RegistryClient(fetcher=remote)

    manifest = client.fetch_manifest("develop")

    assert manifest.version == "7"
    assert remote.calls == [
        "https://raw.githubusercontent.com/cloud66/starter/develop/templates/templates.json"
    ]


def test_entry_url_replaces_branch_placeholder() -> None:
    client = RegistryClient()
    entry = DownloadEntry(url="https://host/{{.branch}}/ruby.template", name="ruby.template")
    assert client.entry_url(entry, "v2") == "https://host/v2/ruby.template"


def test_custom_manifest_url_is_used() -> None:
    seen = []

    def fetcher(url: str, *, timeout: float | None = None) -> bytes:
        seen.append((url, timeout))
        return b'{"version": "1"}'

    client = RegistryClient("https://mirror.test/{branch}/manifest.json", fetcher=fetcher, timeout=3)
    client.fetch_manifest("main")

    assert seen == [("https://mirror.test/main/manifest.json", 3)]


def test_fetch_manifest_propagates_network_error(remote: FakeRemote) -> None:
    with pytest.raises(NetworkError):
        RegistryClient(fetcher=remote).fetch_manifest("master")


def test_fetch_manifest_raises_parse_error_on_bad_body() -> None:
    client = RegistryClient(fetcher=lambda url, timeout=None: b"<html>")
    with pytest.raises(ParseError):
        client.fetch_manifest("master")
