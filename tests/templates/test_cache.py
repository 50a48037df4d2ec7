"""Tests for template cache synchronization."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from starter.errors import FilesystemError, NetworkError
from starter.templates import TemplateCache
from tests._fixtures.remote import FakeRemote


def test_first_sync_creates_directory_and_downloads_everything(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    raw = remote.publish(
        "3",
        dockerfiles={"Dockerfile.tmpl": "FROM scratch"},
        service_ymls={"service.yml.template": "services: {}"},
    )
    cache_dir = tmp_path / "home" / ".starter"

    report = template_cache.sync(cache_dir, "master")

    assert report.updated is True
    assert report.version == "3"
    assert report.downloaded == ["Dockerfile.tmpl", "service.yml.template"]
    assert (cache_dir / "templates.json").read_bytes() == raw
    assert (cache_dir / "Dockerfile.tmpl").read_text(encoding="utf-8") == "FROM scratch"
    assert sorted(p.name for p in cache_dir.iterdir()) == [
        "Dockerfile.tmpl",
        "service.yml.template",
        "templates.json",
    ]


def test_second_sync_with_same_version_downloads_nothing(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("3", dockerfiles={"Dockerfile.tmpl": "FROM scratch"})
    cache_dir = tmp_path / ".starter"
    template_cache.sync(cache_dir, "master")
    remote.calls.clear()

    report = template_cache.sync(cache_dir, "master")

    assert report.updated is False
    assert report.downloaded == []
    assert remote.entry_calls() == []
    assert len(remote.calls) == 1


def test_version_change_rewrites_every_entry_and_the_manifest(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("3", dockerfiles={"Dockerfile.tmpl": "old", "stale.template": "gone soon"})
    cache_dir = tmp_path / ".starter"
    template_cache.sync(cache_dir, "master")

    remote.publish("4", dockerfiles={"Dockerfile.tmpl": "new"}, compose_ymls={"compose.template": "c"})
    report = template_cache.sync(cache_dir, "master")

    assert report.updated is True
    assert report.downloaded == ["Dockerfile.tmpl", "compose.template"]
    assert json.loads((cache_dir / "templates.json").read_text(encoding="utf-8"))["version"] == "4"
    assert (cache_dir / "Dockerfile.tmpl").read_text(encoding="utf-8") == "new"
    assert not (cache_dir / "stale.template").exists()


def test_failed_download_keeps_previous_cache_intact(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("3", dockerfiles={"Dockerfile.tmpl": "v3"})
    cache_dir = tmp_path / ".starter"
    template_cache.sync(cache_dir, "master")

    remote.publish("4", dockerfiles={"Dockerfile.tmpl": "v4", "broken.template": "x"})
    remote.fail("broken.template")

    with pytest.raises(NetworkError):
        template_cache.sync(cache_dir, "master")

    assert json.loads((cache_dir / "templates.json").read_text(encoding="utf-8"))["version"] == "3"
    assert (cache_dir / "Dockerfile.tmpl").read_text(encoding="utf-8") == "v3"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".starter"]


def test_failed_first_sync_leaves_no_cache_behind(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("1", dockerfiles={"broken.template": "x"})
    remote.fail("broken.template")
    cache_dir = tmp_path / ".starter"

    with pytest.raises(NetworkError):
        template_cache.sync(cache_dir, "master")

    assert not cache_dir.exists()
    assert list(tmp_path.iterdir()) == []


def test_corrupt_local_manifest_triggers_full_download(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("2", dockerfiles={"Dockerfile.tmpl": "fresh"})
    cache_dir = tmp_path / ".starter"
    cache_dir.mkdir()
    (cache_dir / "templates.json").write_text("{broken", encoding="utf-8")

    report = template_cache.sync(cache_dir, "master")

    assert report.updated is True
    assert (cache_dir / "Dockerfile.tmpl").read_text(encoding="utf-8") == "fresh"


def test_manifest_fetch_failure_is_reported_before_touching_disk(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    with pytest.raises(NetworkError):
        template_cache.sync(tmp_path / ".starter", "master")
    assert not (tmp_path / ".starter").exists()


def test_unwritable_parent_raises_filesystem_error(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    remote.publish("1", dockerfiles={"Dockerfile.tmpl": "x"})
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(FilesystemError):
        template_cache.sync(blocker / ".starter", "master")


def test_lock_for_returns_the_same_lock_per_directory(tmp_path: Path) -> None:
    first = TemplateCache.lock_for(tmp_path / "cache")
    second = TemplateCache.lock_for(tmp_path / "other" / ".." / "cache")
    assert first is second
    assert TemplateCache.lock_for(tmp_path / "elsewhere") is not first


@pytest.mark.parametrize("local", ["{broken", '{"dockerfiles": []}', "[]"])
def test_corrupt_local_manifest_is_stale_even_for_empty_remote_version(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache, local: str
) -> None:
    remote.publish("", dockerfiles={"a.template": "fresh"})
    cache_dir = tmp_path / ".starter"
    cache_dir.mkdir()
    (cache_dir / "templates.json").write_text(local, encoding="utf-8")

    report = template_cache.sync(cache_dir, "master")

    assert report.updated is True
    assert (cache_dir / "a.template").read_text(encoding="utf-8") == "fresh"


def test_symlinked_cache_dir_is_updated_in_its_target(
    tmp_path: Path, remote: FakeRemote, template_cache: TemplateCache
) -> None:
    real = tmp_path / "real"
    real.mkdir()
    link = tmp_path / ".starter"
    link.symlink_to(real, target_is_directory=True)

    remote.publish("1", dockerfiles={"Dockerfile.tmpl": "v1"})
    template_cache.sync(link, "master")
    remote.publish("2", dockerfiles={"Dockerfile.tmpl": "v2"})
    template_cache.sync(link, "master")

    assert link.is_symlink()
    assert (real / "Dockerfile.tmpl").read_text(encoding="utf-8") == "v2"
    assert (link / "Dockerfile.tmpl").read_text(encoding="utf-8") == "v2"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".starter", "real"]
