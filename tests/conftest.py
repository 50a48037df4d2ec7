from __future__ import annotations

from pathlib import Path

import pytest

from starter.templates import TemplateCache
from tests._fixtures.project_builder import ProjectBuilder, write_templates
from tests._fixtures.remote import FakeRemote


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def template_cache(remote: FakeRemote) -> TemplateCache:
    return TemplateCache(remote.registry())


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A local template directory used with an explicit template source."""
    return write_templates(tmp_path / "templates")
