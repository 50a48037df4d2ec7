"""Tests for the built-in packs and pack detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from starter.errors import DetectionError, GenerationError
from starter.packs import NodePack, PythonPack, RubyPack, detect
from starter.packs.base import Pack
from tests._fixtures.project_builder import ProjectBuilder


def test_detect_picks_ruby_for_gemfile(project_builder: ProjectBuilder) -> None:
    project_builder.rails_app()
    assert isinstance(detect(project_builder.path()), RubyPack)


def test_detect_picks_node_for_package_json(project_builder: ProjectBuilder) -> None:
    project_builder.write({"package.json": "{}"})
    assert isinstance(detect(project_builder.path()), NodePack)


def test_detect_picks_python_for_requirements(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "flask==3.0.0\n"})
    assert isinstance(detect(project_builder.path()), PythonPack)


def test_detect_raises_when_nothing_matches(project_builder: ProjectBuilder) -> None:
    project_builder.write({"README.md": "hello"})
    with pytest.raises(DetectionError, match="supported frameworks"):
        detect(project_builder.path())


def test_detect_honours_explicit_pack_list(project_builder: ProjectBuilder) -> None:
    project_builder.rails_app().write({"package.json": "{}"})
    assert isinstance(detect(project_builder.path(), packs=[NodePack, RubyPack]), NodePack)


def test_ruby_pack_reads_rails_and_databases(project_builder: ProjectBuilder) -> None:
    project_builder.rails_app("7.0.8")
    pack = RubyPack()

    pack.analyze(project_builder.path(), "production", False)

    assert pack.name() == "Ruby"
    assert pack.framework() == "Rails"
    assert pack.framework_version() == "7.0.8"
    assert pack.context["language_version"] == "3.2.2"
    assert pack.context["port"] == 3000
    assert pack.context["build_command"] == "bundle exec rake assets:precompile"
    assert pack.context["databases"] == ["postgresql"]
    assert pack.get_messages() == ["Found postgresql dependency; it is not added to the Dockerfile"]


def test_ruby_version_file_wins_over_gemfile(project_builder: ProjectBuilder) -> None:
    project_builder.rails_app().write({".ruby-version": "ruby-3.3.0\n"})
    pack = RubyPack()
    pack.analyze(project_builder.path(), "development", False)
    assert pack.context["language_version"] == "3.3.0"
    assert pack.context["build_command"] == ""


def test_missing_version_uses_default_and_records_message(project_builder: ProjectBuilder) -> None:
    project_builder.write({"package.json": '{"scripts": {"start": "node server.js"}}'})
    pack = NodePack()

    pack.analyze(project_builder.path(), "production", False)

    assert pack.context["language_version"] == "lts"
    assert pack.context["start_command"] == "npm start"
    assert pack.get_messages() == [
        "No Node version found in package.json engines. Using default: lts"
    ]


def test_interactive_pack_asks_the_prompter(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "django==4.2.7\n"})
    questions: list[str] = []

    def prompter(question: str) -> str:
        questions.append(question)
        return "3.11"

    pack = PythonPack(prompter=prompter)
    pack.analyze(project_builder.path(), "production", True)

    assert pack.context["language_version"] == "3.11"
    assert pack.framework() == "Django"
    assert pack.framework_version() == "4.2.7"
    assert questions and questions[0].endswith("[3.12]: ")


def test_node_pack_reads_engines_and_framework(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "package.json": """
            {
              "engines": {"node": ">=20.11"},
              "dependencies": {"express": "^4.18.2"},
              "scripts": {"build": "tsc"}
            }
            """
        }
    )
    pack = NodePack()
    pack.analyze(project_builder.path(), "production", False)

    assert pack.context["language_version"] == "20.11"
    assert pack.framework() == "Express"
    assert pack.framework_version() == "4.18.2"
    assert pack.context["build_command"] == "npm run build"
    assert pack.context["start_command"] == "node index.js"


def test_node_pack_rejects_invalid_package_json(project_builder: ProjectBuilder) -> None:
    project_builder.write({"package.json": "{oops"})
    with pytest.raises(DetectionError):
        NodePack().analyze(project_builder.path(), "production", False)


def test_procfile_web_process_overrides_start_command(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {"requirements.txt": "flask\n", "Procfile": "web: gunicorn wsgi:app\nworker: celery -A app worker\n"}
    )
    pack = PythonPack()
    pack.analyze(project_builder.path(), "production", False)
    assert pack.context["start_command"] == "gunicorn wsgi:app"


def test_write_dockerfile_renders_language_template(
    project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.rails_app()
    pack = RubyPack()
    pack.analyze(project_builder.path(), "staging", False)

    pack.write_dockerfile(template_dir, project_builder.path(), False)

    content = (project_builder.path() / "Dockerfile").read_text(encoding="utf-8")
    assert content.startswith("FROM ruby:3.2.2\n")
    assert "ENV RACK_ENV=staging" in content


def test_write_service_descriptor_falls_back_to_generic_template(
    project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.write({"requirements.txt": "fastapi==0.110.0\n"})
    pack = PythonPack()
    pack.analyze(project_builder.path(), "production", False)

    pack.write_service_descriptor(template_dir, project_builder.path(), False)

    content = (project_builder.path() / "service.yml").read_text(encoding="utf-8")
    assert "project:" in content
    assert "uvicorn main:app" in content


def test_missing_template_raises_generation_error(project_builder: ProjectBuilder, tmp_path: Path) -> None:
    project_builder.write({"requirements.txt": "flask\n"})
    empty = tmp_path / "empty-templates"
    empty.mkdir()
    pack = PythonPack()
    pack.analyze(project_builder.path(), "production", False)

    with pytest.raises(GenerationError, match="python.dockerfile.template"):
        pack.write_dockerfile(empty, project_builder.path(), False)


def test_writing_before_analysis_is_rejected(project_builder: ProjectBuilder, template_dir: Path) -> None:
    with pytest.raises(GenerationError, match="analyzed"):
        PythonPack().write_dockerfile(template_dir, project_builder.path(), False)


def test_custom_pack_subclass_is_accepted(project_builder: ProjectBuilder) -> None:
    class GoPack(Pack):
        key = "go"
        language = "Go"

        @classmethod
        def detect(cls, path: Path) -> bool:
            return (Path(path) / "go.mod").is_file()

        def _analyze(self, root: Path, environment: str, interactive: bool) -> dict:
            return {"start_command": "/app/server"}

    project_builder.write({"go.mod": "module example.com/app\n"})
    pack = detect(project_builder.path(), packs=[GoPack])
    pack.analyze(project_builder.path(), "production", False)
    assert pack.name() == "Go"
    assert pack.context["start_command"] == "/app/server"
