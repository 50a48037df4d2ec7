"""Python detection for Django, Flask and FastAPI projects."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from .base import Pack

_REQUIREMENT = re.compile(r"^(?P<name>[A-Za-z0-9_.-]+)\s*(?:\[[^\]]*\])?\s*(?:==\s*(?P<version>[^\s;,]+))?")


class PythonPack(Pack):
    key = "python"
    language = "Python"
    default_language_version = "3.12"
    default_port = 8000

    @classmethod
    def detect(cls, path: Path) -> bool:
        root = Path(path)
        return (root / "requirements.txt").is_file() or (root / "pyproject.toml").is_file()

    def _analyze(self, root: Path, environment: str, interactive: bool) -> Dict[str, Any]:
        requirements = self._load_requirements(root)
        dependency_file = "requirements.txt" if (root / "requirements.txt").is_file() else "pyproject.toml"
        context: Dict[str, Any] = {"dependency_file": dependency_file}

        version = self._read_version_file(root / ".python-version")
        if version is None:
            version = self._read_version_file(root / "runtime.txt", prefix="python-")
        if version is None:
            version = self.ask(
                "No Python version found in .python-version or runtime.txt.",
                self.default_language_version,
                interactive=interactive,
            )
        context["language_version"] = version

        if "django" in requirements:
            self.set_framework("Django", requirements["django"])
            module = self._django_module(root)
            if module:
                context["start_command"] = f"gunicorn --bind 0.0.0.0:8000 {module}.wsgi"
            else:
                context["start_command"] = "python manage.py runserver 0.0.0.0:8000"
                self.add_message("No wsgi.py found; the container runs the Django development server")
            if environment == "production":
                context["build_command"] = "python manage.py collectstatic --noinput"
        elif "flask" in requirements:
            self.set_framework("Flask", requirements["flask"])
            context["port"] = 5000
            context["start_command"] = "gunicorn --bind 0.0.0.0:5000 app:app"
        elif "fastapi" in requirements:
            self.set_framework("FastAPI", requirements["fastapi"])
            context["start_command"] = "uvicorn main:app --host 0.0.0.0 --port 8000"
        else:
            context["start_command"] = "python main.py"
            self.add_message("No web framework found; defaulting to `python main.py`")

        if "gunicorn" not in requirements and "gunicorn" in context["start_command"]:
            self.add_message("gunicorn is not listed as a dependency; add it before building the image")
        return context

    def _load_requirements(self, root: Path) -> Dict[str, str]:
        lines: List[str] = []
        requirements = root / "requirements.txt"
        if requirements.is_file():
            lines.extend(requirements.read_text(encoding="utf-8").splitlines())
        pyproject = root / "pyproject.toml"
        if pyproject.is_file():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError:
                self.add_message("pyproject.toml could not be parsed; its dependencies were skipped")
                data = {}
            project = data.get("project")
            if isinstance(project, dict):
                lines.extend(str(dep) for dep in project.get("dependencies", []) or [])

        found: Dict[str, str] = {}
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith(("#", "-")):
                continue
            match = _REQUIREMENT.match(stripped)
            if match:
                found[match.group("name").lower()] = match.group("version") or ""
        return found

    @staticmethod
    def _django_module(root: Path) -> str | None:
        for candidate in sorted(root.glob("*/wsgi.py")):
            return candidate.parent.name
        return None


__all__ = ["PythonPack"]
