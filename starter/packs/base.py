"""Base class for detection collaborators ("packs")."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound

from ..errors import GenerationError
from ..logging import get_logger

Prompter = Callable[[str], str]

DOCKERFILE_NAME = "Dockerfile"
SERVICE_DESCRIPTOR_NAME = "service.yml"
COMPOSE_FILE_NAME = "docker-compose.yml"

_PROCFILE_LINE = re.compile(r"^(?P<process>[A-Za-z0-9_-]+):\s*(?P<command>.+)$")


class Pack(ABC):
    """Capability interface for one language stack.

    Subclasses recognise their stack in :meth:`detect`, collect template
    context in :meth:`_analyze` and inherit the artifact writers, which render
    ``<key>.<artifact>.template`` from the template directory.
    """

    key: str = ""
    language: str = ""
    default_language_version: str = "latest"
    default_port: int = 8080

    def __init__(self, *, prompter: Prompter | None = None) -> None:
        self._prompter: Prompter = prompter or input
        self._messages: List[str] = []
        self._framework = ""
        self._framework_version = ""
        self.context: Dict[str, Any] = {}
        self.logger = get_logger(f"packs.{self.key or 'custom'}")

    @classmethod
    @abstractmethod
    def detect(cls, path: Path) -> bool:
        """Return True when the project at ``path`` belongs to this stack."""

    @abstractmethod
    def _analyze(self, root: Path, environment: str, interactive: bool) -> Dict[str, Any]:
        """Return stack-specific template context for the project at ``root``."""

    def analyze(self, path: str | Path, environment: str, interactive: bool) -> None:
        root = Path(path)
        context: Dict[str, Any] = {
            "project_name": root.name,
            "environment": environment,
            "language": self.name(),
            "language_version": self.default_language_version,
            "framework": "",
            "framework_version": "",
            "port": self.default_port,
            "build_command": "",
            "start_command": "",
            "databases": [],
        }
        context.update(self._analyze(root, environment, interactive))
        web = self._procfile_command(root, "web")
        if web:
            context["start_command"] = web
        context["framework"] = self._framework
        context["framework_version"] = self._framework_version
        self.context = context

    def write_dockerfile(self, template_dir: str | Path, path: str | Path, interactive: bool) -> None:
        self._write("dockerfile", DOCKERFILE_NAME, template_dir, path)

    def write_service_descriptor(self, template_dir: str | Path, path: str | Path, interactive: bool) -> None:
        self._write("service.yml", SERVICE_DESCRIPTOR_NAME, template_dir, path)

    def write_compose_file(self, template_dir: str | Path, path: str | Path, interactive: bool) -> None:
        self._write("docker-compose.yml", COMPOSE_FILE_NAME, template_dir, path)

    def get_messages(self) -> List[str]:
        return list(self._messages)

    def name(self) -> str:
        return self.language

    def framework(self) -> str:
        return self._framework

    def framework_version(self) -> str:
        return self._framework_version

    # ------------------------------------------------------------------
    # Helpers for subclasses

    def add_message(self, message: str) -> None:
        self.logger.debug("%s", message)
        self._messages.append(message)

    def set_framework(self, framework: str, version: str = "") -> None:
        self._framework = framework
        self._framework_version = version

    def ask(self, question: str, default: str, *, interactive: bool) -> str:
        """Prompt for a value when interactive, otherwise record the default."""
        if interactive:
            answer = self._prompter(f"{question} [{default}]: ").strip()
            return answer or default
        self.add_message(f"{question} Using default: {default}")
        return default

    def _write(self, artifact: str, target_name: str, template_dir: str | Path, path: str | Path) -> None:
        if not self.context:
            raise GenerationError(f"project must be analyzed before writing {target_name}")
        environment = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        candidates = [f"{self.key}.{artifact}.template", f"{artifact}.template"]
        try:
            template = environment.select_template(candidates)
        except TemplateNotFound as exc:
            raise GenerationError(
                f"no template for {target_name} in {template_dir} (looked for {', '.join(candidates)})"
            ) from exc
        except TemplateError as exc:
            raise GenerationError(f"template for {target_name} is invalid: {exc}") from exc

        try:
            rendered = template.render(**self.context)
        except TemplateError as exc:
            raise GenerationError(f"failed to render {template.name}: {exc}") from exc

        target = Path(path) / target_name
        target.write_text(rendered, encoding="utf-8")
        self.logger.info("%s written to %s", target_name, target)

    @staticmethod
    def _procfile_command(root: Path, process: str) -> Optional[str]:
        procfile = root / "Procfile"
        if not procfile.is_file():
            return None
        for line in procfile.read_text(encoding="utf-8").splitlines():
            match = _PROCFILE_LINE.match(line.strip())
            if match and match.group("process") == process:
                return match.group("command").strip()
        return None

    @staticmethod
    def _read_version_file(path: Path, *, prefix: str = "") -> Optional[str]:
        if not path.is_file():
            return None
        value = path.read_text(encoding="utf-8").strip()
        if prefix and value.startswith(prefix):
            value = value[len(prefix):]
        return value or None


__all__ = [
    "COMPOSE_FILE_NAME",
    "DOCKERFILE_NAME",
    "Pack",
    "Prompter",
    "SERVICE_DESCRIPTOR_NAME",
]
