"""Node.js detection."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict

from ..errors import DetectionError
from .base import Pack

_FRAMEWORKS = (("next", "Next.js"), ("express", "Express"))
_RANGE_PREFIX = re.compile(r"^[\^~>=<v ]+")


class NodePack(Pack):
    key = "node"
    language = "Node"
    default_language_version = "lts"
    default_port = 3000

    @classmethod
    def detect(cls, path: Path) -> bool:
        return (Path(path) / "package.json").is_file()

    def _analyze(self, root: Path, environment: str, interactive: bool) -> Dict[str, Any]:
        try:
            package = json.loads((root / "package.json").read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise DetectionError(f"package.json is not valid JSON: {exc}") from exc
        if not isinstance(package, dict):
            raise DetectionError("package.json must contain an object")

        dependencies: Dict[str, str] = {}
        for key in ("dependencies", "devDependencies"):
            section = package.get(key)
            if isinstance(section, dict):
                dependencies.update({str(k): str(v) for k, v in section.items()})

        for dependency, label in _FRAMEWORKS:
            if dependency in dependencies:
                self.set_framework(label, _RANGE_PREFIX.sub("", dependencies[dependency]))
                break

        engines = package.get("engines")
        version = engines.get("node") if isinstance(engines, dict) else None
        if isinstance(version, str) and version.strip():
            version = _RANGE_PREFIX.sub("", version.strip()).split(" ")[0]
        else:
            version = self.ask(
                "No Node version found in package.json engines.",
                self.default_language_version,
                interactive=interactive,
            )

        scripts = package.get("scripts") if isinstance(package.get("scripts"), dict) else {}
        if "start" in scripts:
            start = "npm start"
        else:
            main = package.get("main") if isinstance(package.get("main"), str) else "index.js"
            start = f"node {main}"
            self.add_message(f"No start script in package.json; defaulting to `{start}`")

        return {
            "language_version": version,
            "build_command": "npm run build" if "build" in scripts else "",
            "start_command": start,
        }


__all__ = ["NodePack"]
