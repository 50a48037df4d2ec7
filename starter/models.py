"""Core data models shared across starter components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from .errors import ParseError
from .logging import get_logger

MANIFEST_FILENAME = "templates.json"

GENERATOR_DOCKERFILE = "dockerfile"
GENERATOR_SERVICE = "service"
GENERATOR_COMPOSE = "docker-compose"
KNOWN_GENERATORS: Tuple[str, ...] = (
    GENERATOR_DOCKERFILE,
    GENERATOR_SERVICE,
    GENERATOR_COMPOSE,
)

_MANIFEST_SECTIONS: Tuple[Tuple[str, str], ...] = (
    ("dockerfiles", "dockerfiles"),
    ("service-ymls", "service_descriptors"),
    ("docker-compose-ymls", "compose_files"),
)

logger = get_logger("models")


@dataclass(frozen=True)
class DownloadEntry:
    """A single template file listed by the remote manifest."""

    url: str
    name: str


@dataclass(frozen=True)
class Manifest:
    """Versioned description of the template files available remotely."""

    version: str
    dockerfiles: Tuple[DownloadEntry, ...] = ()
    service_descriptors: Tuple[DownloadEntry, ...] = ()
    compose_files: Tuple[DownloadEntry, ...] = ()
    raw: bytes = field(default=b"", repr=False, compare=False)

    def entries(self) -> Iterator[DownloadEntry]:
        """Yield every entry: dockerfiles, then service descriptors, then compose files."""
        yield from self.dockerfiles
        yield from self.service_descriptors
        yield from self.compose_files


def parse_manifest(data: bytes | str) -> Manifest:
    """Decode manifest JSON and validate entry names."""
    raw = data.encode("utf-8") if isinstance(data, str) else data
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(f"manifest is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseError("manifest must be a JSON object")

    version = payload.get("version")
    if version is None or isinstance(version, (dict, list)):
        raise ParseError("manifest is missing a version")

    sections: Dict[str, Tuple[DownloadEntry, ...]] = {}
    seen: set[str] = set()
    for key, attribute in _MANIFEST_SECTIONS:
        items = payload.get(key) or []
        if not isinstance(items, list):
            raise ParseError(f"manifest field '{key}' must be a list")
        entries: List[DownloadEntry] = []
        for item in items:
            entry = _parse_entry(key, item)
            if entry.name in seen:
                raise ParseError(f"manifest lists '{entry.name}' more than once")
            seen.add(entry.name)
            entries.append(entry)
        sections[attribute] = tuple(entries)

    return Manifest(version=str(version), raw=raw, **sections)


def _parse_entry(section: str, item: Any) -> DownloadEntry:
    if not isinstance(item, dict):
        raise ParseError(f"entries in '{section}' must be objects")
    url = item.get("url")
    name = item.get("name")
    if not isinstance(url, str) or not url:
        raise ParseError(f"entry in '{section}' is missing a url")
    if not isinstance(name, str) or not name:
        raise ParseError(f"entry in '{section}' is missing a name")
    # Names become direct children of the cache directory.
    if name in {".", "..", MANIFEST_FILENAME} or "/" in name or "\\" in name:
        raise ParseError(f"entry name '{name}' is not a valid template filename")
    return DownloadEntry(url=url, name=name)


def parse_generators(spec: str | Sequence[str] | None) -> Tuple[FrozenSet[str], List[str]]:
    """Split a generator spec into known generator tokens and ignored tokens.

    Tokens are matched exactly, so ``"nonservice"`` does not select the
    service descriptor. The Dockerfile generator is always part of the set.
    """
    if spec is None:
        tokens: List[str] = []
    elif isinstance(spec, str):
        tokens = spec.split(",")
    else:
        tokens = [str(item) for item in spec]

    selected = {GENERATOR_DOCKERFILE}
    ignored: List[str] = []
    for token in tokens:
        normalized = token.strip().lower()
        if not normalized:
            continue
        if normalized in KNOWN_GENERATORS:
            selected.add(normalized)
        elif normalized not in ignored:
            logger.warning("Ignoring unknown generator '%s'", normalized)
            ignored.append(normalized)
    return frozenset(selected), ignored


@dataclass(frozen=True)
class PipelineConfig:
    """Inputs for one pipeline invocation."""

    project_path: str = ""
    template_source_path: str = ""
    environment: str = "production"
    generators: FrozenSet[str] = frozenset({GENERATOR_DOCKERFILE})
    ignored_generators: Tuple[str, ...] = ()
    overwrite: bool = False
    prompt: bool = True
    branch: str = "master"
    cache_dir: Optional[Path] = None

    @classmethod
    def from_generator_spec(cls, spec: str | Sequence[str] | None, **kwargs: Any) -> "PipelineConfig":
        generators, ignored = parse_generators(spec)
        return cls(generators=generators, ignored_generators=tuple(ignored), **kwargs)

    def with_overrides(self, **changes: Any) -> "PipelineConfig":
        """Return a copy with the given fields replaced; ``generator`` is parsed."""
        spec = changes.pop("generator", None)
        if spec is not None:
            generators, ignored = parse_generators(spec)
            changes["generators"] = generators
            changes["ignored_generators"] = tuple(ignored)
        return replace(self, **changes)

    def wants(self, generator: str) -> bool:
        return generator in self.generators


@dataclass
class AnalysisResult:
    """Summary returned to callers after a successful run."""

    ok: bool = False
    warnings: List[str] = field(default_factory=list)
    language: str = ""
    framework: str = ""
    framework_version: str = ""


__all__ = [
    "AnalysisResult",
    "DownloadEntry",
    "GENERATOR_COMPOSE",
    "GENERATOR_DOCKERFILE",
    "GENERATOR_SERVICE",
    "KNOWN_GENERATORS",
    "MANIFEST_FILENAME",
    "Manifest",
    "PipelineConfig",
    "parse_generators",
    "parse_manifest",
]
