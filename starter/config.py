"""Configuration loading for daemon mode (YAML or JSON)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .models import PipelineConfig, parse_generators
from .templates.fetcher import DEFAULT_TIMEOUT
from .templates.registry import DEFAULT_MANIFEST_URL


@dataclass
class APIConfig:
    """Bind address for the HTTP service."""

    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class TemplateConfig:
    """Where templates come from and how they are fetched."""

    path: str = ""
    branch: str = "master"
    cache_dir: Optional[Path] = None
    manifest_url: str = DEFAULT_MANIFEST_URL
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class PipelineDefaults:
    """Defaults applied to every request served by the daemon."""

    environment: str = "production"
    generators: List[str] = field(default_factory=lambda: ["dockerfile"])
    overwrite: bool = False


@dataclass
class StarterSettings:
    """Settings for the long-running service, loaded once at startup."""

    api: APIConfig = field(default_factory=APIConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)
    pipeline: PipelineDefaults = field(default_factory=PipelineDefaults)
    log_file: Optional[Path] = None

    def pipeline_config(self) -> PipelineConfig:
        """Build the base pipeline config; the daemon never prompts."""
        generators, ignored = parse_generators(self.pipeline.generators)
        return PipelineConfig(
            template_source_path=self.templates.path,
            environment=self.pipeline.environment,
            generators=generators,
            ignored_generators=tuple(ignored),
            overwrite=self.pipeline.overwrite,
            prompt=False,
            branch=self.templates.branch,
            cache_dir=self.templates.cache_dir,
        )


def load_config(config_path: Path) -> StarterSettings:
    """Load daemon settings from ``config_path``."""
    path = Path(config_path).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc
    if not text.strip():
        return StarterSettings()

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {path.name}: {exc}") from exc
    if data is None:
        return StarterSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")

    root = path.parent.resolve()
    settings = StarterSettings()

    api_data = _as_dict(data.get("api"), "api")
    if "host" in api_data:
        settings.api.host = _as_str(api_data["host"], "api.host")
    if "port" in api_data:
        settings.api.port = _as_int(api_data["port"], "api.port")

    templates_data = _as_dict(data.get("templates"), "templates")
    if templates_data.get("path"):
        settings.templates.path = str(_resolve(root, _as_str(templates_data["path"], "templates.path")))
    if "branch" in templates_data:
        settings.templates.branch = _as_str(templates_data["branch"], "templates.branch")
    if templates_data.get("cache_dir"):
        settings.templates.cache_dir = _resolve(root, _as_str(templates_data["cache_dir"], "templates.cache_dir"))
    if "manifest_url" in templates_data:
        settings.templates.manifest_url = _as_str(templates_data["manifest_url"], "templates.manifest_url")
    if "timeout" in templates_data:
        settings.templates.timeout = _as_float(templates_data["timeout"], "templates.timeout")

    pipeline_data = _as_dict(data.get("pipeline"), "pipeline")
    if "environment" in pipeline_data:
        settings.pipeline.environment = _as_str(pipeline_data["environment"], "pipeline.environment")
    if "generators" in pipeline_data:
        settings.pipeline.generators = _as_str_list(pipeline_data["generators"], "pipeline.generators")
    if "overwrite" in pipeline_data:
        settings.pipeline.overwrite = _as_bool(pipeline_data["overwrite"], "pipeline.overwrite")

    if data.get("log_file"):
        settings.log_file = _resolve(root, _as_str(data["log_file"], "log_file"))

    return settings


def _resolve(root: Path, value: str) -> Path:
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else (root / candidate).resolve()


def _as_dict(value: Any, key: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


def _as_str(value: Any, key: str) -> str:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    raise ConfigError(f"'{key}' must be a string")


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be an integer") from exc


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    raise ConfigError(f"'{key}' must be a boolean")


def _as_str_list(value: Any, key: str) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    raise ConfigError(f"'{key}' must be a list or a comma separated string")


__all__ = [
    "APIConfig",
    "PipelineDefaults",
    "StarterSettings",
    "TemplateConfig",
    "load_config",
]
