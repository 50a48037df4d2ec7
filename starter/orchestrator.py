"""Pipeline orchestration: templates, detection, overwrite guard and artifact writers."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Callable

from .errors import (
    AlreadyExistsError,
    DetectionError,
    FilesystemError,
    GenerationError,
    StarterError,
)
from .logging import get_logger
from .models import (
    GENERATOR_COMPOSE,
    GENERATOR_SERVICE,
    AnalysisResult,
    PipelineConfig,
)
from .packs import Pack, detect
from .packs.base import COMPOSE_FILE_NAME, DOCKERFILE_NAME, SERVICE_DESCRIPTOR_NAME
from .templates import TemplateCache

CACHE_DIRNAME = ".starter"

# Artifacts that must not be replaced without the overwrite flag.
GUARDED_ARTIFACTS = (DOCKERFILE_NAME, SERVICE_DESCRIPTOR_NAME)

Detector = Callable[[Path], Pack]


class Stage(str, Enum):
    INIT = "init"
    RESOLVE_TEMPLATES = "resolve_templates"
    DETECT = "detect"
    PRECHECK = "precheck"
    ANALYZE = "analyze"
    WRITE_DOCKERFILE = "write_dockerfile"
    WRITE_SERVICE = "write_service"
    WRITE_COMPOSE = "write_compose"
    DONE = "done"


class Orchestrator:
    """Runs one generation pipeline per :meth:`run` call.

    The orchestrator keeps no per-run state; every input comes from the
    :class:`PipelineConfig` passed in, so one instance can serve concurrent
    callers. Runs against the managed template cache hold the cache lock
    from sync until the last artifact is rendered.
    """

    def __init__(
        self,
        template_cache: TemplateCache | None = None,
        detector: Detector | None = None,
    ) -> None:
        self.template_cache = template_cache or TemplateCache()
        self._detector: Detector = detector or detect
        self.logger = get_logger("orchestrator")

    def run(self, config: PipelineConfig, *, update_templates: bool = True) -> AnalysisResult:
        """Generate the selected artifacts for ``config.project_path``."""
        self.logger.debug("Stage %s", Stage.INIT.value)
        project = self._resolve_project_path(config.project_path)

        self.logger.debug("Stage %s", Stage.RESOLVE_TEMPLATES.value)
        if config.template_source_path:
            template_dir = self._resolve_template_source(config.template_source_path)
            return self._generate(config, project, template_dir)

        cache_dir = self.cache_dir_for(config)
        with TemplateCache.lock_for(cache_dir):
            if update_templates:
                try:
                    self.template_cache.sync(cache_dir, config.branch)
                except StarterError as exc:
                    exc.wrap("failed to download latest templates")
            return self._generate(config, project, cache_dir)

    @staticmethod
    def cache_dir_for(config: PipelineConfig) -> Path:
        """Return the managed template cache directory for ``config``."""
        if config.cache_dir is not None:
            return Path(config.cache_dir).expanduser()
        try:
            return Path.home() / CACHE_DIRNAME
        except RuntimeError as exc:
            raise FilesystemError(f"unable to locate the home directory: {exc}") from exc

    def _resolve_project_path(self, project_path: str) -> Path:
        if project_path:
            path = Path(project_path).expanduser()
        else:
            try:
                path = Path(os.getcwd())
            except OSError as exc:
                raise FilesystemError(f"unable to detect current directory path due to {exc}") from exc
        path = path.resolve()
        if not path.is_dir():
            raise FilesystemError(f"project path {path} is not a directory")
        return path

    def _resolve_template_source(self, template_source: str) -> Path:
        self.logger.info("Using local templates at %s", template_source)
        path = Path(template_source).expanduser().resolve()
        if not path.is_dir():
            raise FilesystemError(f"failed to use {template_source} for templates: not a directory")
        return path

    def _generate(self, config: PipelineConfig, project: Path, template_dir: Path) -> AnalysisResult:
        self.logger.debug("Stage %s", Stage.DETECT.value)
        self.logger.info("Detecting framework for the project at %s", project)
        try:
            pack = self._detector(project)
        except DetectionError as exc:
            exc.wrap("failed to detect framework")
        except Exception as exc:
            raise DetectionError(f"failed to detect framework due to {exc}") from exc

        self.logger.debug("Stage %s", Stage.PRECHECK.value)
        self._check_existing(project, overwrite=config.overwrite)

        interactive = config.prompt
        self.logger.debug("Stage %s", Stage.ANALYZE.value)
        try:
            pack.analyze(project, config.environment, interactive)
        except Exception as exc:
            raise DetectionError(f"failed to analyze the project due to {exc}") from exc

        self._write(Stage.WRITE_DOCKERFILE, pack.write_dockerfile, DOCKERFILE_NAME, template_dir, project, interactive)
        if config.wants(GENERATOR_SERVICE):
            self._write(
                Stage.WRITE_SERVICE,
                pack.write_service_descriptor,
                SERVICE_DESCRIPTOR_NAME,
                template_dir,
                project,
                interactive,
            )
        if config.wants(GENERATOR_COMPOSE):
            self._write(
                Stage.WRITE_COMPOSE,
                pack.write_compose_file,
                COMPOSE_FILE_NAME,
                template_dir,
                project,
                interactive,
            )

        warnings = [f"ignored unknown generator '{token}'" for token in config.ignored_generators]
        warnings.extend(pack.get_messages())

        self.logger.debug("Stage %s", Stage.DONE.value)
        return AnalysisResult(
            ok=True,
            warnings=warnings,
            language=pack.name(),
            framework=pack.framework(),
            framework_version=pack.framework_version(),
        )

    def _check_existing(self, project: Path, *, overwrite: bool) -> None:
        # Runs before analysis so an existing artifact fails fast.
        for name in GUARDED_ARTIFACTS:
            target = project / name
            if target.exists() and not overwrite:
                raise AlreadyExistsError(
                    f"{name} already exists. Use overwrite flag to overwrite it",
                    path=str(target),
                )

    def _write(
        self,
        stage: Stage,
        writer: Callable[[Path, Path, bool], None],
        artifact: str,
        template_dir: Path,
        project: Path,
        interactive: bool,
    ) -> None:
        self.logger.debug("Stage %s", stage.value)
        try:
            writer(template_dir, project, interactive)
        except Exception as exc:
            raise GenerationError(f"failed to write {artifact} due to {exc}") from exc


__all__ = ["CACHE_DIRNAME", "GUARDED_ARTIFACTS", "Orchestrator", "Stage"]
