"""FastAPI application serving pipeline runs in daemon mode."""

from __future__ import annotations

import asyncio
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..errors import AlreadyExistsError, StarterError
from ..logging import get_logger
from ..models import AnalysisResult, PipelineConfig
from ..orchestrator import Orchestrator

logger = get_logger("service")


class AnalyzeRequest(BaseModel):
    path: str
    environment: Optional[str] = None
    generator: Optional[str] = None
    overwrite: Optional[bool] = None


class AnalyzeResponse(BaseModel):
    ok: bool
    language: str
    framework: str
    framework_version: str
    warnings: List[str]


class StatusResponse(BaseModel):
    status: str


class VersionResponse(BaseModel):
    version: str


class RunTracker:
    """Counts in-flight pipeline runs so shutdown can wait for them."""

    def __init__(self) -> None:
        self._active = 0
        self._condition = threading.Condition()

    @property
    def active(self) -> int:
        with self._condition:
            return self._active

    @contextmanager
    def track(self) -> Iterator[None]:
        with self._condition:
            self._active += 1
        try:
            yield
        finally:
            with self._condition:
                self._active -= 1
                self._condition.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no run is in flight; False when ``timeout`` expires first."""
        with self._condition:
            return self._condition.wait_for(lambda: self._active == 0, timeout=timeout)


def create_app(
    orchestrator: Orchestrator,
    base_config: PipelineConfig,
    *,
    tracker: RunTracker | None = None,
) -> FastAPI:
    """Create the HTTP surface around ``orchestrator``.

    Each request gets its own copy of ``base_config`` with the request's
    overrides applied. Templates are expected to be synced at startup, so
    runs skip the manifest check.
    """
    app = FastAPI(title="Starter Service", version=__version__)
    runs = tracker or RunTracker()
    app.state.tracker = runs

    @app.get("/ping", response_model=StatusResponse)
    async def ping() -> StatusResponse:
        return StatusResponse(status="ok")

    @app.get("/version", response_model=VersionResponse)
    async def version() -> VersionResponse:
        return VersionResponse(version=__version__)

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze(payload: AnalyzeRequest) -> AnalyzeResponse:
        overrides: dict[str, Any] = {"project_path": payload.path}
        if payload.environment:
            overrides["environment"] = payload.environment
        if payload.generator is not None:
            overrides["generator"] = payload.generator
        if payload.overwrite is not None:
            overrides["overwrite"] = payload.overwrite
        config = base_config.with_overrides(**overrides)

        def _run() -> AnalysisResult:
            with runs.track():
                return orchestrator.run(config, update_templates=False)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run)
        return AnalyzeResponse(
            ok=result.ok,
            language=result.language,
            framework=result.framework,
            framework_version=result.framework_version,
            warnings=result.warnings,
        )

    @app.exception_handler(AlreadyExistsError)
    async def already_exists_handler(_: Any, exc: AlreadyExistsError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StarterError)
    async def starter_error_handler(_: Any, exc: StarterError) -> JSONResponse:
        logger.warning("Pipeline run failed: %s", exc)
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "RunTracker",
    "create_app",
]
