"""Long-running service wrapper with signal-driven shutdown."""

from __future__ import annotations

import signal
import threading
import time
from enum import Enum
from types import FrameType
from typing import Any, Callable, Optional, Protocol

import uvicorn
from fastapi import FastAPI

from ..config import StarterSettings
from ..errors import StarterError
from ..logging import get_logger
from ..models import PipelineConfig
from ..orchestrator import Orchestrator
from ..templates import RegistryClient, TemplateCache
from .app import RunTracker, create_app

logger = get_logger("daemon")


class DaemonState(str, Enum):
    START = "start"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ServerHandle(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


ServerFactory = Callable[[FastAPI, str, int], ServerHandle]


class UvicornServer:
    """Runs uvicorn on a background thread so the main thread can own signals."""

    def __init__(self, app: FastAPI, host: str, port: int, *, startup_timeout: float = 10.0) -> None:
        config = uvicorn.Config(app, host=host, port=port, log_level="info")
        self._server = uvicorn.Server(config)
        self._thread: Optional[threading.Thread] = None
        self._startup_timeout = startup_timeout

    def start(self) -> None:
        self._thread = threading.Thread(target=self._server.run, name="starter-api", daemon=True)
        self._thread.start()
        deadline = time.monotonic() + self._startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                raise StarterError("API server exited during startup")
            if time.monotonic() > deadline:
                self.stop()
                raise StarterError(f"API server did not start within {self._startup_timeout}s")
            time.sleep(0.05)

    def stop(self) -> None:
        # uvicorn finishes in-flight requests before serve() returns.
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join()


def _uvicorn_factory(app: FastAPI, host: str, port: int) -> ServerHandle:
    return UvicornServer(app, host, port)


class Daemon:
    """Serves pipeline runs until interrupted.

    ``run`` walks START -> LISTENING -> SHUTTING_DOWN -> STOPPED. The main
    thread waits on a shutdown event that SIGINT (or :meth:`request_shutdown`)
    sets; the server is then stopped and in-flight runs drain before ``run``
    returns 0. Startup failures return 1.
    """

    def __init__(
        self,
        settings: StarterSettings,
        *,
        orchestrator: Orchestrator | None = None,
        server_factory: ServerFactory | None = None,
        drain_timeout: float | None = None,
    ) -> None:
        self.settings = settings
        if orchestrator is None:
            registry = RegistryClient(settings.templates.manifest_url, timeout=settings.templates.timeout)
            orchestrator = Orchestrator(TemplateCache(registry))
        self.orchestrator = orchestrator
        self.tracker = RunTracker()
        self.state = DaemonState.START
        self.drain_timeout = drain_timeout
        self._server_factory = server_factory or _uvicorn_factory
        self._shutdown = threading.Event()

    @property
    def shutdown_event(self) -> threading.Event:
        return self._shutdown

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def run(self) -> int:
        previous = self._install_signal_handler()
        try:
            return self._serve()
        finally:
            if previous is not None:
                signal.signal(signal.SIGINT, previous)
            self.state = DaemonState.STOPPED

    def _serve(self) -> int:
        base_config = self.settings.pipeline_config()
        try:
            self._prepare_templates(base_config)
            app = create_app(self.orchestrator, base_config, tracker=self.tracker)
            server = self._server_factory(app, self.settings.api.host, self.settings.api.port)
            server.start()
        except StarterError as exc:
            logger.error("Unable to start the API due to %s", exc)
            return 1

        self.state = DaemonState.LISTENING
        logger.info("Listening on %s:%d", self.settings.api.host, self.settings.api.port)
        self._shutdown.wait()

        self.state = DaemonState.SHUTTING_DOWN
        logger.info("Received an interrupt, stopping services")
        server.stop()
        if not self.tracker.wait_idle(timeout=self.drain_timeout):
            logger.warning("Stopped with %d pipeline run(s) still in flight", self.tracker.active)
        logger.info("Shutdown complete")
        return 0

    def _prepare_templates(self, base_config: PipelineConfig) -> None:
        if base_config.template_source_path:
            logger.info("Using local templates at %s", base_config.template_source_path)
            return
        cache_dir = self.orchestrator.cache_dir_for(base_config)
        try:
            self.orchestrator.template_cache.sync(cache_dir, base_config.branch)
        except StarterError as exc:
            exc.wrap("failed to download latest templates")

    def _install_signal_handler(self) -> Any:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; SIGINT handling left to the caller")
            return None
        return signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.debug("Received signal %d", signum)
        self._shutdown.set()


__all__ = ["Daemon", "DaemonState", "ServerHandle", "UvicornServer"]
