"""Daemon mode: HTTP service and process lifecycle."""

from .app import RunTracker, create_app
from .daemon import Daemon, DaemonState

__all__ = ["Daemon", "DaemonState", "RunTracker", "create_app"]
