"""Error taxonomy shared by every stage of the starter pipeline."""

from __future__ import annotations

from typing import NoReturn


class StarterError(Exception):
    """Base class for failures surfaced to the CLI and service callers."""

    def wrap(self, context: str) -> NoReturn:
        """Re-raise as the same error type with one line of context prepended."""
        raise type(self)(f"{context} due to {self}") from self


class NetworkError(StarterError):
    """Raised when fetching the manifest or a template entry fails."""


class ParseError(StarterError):
    """Raised when a manifest cannot be decoded or has an invalid shape."""


class FilesystemError(StarterError):
    """Raised when the cache or project directory cannot be read or written."""


class AlreadyExistsError(StarterError):
    """Raised when an output artifact exists and overwriting was not allowed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class DetectionError(StarterError):
    """Raised when no pack recognises the project or analysis fails."""


class GenerationError(StarterError):
    """Raised when a pack fails to render or write an artifact."""


class ConfigError(StarterError):
    """Raised when the daemon configuration file cannot be parsed."""


__all__ = [
    "AlreadyExistsError",
    "ConfigError",
    "DetectionError",
    "FilesystemError",
    "GenerationError",
    "NetworkError",
    "ParseError",
    "StarterError",
]
