"""Remote template manifest retrieval and local cache management."""

from .cache import SyncReport, TemplateCache
from .fetcher import DEFAULT_TIMEOUT, Fetcher, fetch
from .registry import DEFAULT_MANIFEST_URL, RegistryClient

__all__ = [
    "DEFAULT_MANIFEST_URL",
    "DEFAULT_TIMEOUT",
    "Fetcher",
    "RegistryClient",
    "SyncReport",
    "TemplateCache",
    "fetch",
]
