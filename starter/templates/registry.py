"""Client for the remote template manifest."""

from __future__ import annotations

from ..logging import get_logger
from ..models import DownloadEntry, Manifest, parse_manifest
from .fetcher import DEFAULT_TIMEOUT, Fetcher, fetch

DEFAULT_MANIFEST_URL = (
    "https://raw.githubusercontent.com/cloud66/starter/{branch}/templates/templates.json"
)
_ENTRY_BRANCH_PLACEHOLDER = "{{.branch}}"


class RegistryClient:
    """Fetches and parses the manifest published for a template branch."""

    def __init__(
        self,
        manifest_url: str = DEFAULT_MANIFEST_URL,
        *,
        fetcher: Fetcher | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.manifest_url = manifest_url
        self.timeout = timeout
        self._fetch = fetcher or fetch
        self.logger = get_logger("registry")

    def manifest_location(self, branch: str) -> str:
        return self.manifest_url.replace("{branch}", branch)

    def entry_url(self, entry: DownloadEntry, branch: str) -> str:
        return entry.url.replace(_ENTRY_BRANCH_PLACEHOLDER, branch)

    def fetch_manifest(self, branch: str) -> Manifest:
        """Retrieve the manifest for ``branch``; no retries are attempted."""
        url = self.manifest_location(branch)
        self.logger.debug("Fetching template manifest from %s", url)
        body = self._fetch(url, timeout=self.timeout)
        return parse_manifest(body)

    def fetch_entry(self, entry: DownloadEntry, branch: str) -> bytes:
        url = self.entry_url(entry, branch)
        self.logger.debug("Downloading %s from %s", entry.name, url)
        return self._fetch(url, timeout=self.timeout)


__all__ = ["DEFAULT_MANIFEST_URL", "RegistryClient"]
