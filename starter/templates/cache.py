"""Local template cache kept in step with the remote manifest version."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..errors import FilesystemError, StarterError
from ..logging import get_logger
from ..models import MANIFEST_FILENAME, Manifest
from .registry import RegistryClient

_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


@dataclass
class SyncReport:
    """Outcome of a cache sync."""

    version: str
    updated: bool = False
    downloaded: List[str] = field(default_factory=list)


class TemplateCache:
    """Reconciles a cache directory against the remote manifest.

    A full download is staged in a sibling temporary directory and swapped
    into place only once every file is written, so a failed sync leaves the
    previous cache untouched. Syncs of the same directory are serialized
    through :meth:`lock_for`.
    """

    def __init__(self, registry: RegistryClient | None = None) -> None:
        self.registry = registry or RegistryClient()
        self.logger = get_logger("templates")

    @staticmethod
    def lock_for(cache_dir: Path) -> threading.RLock:
        """Return the process-wide lock guarding ``cache_dir``."""
        key = str(Path(cache_dir).expanduser().resolve())
        with _LOCKS_GUARD:
            lock = _LOCKS.get(key)
            if lock is None:
                lock = threading.RLock()
                _LOCKS[key] = lock
            return lock

    def sync(self, cache_dir: Path, branch: str) -> SyncReport:
        # Symlinked cache dirs are staged and swapped beside their target.
        cache_dir = Path(cache_dir).expanduser().resolve()
        self.logger.info("Checking templates in %s", cache_dir)
        remote = self.registry.fetch_manifest(branch)

        with self.lock_for(cache_dir):
            manifest_path = cache_dir / MANIFEST_FILENAME
            local_version, stale = self._read_local_version(manifest_path)
            if not manifest_path.exists():
                self.logger.info("No local templates found. Downloading now.")
            elif stale:
                self.logger.info("Local templates are unusable. Downloading version %s now.", remote.version)
            elif local_version != remote.version:
                self.logger.info(
                    "Newer templates found (%s -> %s). Downloading them now.",
                    local_version,
                    remote.version,
                )
            else:
                self.logger.info("Local templates are up to date")
                return SyncReport(version=remote.version)

            downloaded = self._install(cache_dir, remote, branch)
            return SyncReport(version=remote.version, updated=True, downloaded=downloaded)

    def _read_local_version(self, manifest_path: Path) -> Tuple[Optional[str], bool]:
        """Return ``(version, stale)``; a missing or corrupt manifest is stale."""
        if not manifest_path.exists():
            return None, True
        try:
            payload = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.logger.warning("Local manifest %s is unreadable (%s); refreshing", manifest_path, exc)
            return None, True
        if not isinstance(payload, dict) or payload.get("version") is None:
            self.logger.warning("Local manifest %s has no version; refreshing", manifest_path)
            return None, True
        return str(payload["version"]), False

    def _install(self, cache_dir: Path, manifest: Manifest, branch: str) -> List[str]:
        try:
            cache_dir.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{cache_dir.name}-", dir=cache_dir.parent))
        except OSError as exc:
            raise FilesystemError(f"failed to prepare template directory {cache_dir}: {exc}") from exc

        downloaded: List[str] = []
        try:
            staging.chmod(0o755)
            (staging / MANIFEST_FILENAME).write_bytes(manifest.raw)
            for entry in manifest.entries():
                body = self.registry.fetch_entry(entry, branch)
                (staging / entry.name).write_bytes(body)
                downloaded.append(entry.name)
            self._swap(staging, cache_dir)
        except OSError as exc:
            raise FilesystemError(f"failed to write templates into {cache_dir}: {exc}") from exc
        except StarterError:
            self.logger.debug("Template download aborted after %d file(s)", len(downloaded))
            raise
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        self.logger.info("Downloaded %d template file(s) for version %s", len(downloaded), manifest.version)
        return downloaded

    @staticmethod
    def _swap(staging: Path, cache_dir: Path) -> None:
        backup: Optional[Path] = None
        if cache_dir.exists():
            backup = cache_dir.with_name(f".{cache_dir.name}-old-{uuid.uuid4().hex[:8]}")
            os.replace(cache_dir, backup)
        try:
            os.replace(staging, cache_dir)
        except OSError:
            if backup is not None:
                os.replace(backup, cache_dir)
            raise
        if backup is None:
            return
        if backup.is_symlink():
            backup.unlink()
        else:
            shutil.rmtree(backup, ignore_errors=True)


__all__ = ["SyncReport", "TemplateCache"]
