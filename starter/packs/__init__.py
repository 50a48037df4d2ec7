"""Pack implementations and detection."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Iterable, List, Sequence, Type

from ..errors import DetectionError
from ..logging import get_logger
from .base import Pack, Prompter
from .node import NodePack
from .python import PythonPack
from .ruby import RubyPack

_ENTRY_POINT_GROUP = "starter.packs"

# Checked in order; the first pack that recognises the project wins.
_BUILTIN_PACKS: tuple[Type[Pack], ...] = (RubyPack, NodePack, PythonPack)

logger = get_logger("packs")


def available_packs() -> List[Type[Pack]]:
    """Return built-in packs followed by packs registered as entry points."""
    packs: List[Type[Pack]] = list(_BUILTIN_PACKS)
    seen = {pack.key for pack in packs}
    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise DetectionError(f"failed to load pack entry point '{entry.name}': {exc}") from exc
        if not (isinstance(loaded, type) and issubclass(loaded, Pack)):
            raise DetectionError(f"pack entry point '{entry.name}' must be a Pack subclass")
        if loaded.key in seen:
            continue
        packs.append(loaded)
        seen.add(loaded.key)
    return packs


def detect(
    path: str | Path,
    *,
    packs: Sequence[Type[Pack]] | None = None,
    prompter: Prompter | None = None,
) -> Pack:
    """Return an instance of the first pack that recognises ``path``."""
    root = Path(path)
    candidates = list(packs) if packs is not None else available_packs()
    for pack_type in candidates:
        if pack_type.detect(root):
            logger.info("Found %s application", pack_type.language)
            return pack_type(prompter=prompter)
    raise DetectionError("could not detect any of the supported frameworks")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "NodePack",
    "Pack",
    "PythonPack",
    "RubyPack",
    "available_packs",
    "detect",
]
