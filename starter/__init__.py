"""Scaffold Dockerfiles, service descriptors and compose files for a project."""

__version__ = "1.0.0"
__build_date__ = "2026-10-17"

__all__ = ["__build_date__", "__version__"]
