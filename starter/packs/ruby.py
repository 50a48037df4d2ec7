"""Ruby and Rails detection."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict

from .base import Pack

_RUBY_DIRECTIVE = re.compile(r"""^\s*ruby\s+['"]([^'"]+)['"]""", re.MULTILINE)
_LOCKED_GEM = re.compile(r"^ {4}([A-Za-z0-9_.-]+) \(([^)]+)\)$", re.MULTILINE)

_DATABASE_GEMS = {
    "pg": "postgresql",
    "mysql2": "mysql",
    "redis": "redis",
    "mongoid": "mongodb",
}


class RubyPack(Pack):
    """Projects with a Gemfile; Rails and Sinatra are recognised."""

    key = "ruby"
    language = "Ruby"
    default_language_version = "3.2"
    default_port = 9292

    @classmethod
    def detect(cls, path: Path) -> bool:
        return (Path(path) / "Gemfile").is_file()

    def _analyze(self, root: Path, environment: str, interactive: bool) -> Dict[str, Any]:
        gems = self._locked_gems(root)
        context: Dict[str, Any] = {}

        version = self._read_version_file(root / ".ruby-version", prefix="ruby-")
        if version is None:
            match = _RUBY_DIRECTIVE.search((root / "Gemfile").read_text(encoding="utf-8"))
            version = match.group(1) if match else None
        if version is None:
            version = self.ask(
                "No Ruby version found in .ruby-version or Gemfile.",
                self.default_language_version,
                interactive=interactive,
            )
        context["language_version"] = version

        if "rails" in gems:
            self.set_framework("Rails", gems["rails"])
            context["port"] = 3000
            context["start_command"] = "bundle exec rails server -b 0.0.0.0 -p 3000"
            if environment == "production":
                context["build_command"] = "bundle exec rake assets:precompile"
        elif "sinatra" in gems:
            self.set_framework("Sinatra", gems["sinatra"])
            context["start_command"] = f"bundle exec rackup -o 0.0.0.0 -p {self.default_port}"
        else:
            context["start_command"] = f"bundle exec rackup -o 0.0.0.0 -p {self.default_port}"

        databases = [db for gem, db in _DATABASE_GEMS.items() if gem in gems]
        for database in databases:
            self.add_message(f"Found {database} dependency; it is not added to the Dockerfile")
        context["databases"] = databases
        return context

    def _locked_gems(self, root: Path) -> Dict[str, str]:
        lockfile = root / "Gemfile.lock"
        if not lockfile.is_file():
            self.add_message("No Gemfile.lock found; run `bundle install` before building the image")
            return {}
        text = lockfile.read_text(encoding="utf-8")
        return {name: version for name, version in _LOCKED_GEM.findall(text)}


__all__ = ["RubyPack"]
