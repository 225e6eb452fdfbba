"""
Plugin specification models.

A ``PluginSpec`` is what the user declares. A ``ResolvedPlugin`` is a
spec bound to its directory inside the package root. Presence of that
directory, keyed by ``name``, is the source of truth for "installed".
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

# Greatest available semantic version tag
DEFAULT_VERSION = "*"

# Keep current state, never auto-advance
FROZEN_VERSION = "frozen"
FROZEN_ALIASES = frozenset({FROZEN_VERSION, "HEAD"})


class PluginSpec(BaseModel):
    """Normalized plugin specification (immutable)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str | None = None       # URI to clone and pull updates from
    name: str                       # directory name inside the package root
    version: str = DEFAULT_VERSION  # hash, tag, branch, range, or "frozen"

    @property
    def is_frozen(self) -> bool:
        return self.version in FROZEN_ALIASES


class ResolvedPlugin(BaseModel):
    """A spec bound to a concrete filesystem path."""

    model_config = ConfigDict(frozen=True)

    spec: PluginSpec
    path: Path

    @classmethod
    def from_spec(cls, spec: PluginSpec, root: Path) -> ResolvedPlugin:
        return cls(spec=spec, path=root / spec.name)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def is_installed(self) -> bool:
        return self.path.is_dir()
