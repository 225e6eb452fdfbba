"""
Session registry — plugins added during the lifetime of one manager.

Keyed by plugin name, insertion ordered. Adding a name again replaces
its spec in place (last writer wins, position kept).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from plugpack.core.models.spec import PluginSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    spec: PluginSpec
    loaded: bool = True  # False for plugins added with `bang`


class SessionRegistry:
    """Ordered name → entry mapping owned by a ``PackManager``."""

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}

    def register(self, spec: PluginSpec, loaded: bool = True) -> RegistryEntry:
        entry = RegistryEntry(spec=spec, loaded=loaded)
        if spec.name in self._entries:
            logger.debug("Replacing registered spec for `%s`", spec.name)
        self._entries[spec.name] = entry
        return entry

    def get(self, name: str) -> RegistryEntry | None:
        return self._entries.get(name)

    def heal_source(self, name: str, source: str) -> None:
        """Record a source learned from disk for a spec registered without one."""
        entry = self._entries.get(name)
        if entry is None or entry.spec.source:
            return
        spec = entry.spec.model_copy(update={"source": source})
        self._entries[name] = RegistryEntry(spec=spec, loaded=entry.loaded)
        logger.debug("Healed source of `%s`: %s", name, source)

    def specs(self) -> list[PluginSpec]:
        return [e.spec for e in self._entries.values()]

    def names(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)
