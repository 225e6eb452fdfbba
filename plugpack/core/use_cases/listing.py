"""
Listing use cases — known plugins and update history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from plugpack.adapters.base import Executor
from plugpack.core.config.loader import ConfigError, load_config
from plugpack.core.errors import PackError
from plugpack.core.manager import PluginData
from plugpack.core.persistence.update_log import LogBlock, UpdateLog
from plugpack.core.use_cases.session import open_session


@dataclass
class ListResult:
    plugins: list[PluginData] = field(default_factory=list)
    root: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "root": str(self.root) if self.root else None,
            "plugins": [p.to_dict() for p in self.plugins],
        }


@dataclass
class LogResult:
    blocks: list[LogBlock] = field(default_factory=list)
    path: Path | None = None
    error: str | None = None


def list_plugins(
    config_path: Path | None = None,
    executor: Executor | None = None,
) -> ListResult:
    """Registered (configured) plugins followed by the rest found on disk."""
    try:
        config, manager = open_session(config_path, executor=executor)
    except ConfigError as e:
        return ListResult(error=str(e))

    try:
        plugins = manager.get()
    except PackError as e:
        return ListResult(root=config.root, error=str(e))
    return ListResult(plugins=plugins, root=config.root)


def show_log(n: int = 1, config_path: Path | None = None) -> LogResult:
    """The last ``n`` update blocks."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        return LogResult(error=str(e))

    log = UpdateLog(config.log)
    return LogResult(blocks=log.read_recent(n), path=log.path)
