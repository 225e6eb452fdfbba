"""
Health checker — aggregate status of what the manager depends on.

Components: the ``git`` executable, the package root and the update
log. Used by the CLI ``health`` command.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from plugpack.adapters.base import Executor
from plugpack.adapters.shell.command import SubprocessExecutor
from plugpack.adapters.vcs.git import GitAdapter, git_cmd
from plugpack.core.persistence.update_log import UpdateLog

logger = logging.getLogger(__name__)


@dataclass
class ComponentHealth:
    """Health of a single component."""

    name: str
    status: str = "unknown"  # healthy, degraded, unhealthy, unknown
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Aggregate health of the whole manager."""

    status: str = "healthy"
    timestamp: str = ""
    components: list[ComponentHealth] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat()

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self._recalculate()

    def _recalculate(self) -> None:
        statuses = [c.status for c in self.components]
        if any(s == "unhealthy" for s in statuses):
            self.status = "unhealthy"
        elif any(s == "degraded" for s in statuses):
            self.status = "degraded"
        elif all(s == "healthy" for s in statuses):
            self.status = "healthy"
        else:
            self.status = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "components": [c.to_dict() for c in self.components],
        }


def check_git(adapter: GitAdapter | None = None, executor: Executor | None = None) -> ComponentHealth:
    """``git`` must be on PATH; its version is reported when it runs."""
    adapter = adapter or GitAdapter()
    if not adapter.is_available():
        return ComponentHealth(name="git", status="unhealthy", message="No `git` executable")

    result = (executor or SubprocessExecutor()).run(git_cmd("version"), Path.cwd(), 10.0)
    if not result.ok:
        return ComponentHealth(
            name="git",
            status="degraded",
            message=f"`git version` failed: {(result.spawn_error or result.stderr).strip()}",
        )
    return ComponentHealth(name="git", status="healthy", message=result.stdout.strip())


def check_package_root(root: Path) -> ComponentHealth:
    """The root may be missing (it is created on first install)."""
    if not root.exists():
        return ComponentHealth(
            name="package_root",
            status="healthy",
            message="Not created yet",
            details={"path": str(root)},
        )
    if not root.is_dir():
        return ComponentHealth(
            name="package_root",
            status="unhealthy",
            message="Exists but is not a directory",
            details={"path": str(root)},
        )

    plugins = sorted(p.name for p in root.iterdir() if p.is_dir())
    if not os.access(root, os.W_OK):
        return ComponentHealth(
            name="package_root",
            status="degraded",
            message="Not writable",
            details={"path": str(root), "plugins": len(plugins)},
        )
    return ComponentHealth(
        name="package_root",
        status="healthy",
        message=f"{len(plugins)} plugin(s) installed",
        details={"path": str(root), "plugins": len(plugins)},
    )


def check_update_log(log: UpdateLog) -> ComponentHealth:
    path = log.path
    if path.exists() and not path.is_file():
        return ComponentHealth(
            name="update_log",
            status="unhealthy",
            message="Exists but is not a file",
            details={"path": str(path)},
        )
    if not path.exists():
        return ComponentHealth(
            name="update_log",
            status="healthy",
            message="No updates logged yet",
            details={"path": str(path)},
        )
    count = log.entry_count()
    return ComponentHealth(
        name="update_log",
        status="healthy",
        message=f"{count} update(s) logged",
        details={"path": str(path), "entries": count},
    )


def check_system_health(
    root: Path,
    log: UpdateLog,
    adapter: GitAdapter | None = None,
    executor: Executor | None = None,
) -> SystemHealth:
    """Run all health checks and return aggregate status."""
    health = SystemHealth()
    health.add(check_git(adapter, executor))
    health.add(check_package_root(root))
    health.add(check_update_log(log))
    logger.debug("Health: %s", health.status)
    return health
