"""Adapters — bindings to the external version-control tool.

Public re-exports for convenient access.
"""

from plugpack.adapters.base import CommandResult, Executor
from plugpack.adapters.mock import MockExecutor
from plugpack.adapters.shell.command import SubprocessExecutor
from plugpack.adapters.vcs.git import GitAdapter, git_cmd

__all__ = [
    "CommandResult",
    "Executor",
    "GitAdapter",
    "MockExecutor",
    "SubprocessExecutor",
    "git_cmd",
]
