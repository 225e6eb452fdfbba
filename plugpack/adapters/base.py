"""
Executor base — the contract between the job runner and the outside world.

The runner never spawns processes itself; it hands argument vectors to
an executor and reads back a ``CommandResult``. Swapping the executor
(e.g. for ``MockExecutor`` in tests) changes nothing else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

# Exit code reported for a command that hit its timeout
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    spawn_error: str | None = None  # process could not be started at all

    @property
    def ok(self) -> bool:
        return self.spawn_error is None and self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.spawn_error is None and self.returncode == TIMEOUT_EXIT_CODE


class Executor(ABC):
    """Abstract base class for command executors.

    Executors run a single argument vector and capture its output.
    They NEVER raise — spawn failures and timeouts are captured in the
    ``CommandResult``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The executor identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def run(self, command: list[str], cwd: Path, timeout: float) -> CommandResult:
        """Execute ``command`` in ``cwd`` and return its result.

        MUST never raise exceptions.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
