"""
Mock executor — scripted test double for command execution.

Used to drive the job runner and pipelines without spawning processes.
Responses are matched on the command's operation (the argv after the
``git -c gc.auto=0`` prefix) and optionally on the working directory.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from plugpack.adapters.base import CommandResult, Executor

Responder = Callable[[list[str], Path], CommandResult]


@dataclass(frozen=True)
class MockCall:
    """One recorded execution."""

    command: list[str]
    cwd: Path


class MockExecutor(Executor):
    """Universal mock executor for testing.

    By default, every command succeeds with empty output. Responses are
    registered per argv prefix (after the git prefix), optionally for a
    single working directory. The most recently registered match wins.
    """

    def __init__(self, default_output: str = ""):
        self._default_output = default_output
        self._responses: list[tuple[tuple[str, ...], Path | None, Responder]] = []
        self._call_log: list[MockCall] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[MockCall]:
        """All calls this mock has received, in completion order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, *prefix: str) -> list[MockCall]:
        """Recorded calls whose operation starts with ``prefix``."""
        return [c for c in self._call_log if _operation(c.command)[: len(prefix)] == prefix]

    def set_response(
        self,
        prefix: tuple[str, ...],
        result: CommandResult | Responder,
        cwd: Path | None = None,
    ) -> None:
        """Respond to commands starting with ``prefix`` (optionally in ``cwd``)."""
        responder = result if callable(result) else (lambda _cmd, _cwd, r=result: r)
        self._responses.append((prefix, cwd, responder))

    def set_output(self, prefix: tuple[str, ...], stdout: str, cwd: Path | None = None) -> None:
        self.set_response(prefix, CommandResult(returncode=0, stdout=stdout), cwd=cwd)

    def set_failure(
        self,
        prefix: tuple[str, ...],
        stderr: str = "mock failure",
        returncode: int = 1,
        cwd: Path | None = None,
    ) -> None:
        self.set_response(prefix, CommandResult(returncode=returncode, stderr=stderr), cwd=cwd)

    def run(self, command: list[str], cwd: Path, timeout: float) -> CommandResult:
        with self._lock:
            self._call_log.append(MockCall(command=list(command), cwd=Path(cwd)))

        operation = _operation(command)
        for prefix, only_cwd, responder in reversed(self._responses):
            if operation[: len(prefix)] != prefix:
                continue
            if only_cwd is not None and Path(only_cwd) != Path(cwd):
                continue
            return responder(command, Path(cwd))

        return CommandResult(returncode=0, stdout=self._default_output)

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()


def _operation(command: list[str]) -> tuple[str, ...]:
    """Strip the ``git -c gc.auto=0`` prefix from an argv."""
    if command[:3] == ["git", "-c", "gc.auto=0"]:
        return tuple(command[3:])
    return tuple(command)
