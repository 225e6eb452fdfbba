"""
Subprocess executor — run one command and capture its output.

This is the only place where the manager spawns processes for jobs.
Text-mode stdio capture, a fixed working directory, and a timeout.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

from plugpack.adapters.base import TIMEOUT_EXIT_CODE, CommandResult, Executor

logger = logging.getLogger(__name__)


class SubprocessExecutor(Executor):
    """Execute commands with ``subprocess.run``.

    A command that exceeds its timeout is killed by ``subprocess.run``
    and reported with exit code 124.
    """

    @property
    def name(self) -> str:
        return "subprocess"

    def run(self, command: list[str], cwd: Path, timeout: float) -> CommandResult:
        logger.debug("Executing: %s (cwd=%s)", " ".join(command), cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                returncode=TIMEOUT_EXIT_CODE,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except OSError as e:
            # Missing executable, missing working directory, permissions
            return CommandResult(returncode=-1, spawn_error=str(e))

        return CommandResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
