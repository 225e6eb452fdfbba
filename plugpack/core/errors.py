"""
Error taxonomy — plugin-scoped failures.

These exceptions are raised by the pure layers (normalizer, loader) and
*stored* on jobs by the pipelines. A job's error never unwinds a batch:
it is collected, reported per plugin, and the rest of the batch proceeds.
"""

from __future__ import annotations


class PackError(Exception):
    """Base class for all plugin manager errors."""


class InvalidSpec(PackError):
    """A plugin specification is malformed. Raised before any I/O."""


class SubprocessError(PackError):
    """The version-control tool exited with a non-zero code."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code


class JobTimeoutError(SubprocessError):
    """A job exceeded its per-job timeout and was terminated."""

    def __init__(self, message: str = "PROCESS REACHED TIMEOUT.", exit_code: int | None = 124):
        super().__init__(message, exit_code=exit_code)


class ResolutionError(PackError):
    """A version constraint could not be satisfied (e.g. no matching tag)."""


class GitNotFoundError(PackError):
    """No ``git`` executable is available."""
