"""
Job model — one plugin's progress through a pipeline run.

A job is created at the start of a pipeline run and carried through its
sequential stages (clone → checkout, or fetch → resolve → checkout).
Each stage sets ``command``, the runner executes it, and the stage
processes the output. The first error is sticky: once ``error`` is set
the job is FAILED and excluded from every later stage of the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from plugpack.core.errors import PackError
from plugpack.core.models.spec import ResolvedPlugin


class JobState(Enum):
    """Lifecycle of a job within one pipeline run."""

    PENDING = "pending"
    CLONED = "cloned"
    RESOLVED = "resolved"
    CHECKED_OUT = "checked_out"
    DONE = "done"
    FAILED = "failed"


_ORDER = [
    JobState.PENDING,
    JobState.CLONED,
    JobState.RESOLVED,
    JobState.CHECKED_OUT,
    JobState.DONE,
]


@dataclass
class Job:
    """Per-plugin execution state plus accumulated command output."""

    plugin: ResolvedPlugin
    cwd: Path
    command: list[str] = field(default_factory=list)
    message: str = ""               # progress text shown on success

    stdout: str = ""
    stderr: str = ""
    warnings: list[str] = field(default_factory=list)
    error: PackError | None = None
    state: JobState = JobState.PENDING

    # Filled in by the update/install stages
    source: str | None = None
    head: str = ""
    target: str = ""
    target_ref: str = ""            # ref handed to `rev-list -1` to get `target`
    target_description: str = ""
    change_log: str = ""
    new_tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.source is None:
            self.source = self.plugin.spec.source

    @classmethod
    def for_plugin(cls, plugin: ResolvedPlugin, cwd: Path | None = None) -> Job:
        return cls(plugin=plugin, cwd=cwd or plugin.path)

    # ── Properties ──────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.plugin.name

    @property
    def path(self) -> Path:
        return self.plugin.path

    @property
    def version(self) -> str:
        return self.plugin.spec.version

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def should_run(self) -> bool:
        """Whether the runner should execute this job's current command."""
        return not self.failed and bool(self.command)

    @property
    def has_update(self) -> bool:
        return self.head != self.target

    # ── Transitions ─────────────────────────────────────────────

    def fail(self, error: PackError) -> None:
        """Record the first error and move to FAILED. Later calls are ignored."""
        if self.error is not None:
            return
        self.error = error
        self.state = JobState.FAILED

    def advance(self, state: JobState) -> None:
        """Move forward to ``state``. Never leaves FAILED, never goes back."""
        if self.state is JobState.FAILED or state is JobState.FAILED:
            return
        if _ORDER.index(state) > _ORDER.index(self.state):
            self.state = state

    def add_warning(self, text: str) -> None:
        text = text.strip()
        if text:
            self.warnings.append(text)

    def reset_stage(self) -> None:
        """Drop per-stage fields. Errors and warnings are preserved."""
        self.command = []
        self.stdout = ""
        self.stderr = ""
        self.message = ""
