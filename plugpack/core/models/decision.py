"""
UpdateDecision — the resolved outcome for one plugin.

``head_commit == target_commit`` if and only if there is nothing to apply.
That single predicate drives report grouping and whether checkout runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from plugpack.core.models.job import Job


@dataclass(frozen=True)
class UpdateDecision:
    """Snapshot of a job after resolution, detached from the pipeline."""

    name: str
    path: Path
    source: str | None = None
    head_commit: str = ""
    target_commit: str = ""
    target_description: str = ""
    change_log: str = ""
    new_tags: tuple[str, ...] = ()
    error: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_update(self) -> bool:
        return self.head_commit != self.target_commit

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_job(cls, job: Job) -> UpdateDecision:
        return cls(
            name=job.name,
            path=job.path,
            source=job.source,
            head_commit=job.head,
            target_commit=job.target,
            target_description=job.target_description,
            change_log=job.change_log,
            new_tags=tuple(job.new_tags),
            error=str(job.error) if job.error is not None else None,
            warnings=tuple(job.warnings),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "source": self.source,
            "head": self.head_commit,
            "target": self.target_commit,
            "target_description": self.target_description,
            "has_update": self.has_update,
            "change_log": self.change_log,
            "new_tags": list(self.new_tags),
            "error": self.error,
            "warnings": list(self.warnings),
        }
