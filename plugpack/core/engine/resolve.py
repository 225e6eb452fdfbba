"""
Version resolution — turn each plugin's ``version`` into a target commit.

Resolution runs as a few batched stages over all jobs, so every plugin
of one stage shares the worker pool. For a constraint ``v``:

    1. ``frozen`` / ``HEAD``     → the head commit, described as "frozen"
    2. ``v`` is an origin branch → commit of ``origin/<v>``
    3. ``v`` is a version range  → commit of the greatest matching tag
       (no tag matching ``*`` falls back to the default origin branch)
    4. anything else             → commit of ``v`` as given

Jobs that already have a ``target`` are left alone, so resolving twice
within one run is free.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from plugpack.adapters.vcs.git import git_cmd
from plugpack.core.engine.runner import JobRunner
from plugpack.core.errors import ResolutionError
from plugpack.core.models.job import Job, JobState
from plugpack.core.models.spec import DEFAULT_VERSION, FROZEN_VERSION
from plugpack.core.services.versions import parse_range

logger = logging.getLogger(__name__)

ORIGIN_PREFIX = "origin/"


def infer_head(runner: JobRunner, jobs: Sequence[Job]) -> None:
    """Fill ``head`` with the currently checked out commit."""

    def prepare(job: Job) -> None:
        job.command = [] if job.head else git_cmd("get_hash", "HEAD")

    def process(job: Job) -> None:
        job.head = job.head or job.stdout.strip()

    runner.run_stage(jobs, prepare, process)


def resolve_targets(runner: JobRunner, jobs: Sequence[Job]) -> None:
    """Fill ``target`` and ``target_description`` for every job.

    Expects ``head`` to be inferred already.
    """
    pending = [job for job in jobs if not job.failed and not job.target]

    for job in pending:
        if job.plugin.spec.is_frozen:
            job.target = job.head
            job.target_description = FROZEN_VERSION
            job.advance(JobState.RESOLVED)

    _match_origin_branches(runner, pending)
    _match_tags(runner, pending)
    _use_default_branch(runner, pending)

    # Anything still unclaimed is taken as an arbitrary ref
    for job in pending:
        if not job.failed and not job.target and not job.target_ref:
            job.target_ref = job.version
            job.target_description = job.version

    def prepare(job: Job) -> None:
        job.command = git_cmd("get_hash", job.target_ref) if _unresolved(job) else []

    def process(job: Job) -> None:
        if job.target:
            return
        commit = job.stdout.strip()
        if not commit:
            job.fail(ResolutionError(f"Could not resolve `{job.target_ref}` to a commit"))
            return
        job.target = commit
        job.advance(JobState.RESOLVED)

    runner.run_stage(pending, prepare, process)


def compute_change_log(runner: JobRunner, jobs: Sequence[Job]) -> None:
    """Commit range for pending updates, or newer tags when up to date."""

    def prepare(job: Job) -> None:
        if job.has_update:
            job.command = git_cmd("log", job.head, job.target)
        else:
            job.command = git_cmd("list_new_tags", job.head) if job.head else []

    def process(job: Job) -> None:
        if job.has_update:
            job.change_log = job.stdout
        else:
            job.new_tags = [t.strip() for t in job.stdout.splitlines() if t.strip()]

    runner.run_stage(jobs, prepare, process)


# ── Stages ──────────────────────────────────────────────────────


def _unresolved(job: Job) -> bool:
    return not job.failed and not job.target


def _match_origin_branches(runner: JobRunner, jobs: Sequence[Job]) -> None:
    def prepare(job: Job) -> None:
        # `branch --list` takes a glob, so wildcard ranges would match any branch
        is_glob = any(c in job.version for c in "*?[")
        job.command = (
            git_cmd("is_origin_branch", job.version) if _unresolved(job) and not is_glob else []
        )

    def process(job: Job) -> None:
        if _unresolved(job) and job.stdout.strip():
            job.target_ref = ORIGIN_PREFIX + job.version
            job.target_description = job.version

    runner.run_stage(jobs, prepare, process)


def _match_tags(runner: JobRunner, jobs: Sequence[Job]) -> None:
    ranges = {}
    for job in jobs:
        if _unresolved(job) and not job.target_ref:
            version_range = parse_range(job.version)
            if version_range is not None:
                ranges[id(job)] = version_range

    def prepare(job: Job) -> None:
        job.command = git_cmd("list_tags") if id(job) in ranges else []

    def process(job: Job) -> None:
        version_range = ranges.get(id(job))
        if version_range is None:
            return
        tag = version_range.select_greatest(job.stdout.splitlines())
        if tag is not None:
            job.target_ref = tag
            job.target_description = tag
        elif job.version == DEFAULT_VERSION:
            logger.debug("No version tags in `%s`, using default branch", job.name)
        else:
            job.fail(ResolutionError(f"No tag matches version range `{job.version}`"))

    runner.run_stage(jobs, prepare, process)

    # Ranges were handled here, tagged or not. Mark untagged defaults.
    for job in jobs:
        if id(job) in ranges and not job.failed and not job.target_ref:
            job.target_description = DEFAULT_VERSION


def _use_default_branch(runner: JobRunner, jobs: Sequence[Job]) -> None:
    def needs_default(job: Job) -> bool:
        return (
            _unresolved(job)
            and not job.target_ref
            and job.target_description == DEFAULT_VERSION
        )

    def prepare(job: Job) -> None:
        job.command = git_cmd("get_default_origin_branch") if needs_default(job) else []

    def process(job: Job) -> None:
        if not needs_default(job):
            return
        ref = job.stdout.strip()
        if not ref:
            job.fail(ResolutionError("Could not determine default branch of `origin`"))
            return
        job.target_ref = ref
        job.target_description = ref.removeprefix(ORIGIN_PREFIX)

    runner.run_stage(jobs, prepare, process)
