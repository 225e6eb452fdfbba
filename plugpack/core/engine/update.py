"""
Update pipeline — fetch, resolve and (optionally) check out new state.

Stages run strictly in sequence across all plugins; a plugin that fails
in one stage is skipped by every later stage:

    ensure origin → fetch → infer head → resolve target → change log

``apply_checkout`` is the checkout stage shared with the install
pipeline: stash local changes, fire ``BEFORE_UPDATE``, check out the
target, fire ``AFTER_UPDATE``, regenerate help tags.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from plugpack.adapters.vcs.git import git_cmd
from plugpack.core.engine.events import EventDispatcher, LifecycleEvent
from plugpack.core.engine.resolve import compute_change_log, infer_head, resolve_targets
from plugpack.core.engine.runner import JobRunner
from plugpack.core.models.job import Job, JobState
from plugpack.core.models.spec import ResolvedPlugin
from plugpack.core.persistence.update_log import now_timestamp
from plugpack.core.services.helptags import generate_helptags

logger = logging.getLogger(__name__)


def run_update(
    runner: JobRunner,
    plugins: Sequence[ResolvedPlugin],
    offline: bool = False,
) -> list[Job]:
    """Compute update decisions without touching checked out files.

    Returns:
        One job per plugin, in input order, with ``head``, ``target``
        and ``change_log``/``new_tags`` filled (or ``error`` set).
    """
    jobs = [Job.for_plugin(p) for p in plugins]

    ensure_origin(runner, jobs)

    if not offline:
        n = sum(1 for job in jobs if not job.failed)
        if n:
            logger.info("Downloading %d update%s", n, "s" if n > 1 else "")
        download_updates(runner, jobs)

    infer_head(runner, jobs)
    resolve_targets(runner, jobs)
    compute_change_log(runner, jobs)
    return jobs


def ensure_origin(runner: JobRunner, jobs: Sequence[Job]) -> None:
    """Point ``origin`` at the known source, or learn the source from it."""

    def prepare(job: Job) -> None:
        job.command = git_cmd("set_origin", job.source) if job.source else git_cmd("get_origin")

    def process(job: Job) -> None:
        job.source = job.source or job.stdout.strip() or None

    runner.run_stage(jobs, prepare, process)


def download_updates(runner: JobRunner, jobs: Sequence[Job]) -> None:
    def prepare(job: Job) -> None:
        job.command = git_cmd("fetch")
        job.message = f"Downloaded update for `{job.name}`"

    runner.run_stage(jobs, prepare)


def apply_checkout(
    runner: JobRunner,
    events: EventDispatcher,
    jobs: Sequence[Job],
    all_jobs: bool = False,
) -> list[Job]:
    """Check out every job's target.

    Only jobs whose head differs from their target are touched, unless
    ``all_jobs`` is set (fresh installs), in which case every non-failed
    job is checked out and gets its help tags regenerated.

    Returns:
        Jobs that were checked out.
    """
    infer_head(runner, jobs)
    resolve_targets(runner, jobs)

    to_checkout = [job for job in jobs if not job.failed and (all_jobs or job.has_update)]
    changed = [job for job in to_checkout if job.has_update]

    stash_cmd = git_cmd("stash", now_timestamp())

    def prepare_stash(job: Job) -> None:
        job.command = stash_cmd

    runner.run_stage(to_checkout, prepare_stash)

    events.fire(LifecycleEvent.BEFORE_UPDATE, changed)

    def prepare_checkout(job: Job) -> None:
        job.command = git_cmd("checkout", job.target)
        job.message = f"Checked out `{job.target_description}` in `{job.name}`"

    def process_checkout(job: Job) -> None:
        job.advance(JobState.CHECKED_OUT)

    runner.run_stage(to_checkout, prepare_checkout, process_checkout)

    events.fire(LifecycleEvent.AFTER_UPDATE, changed)

    for job in to_checkout:
        if not job.failed:
            regenerate_helptags(job)

    return [job for job in to_checkout if not job.failed]


def regenerate_helptags(job: Job) -> None:
    try:
        generate_helptags(job.path)
    except OSError as e:
        job.add_warning(f"Could not generate help tags: {e}")


def finish(jobs: Sequence[Job]) -> None:
    for job in jobs:
        job.advance(JobState.DONE)
