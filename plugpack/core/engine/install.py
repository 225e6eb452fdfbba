"""
Install pipeline — clone missing plugins and check out their target.

    BEFORE_INSTALL → clone → checkout (unconditional) → AFTER_INSTALL

A plugin whose clone fails never gets a checkout attempt nor an
``AFTER_INSTALL`` event; it is reported as failed and stays absent.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from plugpack.adapters.vcs.git import git_cmd
from plugpack.core.engine.events import EventDispatcher, LifecycleEvent
from plugpack.core.engine.runner import JobRunner
from plugpack.core.engine.update import apply_checkout, finish
from plugpack.core.errors import InvalidSpec
from plugpack.core.models.job import Job, JobState
from plugpack.core.models.spec import ResolvedPlugin

logger = logging.getLogger(__name__)


def run_install(
    runner: JobRunner,
    events: EventDispatcher,
    plugins: Sequence[ResolvedPlugin],
    root: Path,
) -> list[Job]:
    """Install ``plugins`` into ``root``.

    Returns:
        One job per plugin, in input order.
    """
    root.mkdir(parents=True, exist_ok=True)
    jobs = [Job.for_plugin(p, cwd=root) for p in plugins]

    events.fire(LifecycleEvent.BEFORE_INSTALL, jobs)

    def prepare(job: Job) -> None:
        if job.source is None:
            job.fail(InvalidSpec("SPECIFICATION HAS NO `source` TO INSTALL PLUGIN."))
            return
        job.command = git_cmd("clone", job.source, str(job.path))
        job.message = f"Installed `{job.name}`"

    def process(job: Job) -> None:
        job.cwd = job.path
        job.advance(JobState.CLONED)

    runner.run_stage(jobs, prepare, process)

    apply_checkout(runner, events, jobs, all_jobs=True)

    events.fire(LifecycleEvent.AFTER_INSTALL, jobs)
    finish(jobs)

    installed = sum(1 for job in jobs if not job.failed)
    logger.info("Installed %d of %d plugin(s)", installed, len(jobs))
    return jobs
