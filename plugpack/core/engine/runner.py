"""
Parallel job runner — bounded-concurrency execution of one batch.

A batch is every job of one pipeline stage. The runner keeps at most
``concurrency`` commands in flight; idle workers pull the next job from
one shared queue, so a slow clone never holds back a worker that could
finish several fast fetches.

The calling control flow blocks until the batch settles or the
aggregate deadline ``timeout * ceil(total / concurrency)`` passes.
Nothing is streamed back mid-batch except progress notifications.

Outcome rules per finished command:
    exit 0 with stderr  → warning, not a failure
    exit 124            → JobTimeoutError (sticky)
    any other non-zero  → SubprocessError "ERROR CODE <n>" (sticky)
"""

from __future__ import annotations

import logging
import math
import os
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from plugpack.adapters.base import CommandResult, Executor
from plugpack.core.errors import JobTimeoutError, SubprocessError
from plugpack.core.models.job import Job

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class JobProgress:
    """Progress notification for one successfully finished job."""

    finished: int
    total: int
    message: str

    def __str__(self) -> str:
        return f"({self.finished}/{self.total}) {self.message}"


ProgressObserver = Callable[[JobProgress], None]
StageHook = Callable[[Job], None]


def default_concurrency() -> int:
    """80% of logical processors, at least 1."""
    return max(int(0.8 * (os.cpu_count() or 1)), 1)


class JobRunner:
    """Run batches of jobs on a fixed-size worker pool.

    Args:
        executor: Executes individual commands.
        concurrency: Worker count. Defaults to ``default_concurrency()``.
        timeout: Per-job timeout in seconds.
        on_progress: Observer called once per finished job that has a
            ``message`` and ended without error. Fire-and-forget.
    """

    def __init__(
        self,
        executor: Executor,
        concurrency: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        on_progress: ProgressObserver | None = None,
    ):
        if concurrency is not None and concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.executor = executor
        self.concurrency = concurrency or default_concurrency()
        self.timeout = timeout
        self.on_progress = on_progress

    def run(self, jobs: Sequence[Job]) -> None:
        """Execute every runnable job and block until the batch settles.

        Jobs without a command, or with an error from an earlier stage,
        are skipped without taking a worker slot.

        When the aggregate deadline passes, unfinished jobs fail with
        ``JobTimeoutError`` and the batch is settled: a worker that returns
        later discards its result instead of writing to the job. Its
        command is still bounded by the per-job timeout.
        """
        runnable = [job for job in jobs if job.should_run]
        total = len(runnable)
        if total == 0:
            return

        workers = min(self.concurrency, total)
        deadline = self.timeout * math.ceil(total / self.concurrency)
        batch = _Batch()

        logger.debug(
            "Running %d job(s) on %d worker(s), deadline %.0fs", total, workers, deadline
        )

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="plugpack-job")
        try:
            for job in runnable:
                pool.submit(self._run_one, job, batch, total)
            if not batch.all_done.wait(deadline):
                for job in batch.settle(runnable):
                    job.fail(JobTimeoutError())
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def run_stage(
        self,
        jobs: Sequence[Job],
        prepare: StageHook | None = None,
        process: StageHook | None = None,
    ) -> None:
        """Run one pipeline stage over ``jobs``.

        ``prepare`` sets each job's command, the batch runs, then
        ``process`` reads its output. Both hooks only see jobs that have
        not failed. Per-stage fields are cleared afterwards; errors and
        warnings persist into the next stage.
        """
        if prepare is not None:
            for job in jobs:
                if not job.failed:
                    prepare(job)

        self.run(jobs)

        if process is not None:
            for job in jobs:
                if not job.failed:
                    process(job)

        for job in jobs:
            job.reset_stage()

    # ── Helpers ─────────────────────────────────────────────────

    def _run_one(self, job: Job, batch: _Batch, total: int) -> None:
        try:
            result: CommandResult | Exception = self.executor.run(
                job.command, job.cwd, self.timeout
            )
        except Exception as e:
            # Executors should never raise, but one job must not sink the batch
            logger.error("Job for `%s` crashed: %s", job.name, e)
            result = e

        with batch.lock:
            if batch.settled:
                logger.debug("Discarding late result for `%s`", job.name)
                return
            if isinstance(result, Exception):
                job.fail(SubprocessError(f"Unexpected error: {result}"))
            else:
                apply_result(job, result)
            finished = batch.finish(job, total)

        if job.message and not job.failed:
            self._notify(JobProgress(finished=finished, total=total, message=job.message))

    def _notify(self, progress: JobProgress) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(progress)
        except Exception as e:
            logger.warning("Progress observer failed: %s", e)


def apply_result(job: Job, result: CommandResult) -> None:
    """Fold a command result into a job."""
    job.stdout = result.stdout.rstrip("\n")
    job.stderr = result.stderr.rstrip("\n")

    if result.spawn_error is not None:
        job.fail(SubprocessError(f"ERROR CODE {result.returncode}\n{result.spawn_error}"))
    elif result.returncode == 0:
        job.add_warning(job.stderr)
    elif result.timed_out:
        job.fail(JobTimeoutError())
    else:
        job.fail(
            SubprocessError(
                f"ERROR CODE {result.returncode}\n{job.stderr}".rstrip(),
                exit_code=result.returncode,
            )
        )


class _Batch:
    """Shared bookkeeping of one ``run`` call.

    Workers write to a job only under ``lock`` and only while the batch
    is not settled.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.all_done = threading.Event()
        self.settled = False
        self._finished: set[int] = set()

    def finish(self, job: Job, total: int) -> int:
        """Record a finished job (lock held); returns the finished count."""
        self._finished.add(id(job))
        if len(self._finished) == total:
            self.all_done.set()
        return len(self._finished)

    def settle(self, jobs: Sequence[Job]) -> list[Job]:
        """Stop accepting results; returns the jobs that never finished."""
        with self.lock:
            self.settled = True
            return [job for job in jobs if id(job) not in self._finished]
