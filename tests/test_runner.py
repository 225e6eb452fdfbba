"""
Tests for the parallel job runner.
"""

import threading
import time
from pathlib import Path

import pytest
from helpers import make_job

from plugpack.adapters.base import CommandResult
from plugpack.adapters.mock import MockExecutor
from plugpack.adapters.vcs.git import git_cmd
from plugpack.core.engine.runner import JobProgress, JobRunner, default_concurrency
from plugpack.core.errors import JobTimeoutError, SubprocessError
from plugpack.core.models.job import JobState


def _fetch_jobs(root: Path, n: int):
    return [make_job(root, f"plugin-{i}", command=git_cmd("fetch")) for i in range(n)]


class TestRunOutcomes:
    def test_success(self, tmp_path: Path, runner: JobRunner, mock_executor: MockExecutor):
        jobs = _fetch_jobs(tmp_path, 3)
        runner.run(jobs)
        assert all(not job.failed for job in jobs)
        assert mock_executor.call_count == 3

    def test_stderr_on_success_is_warning(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_response(("fetch",), CommandResult(0, stderr="hint: something\n"))
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        runner.run([job])
        assert not job.failed
        assert job.warnings == ["hint: something"]

    def test_nonzero_exit_is_error(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_failure(("fetch",), stderr="fatal: no remote", returncode=128)
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        runner.run([job])
        assert isinstance(job.error, SubprocessError)
        assert str(job.error) == "ERROR CODE 128\nfatal: no remote"
        assert job.error.exit_code == 128
        assert job.state is JobState.FAILED

    def test_exit_124_is_timeout(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_failure(("fetch",), stderr="", returncode=124)
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        runner.run([job])
        assert isinstance(job.error, JobTimeoutError)
        assert str(job.error) == "PROCESS REACHED TIMEOUT."

    def test_spawn_error(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_response(
            ("fetch",), CommandResult(-1, spawn_error="No such file or directory")
        )
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        runner.run([job])
        assert isinstance(job.error, SubprocessError)
        assert "No such file or directory" in str(job.error)

    def test_crashing_executor_fails_only_that_job(self, tmp_path: Path, runner, mock_executor):
        def boom(command, cwd):
            raise RuntimeError("kaput")

        mock_executor.set_response(("fetch",), boom, cwd=tmp_path / "b")
        jobs = [make_job(tmp_path, n, command=git_cmd("fetch")) for n in ("a", "b", "c")]
        runner.run(jobs)
        assert [job.failed for job in jobs] == [False, True, False]
        assert "kaput" in str(jobs[1].error)


class TestSkipping:
    def test_failed_and_empty_jobs_are_skipped(self, tmp_path: Path, runner, mock_executor):
        failed = make_job(tmp_path, "failed", command=git_cmd("fetch"))
        failed.fail(SubprocessError("earlier"))
        empty = make_job(tmp_path, "empty")
        ok = make_job(tmp_path, "ok", command=git_cmd("fetch"))

        runner.run([failed, empty, ok])

        assert [c.cwd.name for c in mock_executor.call_log] == ["ok"]
        assert str(failed.error) == "earlier"

    def test_error_is_sticky(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_failure(("fetch",), stderr="first")
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        runner.run([job])
        job.fail(SubprocessError("second"))
        assert "first" in str(job.error)


class TestConcurrency:
    def test_concurrency_does_not_change_outcomes(self, tmp_path: Path):
        def outcomes(concurrency: int) -> list[tuple[str, str | None]]:
            mock = MockExecutor()
            for i in (1, 4, 6):
                mock.set_failure(("fetch",), stderr=f"bad {i}", cwd=tmp_path / f"plugin-{i}")
            jobs = _fetch_jobs(tmp_path, 10)
            JobRunner(mock, concurrency=concurrency, timeout=5.0).run(jobs)
            return [(job.name, str(job.error) if job.error else None) for job in jobs]

        assert outcomes(1) == outcomes(8)

    def test_at_most_concurrency_in_flight(self, tmp_path: Path):
        lock = threading.Lock()
        state = {"current": 0, "peak": 0}

        def slow(command, cwd):
            with lock:
                state["current"] += 1
                state["peak"] = max(state["peak"], state["current"])
            time.sleep(0.02)
            with lock:
                state["current"] -= 1
            return CommandResult(0)

        mock = MockExecutor()
        mock.set_response(("fetch",), slow)
        JobRunner(mock, concurrency=3, timeout=5.0).run(_fetch_jobs(tmp_path, 12))
        assert state["peak"] <= 3
        assert mock.call_count == 12

    def test_invalid_concurrency(self, mock_executor):
        with pytest.raises(ValueError):
            JobRunner(mock_executor, concurrency=0)

    def test_default_concurrency(self):
        assert default_concurrency() >= 1


class TestDeadline:
    def test_unfinished_jobs_fail_with_timeout(self, tmp_path: Path):
        release = threading.Event()

        def hang(command, cwd):
            release.wait(2.0)
            return CommandResult(0)

        mock = MockExecutor()
        mock.set_response(("fetch",), hang, cwd=tmp_path / "slow")
        jobs = [
            make_job(tmp_path, "fast", command=git_cmd("fetch")),
            make_job(tmp_path, "slow", command=git_cmd("fetch")),
        ]
        try:
            JobRunner(mock, concurrency=2, timeout=0.2).run(jobs)
        finally:
            release.set()

        assert not jobs[0].failed
        assert isinstance(jobs[1].error, JobTimeoutError)

    def test_late_result_is_discarded(self, tmp_path: Path):
        release = threading.Event()
        returned = threading.Event()

        def late(command, cwd):
            release.wait(2.0)
            returned.set()
            return CommandResult(1, stdout="late output", stderr="late failure")

        mock = MockExecutor()
        mock.set_response(("fetch",), late)
        job = make_job(tmp_path, "slow", command=git_cmd("fetch"))

        JobRunner(mock, concurrency=1, timeout=0.1).run([job])
        release.set()
        assert returned.wait(2.0)
        time.sleep(0.05)

        assert isinstance(job.error, JobTimeoutError)
        assert job.stdout == ""
        assert job.stderr == ""
        assert job.warnings == []


class TestProgress:
    def test_notifies_successful_jobs_with_message(self, tmp_path: Path, mock_executor):
        seen: list[JobProgress] = []
        runner = JobRunner(mock_executor, concurrency=1, timeout=5.0, on_progress=seen.append)
        mock_executor.set_failure(("fetch",), cwd=tmp_path / "bad")

        jobs = [make_job(tmp_path, n, command=git_cmd("fetch")) for n in ("a", "bad", "quiet")]
        jobs[0].message = "Downloaded update for `a`"
        jobs[1].message = "Downloaded update for `bad`"
        runner.run(jobs)

        assert [p.message for p in seen] == ["Downloaded update for `a`"]
        assert seen[0].total == 3
        assert str(seen[0]) == "(1/3) Downloaded update for `a`"

    def test_observer_errors_are_swallowed(self, tmp_path: Path, mock_executor):
        def broken(progress):
            raise RuntimeError("observer down")

        runner = JobRunner(mock_executor, concurrency=1, timeout=5.0, on_progress=broken)
        job = make_job(tmp_path, "a", command=git_cmd("fetch"))
        job.message = "done"
        runner.run([job])
        assert not job.failed


class TestRunStage:
    def test_hooks_and_reset(self, tmp_path: Path, runner, mock_executor):
        mock_executor.set_output(("rev-list",), "abc123\n")
        failed = make_job(tmp_path, "failed")
        failed.fail(SubprocessError("earlier"))
        job = make_job(tmp_path, "a")
        prepared, processed = [], []

        def prepare(j):
            prepared.append(j.name)
            j.command = git_cmd("get_hash", "HEAD")
            j.message = "hashed"

        def process(j):
            processed.append(j.name)
            j.head = j.stdout

        runner.run_stage([failed, job], prepare, process)

        assert prepared == ["a"]
        assert processed == ["a"]
        assert job.head == "abc123"
        assert job.command == []
        assert job.stdout == ""
        assert job.message == ""
