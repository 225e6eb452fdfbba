"""
Test helpers for building jobs and scripting mocked git repositories.
"""

from collections.abc import Iterable
from pathlib import Path

from plugpack.adapters.base import CommandResult
from plugpack.adapters.mock import MockExecutor
from plugpack.core.models.job import Job
from plugpack.core.models.spec import PluginSpec, ResolvedPlugin


def make_job(
    root: Path,
    name: str,
    source: str | None = None,
    version: str = "*",
    command: list[str] | None = None,
) -> Job:
    """Job for a plugin under ``root``."""
    spec = PluginSpec(name=name, source=source, version=version)
    job = Job.for_plugin(ResolvedPlugin.from_spec(spec, root))
    job.command = command or []
    return job


def clone_creates_dir(mock: MockExecutor) -> None:
    """Make mocked `git clone` create its target directory."""

    def responder(command: list[str], cwd: Path) -> CommandResult:
        Path(command[-1]).mkdir(parents=True, exist_ok=True)
        return CommandResult(returncode=0)

    mock.set_response(("clone",), responder)


def script_repo(
    mock: MockExecutor,
    path: Path,
    head: str = "aaaaaaa",
    tags: Iterable[str] = (),
    refs: dict[str, str] | None = None,
    default_branch: str = "main",
    branches: Iterable[str] = (),
    new_tags: Iterable[str] = (),
    log: str = "> bbbbbbb │ Add feature",
    origin: str | None = None,
) -> None:
    """Script the git answers of one plugin repository at ``path``.

    ``refs`` maps refs (``origin/main``, ``v1.0.0``, ...) to commits.
    """
    all_branches = [default_branch, *branches]
    mock.set_output(("rev-parse", "--abbrev-ref", "origin/HEAD"), f"origin/{default_branch}", cwd=path)
    mock.set_output(("tag", "--list"), "\n".join(tags), cwd=path)
    mock.set_output(("tag", "--list", "--contains"), "\n".join(new_tags), cwd=path)
    mock.set_output(("branch", "--remote"), "\n".join(f"origin/{b}" for b in all_branches), cwd=path)
    for branch in all_branches:
        mock.set_output(
            ("branch", "--list", "--all", "--format=%(refname:short)", f"origin/{branch}"),
            f"origin/{branch}",
            cwd=path,
        )
    mock.set_output(("rev-list", "-1", "HEAD"), head, cwd=path)
    for ref, commit in (refs or {}).items():
        mock.set_output(("rev-list", "-1", ref), commit, cwd=path)
    mock.set_output(("log",), log, cwd=path)
    if origin is not None:
        mock.set_output(("remote", "get-url", "origin"), origin, cwd=path)
