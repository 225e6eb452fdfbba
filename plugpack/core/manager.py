"""
Pack manager — the ``add`` / ``update`` / ``get`` entry points.

    manager = PackManager(load_config())
    manager.add(["user/repo", {"source": "https://host/x.git", "version": "^1"}])
    manager.update(force=True)

Plugin-scoped problems never raise: they are stored on jobs, shown in
the report, and announced once per plugin through the notifier.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from plugpack.adapters.base import Executor
from plugpack.adapters.shell.command import SubprocessExecutor
from plugpack.adapters.vcs.git import GitAdapter, git_cmd
from plugpack.core.config.loader import ManagerConfig
from plugpack.core.engine.events import EventDispatcher
from plugpack.core.engine.install import run_install
from plugpack.core.engine.runner import JobProgress, JobRunner
from plugpack.core.engine.update import apply_checkout, finish, run_update
from plugpack.core.models.decision import UpdateDecision
from plugpack.core.models.job import Job
from plugpack.core.models.options import AddOptions, UpdateOptions, UpdateOutcome
from plugpack.core.models.spec import PluginSpec, ResolvedPlugin
from plugpack.core.persistence.update_log import UpdateLog
from plugpack.core.registry import SessionRegistry
from plugpack.core.services.hooks import register_hooks
from plugpack.core.services.normalize import SpecInput, normalize_specs
from plugpack.core.services.report import parse_report, render_report

logger = logging.getLogger(__name__)

Notifier = Callable[[str, int], None]
ConfirmCallback = Callable[[str], "str | None"]


def log_notifier(message: str, level: int) -> None:
    logger.log(level, message)


# ── Results ─────────────────────────────────────────────────────


@dataclass
class AddResult:
    """Outcome of ``PackManager.add``."""

    specs: list[PluginSpec] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    warnings: dict[str, list[str]] = field(default_factory=dict)
    invalid: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.invalid

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "plugins": [s.model_dump() for s in self.specs],
            "installed": self.installed,
            "failed": self.failed,
            "warnings": self.warnings,
            "invalid": self.invalid,
        }


@dataclass
class UpdateResult:
    """Outcome of ``PackManager.update``."""

    outcome: UpdateOutcome
    decisions: list[UpdateDecision] = field(default_factory=list)
    report: str = ""
    applied: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.has_error for d in self.decisions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "ok": self.ok,
            "applied": self.applied,
            "decisions": [d.to_dict() for d in self.decisions],
        }


@dataclass
class PluginData:
    """One entry of ``PackManager.get``."""

    spec: PluginSpec
    path: Path
    was_added: bool
    installed: bool
    refs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "spec": self.spec.model_dump(),
            "path": str(self.path),
            "was_added": self.was_added,
            "installed": self.installed,
            "refs": self.refs,
        }


# ── Manager ─────────────────────────────────────────────────────


class PackManager:
    """Install and update git-hosted plugins under one package root.

    Args:
        config: Validated configuration.
        registry: Session registry (a fresh one by default).
        events: Event dispatcher. Shell hooks from ``config.hooks`` are
            registered on it.
        executor: Command executor. When omitted, commands run as real
            subprocesses and ``git`` must be on PATH.
        notifier: Receives user-facing messages with a logging level.
    """

    def __init__(
        self,
        config: ManagerConfig,
        registry: SessionRegistry | None = None,
        events: EventDispatcher | None = None,
        executor: Executor | None = None,
        notifier: Notifier | None = None,
    ):
        self.config = config
        self.registry = registry if registry is not None else SessionRegistry()
        self.events = events if events is not None else EventDispatcher()
        self.notifier = notifier or log_notifier
        self.log = UpdateLog(config.log)
        self.git = GitAdapter()
        self._check_git = executor is None
        self.runner = JobRunner(
            executor or SubprocessExecutor(),
            concurrency=config.jobs.concurrency,
            timeout=config.jobs.timeout,
            on_progress=self._on_progress,
        )
        register_hooks(self.events, config.hooks)

    @property
    def root(self) -> Path:
        return self.config.root

    # ── Add ─────────────────────────────────────────────────────

    def add(
        self,
        specs: Iterable[SpecInput],
        options: AddOptions | dict[str, Any] | None = None,
    ) -> AddResult:
        """Register plugins in the session, installing missing ones first."""
        options = _validate(AddOptions, options)
        normalized, errors = normalize_specs(specs, installed=self._is_installed)

        result = AddResult()
        for e in errors:
            result.invalid.append(str(e))
            self.notifier(f"Invalid plugin spec: {e}", logging.ERROR)

        # Last spec for a name wins, first position kept
        unique: dict[str, PluginSpec] = {}
        for spec in normalized:
            unique[spec.name] = spec
        result.specs = list(unique.values())
        to_install = [
            plugin
            for plugin in (ResolvedPlugin.from_spec(s, self.root) for s in unique.values())
            if not plugin.is_installed
        ]

        if to_install:
            self._ensure_git()
            self.notifier(
                f"Installing {', '.join(f'`{p.name}`' for p in to_install)}", logging.INFO
            )
            jobs = run_install(self.runner, self.events, to_install, self.root)
            self._notify_jobs(jobs, "install")
            for job in jobs:
                if job.failed:
                    result.failed[job.name] = str(job.error)
                else:
                    result.installed.append(job.name)
                if job.warnings:
                    result.warnings[job.name] = list(job.warnings)

        for spec in unique.values():
            self.registry.register(spec, loaded=not options.bang)

        return result

    # ── Update ──────────────────────────────────────────────────

    def update(
        self,
        names: Sequence[str] | None = None,
        options: UpdateOptions | dict[str, Any] | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> UpdateResult:
        """Update plugins, by default every known one.

        Without ``force``, the report is passed to ``confirm``. It returns
        the (possibly edited) report to apply the plugins still listed
        under "# Updates", or None to cancel. Without a ``confirm``
        callback the result is ``PENDING_CONFIRMATION`` and nothing changes.
        """
        options = _validate(UpdateOptions, options)
        plugins = self._select(names)
        if not plugins:
            self.notifier("Nothing to update", logging.INFO)
            return UpdateResult(outcome=UpdateOutcome.NOTHING_TO_UPDATE)

        self._ensure_git()
        jobs = run_update(self.runner, plugins, offline=options.offline)
        for job in jobs:
            if job.source:
                self.registry.heal_source(job.name, job.source)

        if options.force:
            return self._apply(jobs)

        decisions = [UpdateDecision.from_job(job) for job in jobs]
        report = render_report(decisions)
        result = UpdateResult(
            outcome=UpdateOutcome.PENDING_CONFIRMATION, decisions=decisions, report=report
        )
        if confirm is None:
            return result

        edited = confirm(report)
        if edited is None:
            logger.info("Update cancelled")
            result.outcome = UpdateOutcome.CANCELLED
            return result

        updatable = {d.name for d in decisions if d.has_update and not d.has_error}
        selected = [name for name in parse_report(edited) if name in updatable]
        if not selected:
            logger.info("No plugins left to update after confirmation")
            result.outcome = UpdateOutcome.CANCELLED
            return result

        # Fetch already happened above
        return self.update(selected, UpdateOptions(force=True, offline=True))

    def _apply(self, jobs: list[Job]) -> UpdateResult:
        applied = apply_checkout(self.runner, self.events, jobs)
        finish(jobs)

        decisions = [UpdateDecision.from_job(job) for job in jobs]
        report = render_report(decisions)
        try:
            self.log.append(report)
        except OSError as e:
            self.notifier(f"Could not write update log {self.log.path}: {e}", logging.ERROR)
        self._notify_jobs(jobs, "update")

        return UpdateResult(
            outcome=UpdateOutcome.APPLIED,
            decisions=decisions,
            report=report,
            applied=[job.name for job in applied],
        )

    # ── Get ─────────────────────────────────────────────────────

    def get(self) -> list[PluginData]:
        """Registered plugins followed by unregistered ones found on disk.

        Installed plugins without a known source get it from their
        ``origin`` remote, and the registry is healed with it.
        """
        plugins = self._known_plugins()
        data = [
            PluginData(
                spec=p.spec,
                path=p.path,
                was_added=p.name in self.registry,
                installed=p.is_installed,
            )
            for p in plugins
        ]

        installed = [(d, Job.for_plugin(p)) for d, p in zip(data, plugins) if d.installed]
        if installed:
            self._ensure_git()
            self._heal_sources(installed)
            jobs = [job for _, job in installed]
            tags = self._collect_lines(jobs, git_cmd("list_tags"))
            branches = self._collect_lines(jobs, git_cmd("list_branches"))
            for (d, job), job_tags, job_branches in zip(installed, tags, branches):
                d.refs = job_tags + _branch_names(job_branches)

        return data

    def _heal_sources(self, installed: list[tuple[PluginData, Job]]) -> None:
        unknown = [(d, job) for d, job in installed if d.spec.source is None]
        if not unknown:
            return
        jobs = [Job.for_plugin(job.plugin) for _, job in unknown]
        origins = self._collect_lines(jobs, git_cmd("get_origin"))
        for (d, _), lines in zip(unknown, origins):
            if not lines:
                continue
            d.spec = d.spec.model_copy(update={"source": lines[0]})
            self.registry.heal_source(d.spec.name, lines[0])

    # ── Helpers ─────────────────────────────────────────────────

    def _is_installed(self, name: str) -> bool:
        return (self.root / name).is_dir()

    def _disk_names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def _known_plugins(self) -> list[ResolvedPlugin]:
        specs = self.registry.specs()
        registered = {s.name for s in specs}
        specs += [PluginSpec(name=n) for n in self._disk_names() if n not in registered]
        return [ResolvedPlugin.from_spec(s, self.root) for s in specs]

    def _select(self, names: Sequence[str] | None) -> list[ResolvedPlugin]:
        known = self._known_plugins()
        if names is None:
            return known
        for name in names:
            if not isinstance(name, str):
                raise TypeError("`names` should contain only strings.")
        known_names = {p.name for p in known}
        for name in names:
            if name not in known_names:
                self.notifier(f"Unknown plugin `{name}`, skipping", logging.WARNING)
        wanted = set(names)
        return [p for p in known if p.name in wanted]

    def _collect_lines(self, jobs: list[Job], command: list[str]) -> list[list[str]]:
        out: dict[int, list[str]] = {}

        def prepare(job: Job) -> None:
            job.command = command

        def process(job: Job) -> None:
            out[id(job)] = [line.strip() for line in job.stdout.splitlines() if line.strip()]

        self.runner.run_stage(jobs, prepare, process)
        for job in jobs:
            if job.failed:
                logger.warning(
                    "`%s` failed in `%s`: %s", " ".join(command[3:]), job.name, job.error
                )
        return [out.get(id(job), []) for job in jobs]

    def _ensure_git(self) -> None:
        if self._check_git:
            self.git.ensure_available()

    def _on_progress(self, progress: JobProgress) -> None:
        self.notifier(str(progress), logging.INFO)

    def _notify_jobs(self, jobs: Iterable[Job], action: str) -> None:
        """One aggregated warning and one error notification per plugin."""
        for job in jobs:
            if job.warnings:
                warnings = "\n".join(job.warnings)
                self.notifier(
                    f"Warnings in `{job.name}` during {action}:\n{warnings}", logging.WARNING
                )
            if job.error is not None:
                self.notifier(f"Error in `{job.name}` during {action}:\n{job.error}", logging.ERROR)


def _validate(model: type, options: Any) -> Any:
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    return model.model_validate(options)


def _branch_names(lines: list[str]) -> list[str]:
    # `origin/HEAD` is listed as the bare remote name
    prefix = "origin/"
    return [line[len(prefix):] for line in lines if line.startswith(prefix)]
