"""
Update use case — update known plugins, optionally after confirmation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from plugpack.adapters.base import Executor
from plugpack.core.config.loader import ConfigError
from plugpack.core.errors import PackError
from plugpack.core.manager import ConfirmCallback, Notifier, UpdateResult
from plugpack.core.models.options import UpdateOptions
from plugpack.core.use_cases.session import open_session


@dataclass
class UpdateUseCaseResult:
    result: UpdateResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"ok": False, "error": self.error}
        assert self.result is not None
        return self.result.to_dict()


def run_update(
    names: Sequence[str] = (),
    force: bool = False,
    offline: bool = False,
    confirm: ConfirmCallback | None = None,
    config_path: Path | None = None,
    executor: Executor | None = None,
    notifier: Notifier | None = None,
) -> UpdateUseCaseResult:
    """Update ``names`` (all known plugins when empty)."""
    try:
        _, manager = open_session(config_path, executor=executor, notifier=notifier)
    except ConfigError as e:
        return UpdateUseCaseResult(error=str(e))

    try:
        result = manager.update(
            list(names) or None,
            UpdateOptions(force=force, offline=offline),
            confirm=confirm,
        )
    except PackError as e:
        return UpdateUseCaseResult(error=str(e))
    return UpdateUseCaseResult(result=result)
