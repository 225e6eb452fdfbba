"""
Add use case — install configured plugins plus the ones given on the CLI.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from plugpack.adapters.base import Executor
from plugpack.core.config.loader import ConfigError
from plugpack.core.errors import PackError
from plugpack.core.manager import AddResult, Notifier
from plugpack.core.models.options import AddOptions
from plugpack.core.use_cases.session import open_session


@dataclass
class AddUseCaseResult:
    result: AddResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"ok": False, "error": self.error}
        assert self.result is not None
        return self.result.to_dict()


def parse_cli_spec(text: str) -> str | dict[str, Any]:
    """``source@version`` → mapping; anything else is passed through.

    The part after the last ``@`` is a version only if it has no ``/``
    or ``:``, so ``git@host:user/repo`` stays a plain source.
    """
    head, sep, tail = text.rpartition("@")
    if not sep or not head or not tail or "/" in tail or ":" in tail:
        return text
    key = "source" if "/" in head else "name"
    return {key: head, "version": tail}


def run_add(
    specs: Sequence[str] = (),
    bang: bool = False,
    config_path: Path | None = None,
    executor: Executor | None = None,
    notifier: Notifier | None = None,
) -> AddUseCaseResult:
    """Add (and install if missing) configured and CLI-given plugins."""
    try:
        config, manager = open_session(
            config_path, executor=executor, notifier=notifier, register_config_plugins=False
        )
    except ConfigError as e:
        return AddUseCaseResult(error=str(e))

    all_specs = [*config.plugins, *(parse_cli_spec(s) for s in specs)]
    try:
        result = manager.add(all_specs, AddOptions(bang=bang))
    except PackError as e:
        return AddUseCaseResult(error=str(e))
    return AddUseCaseResult(result=result)
