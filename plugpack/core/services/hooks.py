"""
Shell hooks — run configured commands on lifecycle events.

Config:

    hooks:
      PackInstall:
        - make
      PackUpdate:
        - ./install.sh

Each command runs through the shell inside the plugin directory (the
package root for ``PackInstallPre``, before the clone exists) with:

    PLUGPACK_PLUGIN_NAME, PLUGPACK_PLUGIN_PATH,
    PLUGPACK_PLUGIN_SOURCE, PLUGPACK_EVENT

A failing hook raises ``PackError``; the dispatcher turns it into a
warning on that plugin.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from plugpack.core.engine.events import EventDispatcher, EventPayload, LifecycleEvent
from plugpack.core.errors import PackError

logger = logging.getLogger(__name__)

DEFAULT_HOOK_TIMEOUT = 120.0


class ShellHook:
    """Listener that runs one shell command."""

    def __init__(self, command: str, timeout: float = DEFAULT_HOOK_TIMEOUT):
        self.command = command
        self.timeout = timeout

    def __call__(self, event: LifecycleEvent, payload: EventPayload) -> None:
        env = {
            **os.environ,
            "PLUGPACK_PLUGIN_NAME": payload.name,
            "PLUGPACK_PLUGIN_PATH": str(payload.path),
            "PLUGPACK_PLUGIN_SOURCE": payload.source or "",
            "PLUGPACK_EVENT": event.value,
        }
        logger.info("Running %s hook for `%s`: %s", event.value, payload.name, self.command)

        try:
            result = subprocess.run(
                self.command,
                shell=True,
                cwd=_working_dir(payload.path),
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PackError(f"Hook `{self.command}` timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise PackError(f"Hook `{self.command}` could not start: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise PackError(
                f"Hook `{self.command}` exited with code {result.returncode}"
                + (f": {detail}" if detail else "")
            )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} command={self.command!r}>"


def register_hooks(
    dispatcher: EventDispatcher,
    hooks: Mapping[str, Sequence[str]],
    timeout: float = DEFAULT_HOOK_TIMEOUT,
) -> list[ShellHook]:
    """Subscribe one ``ShellHook`` per configured command.

    Raises:
        ValueError: If an event name is unknown.
    """
    registered = []
    for event_name, commands in hooks.items():
        event = LifecycleEvent.parse(event_name)
        for command in commands:
            hook = ShellHook(command, timeout=timeout)
            dispatcher.subscribe(event, hook)
            registered.append(hook)
    if registered:
        logger.debug("Registered %d shell hook(s)", len(registered))
    return registered


def _working_dir(path: Path) -> Path:
    """``path`` itself, or its nearest existing parent."""
    for candidate in (path, *path.parents):
        if candidate.is_dir():
            return candidate
    return path
