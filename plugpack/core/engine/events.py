"""
Lifecycle events — synchronous observers around install and update.

Four events are fired per plugin, in plugin order:

    BEFORE_INSTALL  (PackInstallPre)   before cloning
    AFTER_INSTALL   (PackInstall)      after clone + checkout
    BEFORE_UPDATE   (PackUpdatePre)    after stash, before checkout
    AFTER_UPDATE    (PackUpdate)       after checkout

A plugin that already failed is skipped. A listener that raises never
aborts the batch: the exception is logged and attached to that plugin
as a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from plugpack.core.models.job import Job

logger = logging.getLogger(__name__)


class LifecycleEvent(Enum):
    """Named lifecycle notifications. Values are the public event names."""

    BEFORE_INSTALL = "PackInstallPre"
    AFTER_INSTALL = "PackInstall"
    BEFORE_UPDATE = "PackUpdatePre"
    AFTER_UPDATE = "PackUpdate"

    @classmethod
    def parse(cls, text: str) -> LifecycleEvent:
        """Accept either the event name (``PackInstall``) or the member name
        (``after_install``, case-insensitive).

        Raises:
            ValueError: If ``text`` names no event.
        """
        for event in cls:
            if text == event.value or text.upper() == event.name:
                return event
        known = ", ".join(e.value for e in cls)
        raise ValueError(f"Unknown event '{text}'. Known events: {known}")


@dataclass(frozen=True)
class EventPayload:
    """Data handed to listeners."""

    path: Path
    source: str | None
    name: str


Listener = Callable[[LifecycleEvent, EventPayload], None]


class EventDispatcher:
    """Registry of listeners per lifecycle event."""

    def __init__(self) -> None:
        self._listeners: dict[LifecycleEvent, list[Listener]] = {e: [] for e in LifecycleEvent}

    def subscribe(self, event: LifecycleEvent, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def unsubscribe(self, event: LifecycleEvent, listener: Listener) -> None:
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            pass

    def listeners(self, event: LifecycleEvent) -> list[Listener]:
        return list(self._listeners[event])

    def fire(self, event: LifecycleEvent, jobs: Iterable[Job]) -> int:
        """Fire ``event`` once per non-failed job, in order.

        Returns:
            Number of plugins the event was fired for.
        """
        fired = 0
        listeners = self.listeners(event)
        for job in jobs:
            if job.failed:
                continue
            payload = EventPayload(path=job.path, source=job.source, name=job.name)
            fired += 1
            for listener in listeners:
                try:
                    listener(event, payload)
                except Exception as e:
                    logger.warning("%s listener failed for `%s`: %s", event.value, job.name, e)
                    job.add_warning(f"{event.value} listener failed: {e}")
        if fired:
            logger.debug("Fired %s for %d plugin(s)", event.value, fired)
        return fired
