"""
Session setup shared by the use cases — config → ready ``PackManager``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from plugpack.adapters.base import Executor
from plugpack.core.config.loader import ManagerConfig, load_config
from plugpack.core.manager import Notifier, PackManager
from plugpack.core.services.normalize import normalize_specs

logger = logging.getLogger(__name__)


def open_session(
    config_path: Path | None = None,
    executor: Executor | None = None,
    notifier: Notifier | None = None,
    register_config_plugins: bool = True,
) -> tuple[ManagerConfig, PackManager]:
    """Load config and build a manager.

    With ``register_config_plugins``, the plugins listed in the config
    are registered in the session without installing anything, so that
    their declared source and version drive updates. Invalid entries are
    skipped with a warning.

    Raises:
        ConfigError: If the configuration cannot be loaded.
    """
    config = load_config(config_path)
    manager = PackManager(config, executor=executor, notifier=notifier)

    if register_config_plugins and config.plugins:
        specs, errors = normalize_specs(
            config.plugins, installed=lambda name: (config.root / name).is_dir()
        )
        for e in errors:
            logger.warning("Skipping configured plugin: %s", e)
        for spec in specs:
            manager.registry.register(spec)

    return config, manager
