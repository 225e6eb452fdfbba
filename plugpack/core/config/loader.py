"""
Configuration loader — reads plugpack.yml into a ``ManagerConfig``.

Lookup order:
    1. explicit path (``--config``)
    2. ``PLUGPACK_CONFIG`` environment variable
    3. ``plugpack.yml`` in the current directory or any parent
    4. built-in defaults

Relative paths in the file are taken relative to the file's directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plugpack.core.engine.events import LifecycleEvent
from plugpack.core.engine.runner import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_FILE = "plugpack.yml"
CONFIG_ENV_VAR = "PLUGPACK_CONFIG"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


def default_root() -> Path:
    data_home = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(data_home) / "plugpack" / "site" / "pack" / "core" / "opt"


def default_log() -> Path:
    state_home = os.environ.get("XDG_STATE_HOME") or Path.home() / ".local" / "state"
    return Path(state_home) / "plugpack" / "plugpack.log"


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(os.path.expanduser(value))
    return value


class JobsConfig(BaseModel):
    """Job runner settings."""

    model_config = ConfigDict(extra="forbid")

    concurrency: int | None = Field(default=None, ge=1)  # None → 80% of CPUs
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)


class ManagerConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    root: Path = Field(default_factory=default_root)
    log: Path = Field(default_factory=default_log)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    plugins: list[str | dict[str, Any]] = Field(default_factory=list)
    hooks: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("root", "log", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Any:
        return _expand(value)

    @field_validator("hooks")
    @classmethod
    def _known_events(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for event_name in value:
            LifecycleEvent.parse(event_name)
        return value


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for plugpack.yml starting from the given directory, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_config_path(path: Path | None = None) -> Path | None:
    """Apply the lookup order. Returns None when defaults should be used."""
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(_expand(env_path))
    return find_config_file()


def load_config(path: Path | None = None) -> ManagerConfig:
    """Load and validate configuration.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    path = resolve_config_path(path)

    if path is None:
        logger.debug("No %s found, using defaults", CONFIG_FILE)
        return ManagerConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ManagerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    base = path.parent.resolve()
    config = config.model_copy(
        update={
            "root": base / config.root if not config.root.is_absolute() else config.root,
            "log": base / config.log if not config.log.is_absolute() else config.log,
        }
    )

    logger.info("Loaded config from %s with %d plugin(s)", path, len(config.plugins))
    return config
