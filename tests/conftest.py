"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from plugpack.adapters.mock import MockExecutor
from plugpack.core.config.loader import JobsConfig, ManagerConfig
from plugpack.core.engine.runner import JobRunner


@pytest.fixture
def plugin_root(tmp_path: Path) -> Path:
    """Package root for plugins (not created)."""
    return tmp_path / "pack" / "core" / "opt"


@pytest.fixture
def mock_executor() -> MockExecutor:
    return MockExecutor()


@pytest.fixture
def runner(mock_executor: MockExecutor) -> JobRunner:
    return JobRunner(mock_executor, concurrency=4, timeout=5.0)


@pytest.fixture
def config(tmp_path: Path, plugin_root: Path) -> ManagerConfig:
    return ManagerConfig(
        root=plugin_root,
        log=tmp_path / "state" / "plugpack.log",
        jobs=JobsConfig(concurrency=4, timeout=5.0),
    )
