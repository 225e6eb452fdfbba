"""
Auto-mark all tests in this directory as integration tests.

These run the real ``git`` executable against throwaway repositories
under ``tmp_path`` and are skipped when git is not installed.

Run ONLY integration tests:
    pytest tests/integration/ -m integration

Run ONLY unit tests:
    pytest -m "not integration"
"""

import shutil

import pytest


def pytest_collection_modifyitems(items):
    """Auto-apply the 'integration' marker to every test in this directory."""
    no_git = pytest.mark.skip(reason="git is not installed")
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            if shutil.which("git") is None:
                item.add_marker(no_git)


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Isolate git from the user's configuration."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "plugpack")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "plugpack@example.com")
