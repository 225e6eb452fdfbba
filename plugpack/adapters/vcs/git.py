"""
Git command builder — every git command line the manager runs.

No other module constructs git argument vectors. Each operation maps to
a fixed argument template; the builder does no I/O.

Every command disables automatic garbage collection (``-c gc.auto=0``)
so that "Auto packing..." never shows up in stderr of a concurrent job.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from plugpack.core.errors import GitNotFoundError

logger = logging.getLogger(__name__)

GIT = "git"
STASH_PREFIX = "(plugpack)"


def _version() -> list[str]:
    return ["version"]


def _clone(source: str, path: str) -> list[str]:
    # Blobs are fetched lazily; submodules are cloned with the same filter
    # (``--also-filter-submodules`` requires git>=2.36)
    return [
        "clone",
        "--quiet",
        "--filter=blob:none",
        "--recurse-submodules",
        "--also-filter-submodules",
        "--origin",
        "origin",
        source,
        path,
    ]


def _fetch() -> list[str]:
    # '--tags --force' syncs conflicting tags with the remote
    return ["fetch", "--quiet", "--tags", "--force", "--recurse-submodules=yes", "origin"]


def _checkout(target: str) -> list[str]:
    return ["checkout", "--quiet", target]


def _stash(timestamp: str) -> list[str]:
    return ["stash", "--quiet", "--message", f"{STASH_PREFIX} {timestamp} Stash before checkout"]


def _set_origin(source: str) -> list[str]:
    return ["remote", "set-url", "origin", source]


def _get_origin() -> list[str]:
    return ["remote", "get-url", "origin"]


def _get_default_origin_branch() -> list[str]:
    return ["rev-parse", "--abbrev-ref", "origin/HEAD"]


def _is_origin_branch(name: str) -> list[str]:
    # Prints the branch name only if it exists on origin
    return ["branch", "--list", "--all", "--format=%(refname:short)", f"origin/{name}"]


def _list_branches() -> list[str]:
    return ["branch", "--remote", "--list", "--format=%(refname:short)", "--", "origin/**"]


def _list_tags() -> list[str]:
    return ["tag", "--list"]


def _list_new_tags(head: str) -> list[str]:
    # Tags strictly ahead of head: contain it, but are not merged into it
    return ["tag", "--list", "--contains", head, "--no-merged", head, "--sort=v:refname"]


def _get_hash(ref: str) -> list[str]:
    # `rev-list -1` gives the commit, `rev-parse` would give the tag object
    # for annotated tags
    return ["rev-list", "-1", ref]


def _log(from_ref: str | None, to_ref: str | None) -> list[str] | None:
    if not from_ref or not to_ref or from_ref == to_ref:
        return None
    # --topo-order keeps divergent branches readable,
    # --decorate-refs shows only tags next to commits
    return [
        "log",
        "--pretty=format:%m %h │ %s%d",
        "--topo-order",
        "--decorate-refs=refs/tags",
        f"{from_ref}...{to_ref}",
    ]


GIT_OPERATIONS: dict[str, Callable[..., list[str] | None]] = {
    "version": _version,
    "clone": _clone,
    "fetch": _fetch,
    "checkout": _checkout,
    "stash": _stash,
    "set_origin": _set_origin,
    "get_origin": _get_origin,
    "get_default_origin_branch": _get_default_origin_branch,
    "is_origin_branch": _is_origin_branch,
    "list_branches": _list_branches,
    "list_tags": _list_tags,
    "list_new_tags": _list_new_tags,
    "get_hash": _get_hash,
    "log": _log,
}


def git_cmd(operation: str, *args: str | None) -> list[str]:
    """Build the argument vector for a git operation.

    Returns an empty list ("no command") when the operation has nothing
    to do, e.g. ``log`` over a zero-length range.

    Raises:
        KeyError: If ``operation`` is not a known git operation.
    """
    builder = GIT_OPERATIONS[operation]
    op_args = builder(*args)
    if op_args is None:
        return []
    return [GIT, "-c", "gc.auto=0", *op_args]


class GitAdapter:
    """Availability checks for the git executable."""

    @property
    def name(self) -> str:
        return GIT

    def is_available(self) -> bool:
        return shutil.which(GIT) is not None

    def ensure_available(self) -> None:
        """Raise ``GitNotFoundError`` if git is not on PATH."""
        if not self.is_available():
            raise GitNotFoundError("No `git` executable")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
