"""
Spec normalizer — turn loose plugin specifications into ``PluginSpec``.

Pure and synchronous: no subprocess, no network. The only optional
outside knowledge is an ``installed(name)`` predicate used to accept a
spec without ``source`` when the plugin is already on disk.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from plugpack.core.errors import InvalidSpec
from plugpack.core.models.spec import DEFAULT_VERSION, PluginSpec

logger = logging.getLogger(__name__)

SpecInput = str | Mapping[str, Any] | PluginSpec

_ALLOWED_KEYS = frozenset({"source", "name", "version"})

# 'user/repo' shorthand for GitHub repositories
_USER_REPO_RE = re.compile(r"^[\w-]+/[\w.-]+$")
GITHUB_PREFIX = "https://github.com/"


def normalize_spec(
    spec: SpecInput,
    installed: Callable[[str], bool] | None = None,
) -> PluginSpec:
    """Normalize one plugin specification.

    Args:
        spec: A source URI, a bare plugin name, a mapping with
            ``source``/``name``/``version``, or a ``PluginSpec``.
        installed: Optional predicate telling whether a plugin directory
            with the given name exists. When given, a spec without
            ``source`` is only accepted for installed plugins.

    Returns:
        Validated ``PluginSpec``.

    Raises:
        InvalidSpec: If the specification is malformed.
    """
    data = _as_mapping(spec)

    source = data.get("source")
    name = data.get("name")
    version = data.get("version")

    for key, value in (("source", source), ("name", name), ("version", version)):
        if value is not None and not isinstance(value, str):
            raise InvalidSpec(f"`{key}` in plugin spec should be string.")

    if not source and not name:
        raise InvalidSpec("Plugin spec should have proper `source` or `name`.")

    if source and _USER_REPO_RE.match(source):
        source = GITHUB_PREFIX + source

    if name is None:
        name = _name_from_source(source or "")
    _validate_name(name)

    if not source:
        source = None
        if installed is not None and not installed(name):
            raise InvalidSpec(
                f"Plugin spec for `{name}` has no `source` and `{name}` is not installed."
            )

    try:
        return PluginSpec(source=source, name=name, version=version or DEFAULT_VERSION)
    except ValidationError as e:
        raise InvalidSpec(f"Invalid plugin spec: {e}") from e


def normalize_specs(
    specs: Iterable[SpecInput],
    installed: Callable[[str], bool] | None = None,
) -> tuple[list[PluginSpec], list[InvalidSpec]]:
    """Normalize a batch. A bad entry never aborts the others.

    Returns:
        (normalized specs in input order, errors for rejected entries)
    """
    result: list[PluginSpec] = []
    errors: list[InvalidSpec] = []
    for spec in specs:
        try:
            result.append(normalize_spec(spec, installed=installed))
        except InvalidSpec as e:
            logger.debug("Rejected plugin spec %r: %s", spec, e)
            errors.append(e)
    return result, errors


def _as_mapping(spec: SpecInput) -> dict[str, Any]:
    if isinstance(spec, PluginSpec):
        return spec.model_dump()

    if isinstance(spec, str):
        # Anything with a slash is a source, otherwise it names an installed plugin
        field = "source" if "/" in spec else "name"
        return {field: spec}

    if isinstance(spec, Mapping):
        unknown = set(spec) - _ALLOWED_KEYS
        if unknown:
            raise InvalidSpec(
                f"Unknown field(s) in plugin spec: {', '.join(sorted(map(str, unknown)))}"
            )
        return dict(spec)

    raise InvalidSpec(f"Plugin spec should be string or table, got {type(spec).__name__}.")


def _name_from_source(source: str) -> str:
    """Last path segment of a URI, without trailing slashes or '.git'."""
    tail = source.rstrip("/").rsplit("/", 1)[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    return tail


def _validate_name(name: str) -> None:
    if name == "":
        raise InvalidSpec("`name` in plugin spec should not be empty.")
    if name in (".", ".."):
        raise InvalidSpec(f"`name` in plugin spec should not be `{name}`.")
    if "/" in name or "\\" in name:
        raise InvalidSpec('`name` in plugin spec should not contain "/".')
