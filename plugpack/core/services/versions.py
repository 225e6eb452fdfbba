"""
Version ranges over git tags.

Tags are parsed with ``packaging.version.Version`` (an optional leading
``v`` is allowed; unparseable tags are ignored). Ranges use the familiar
semver shorthands and are translated into a ``SpecifierSet``:

    *            any version
    1.2.3        exactly 1.2.3
    1.2, 1.x     >=1.2.0,<1.3.0
    1            >=1.0.0,<2.0.0
    ^1.2.3       >=1.2.3,<2.0.0   (^0.2.3 → <0.3.0, ^0.0.3 → <0.0.4)
    ~1.2.3       >=1.2.3,<1.3.0
    >=1.2 <2     comparators, space- or comma-separated
    1.2 - 2.3.4  hyphen range, inclusive

Pre-release tags only match when the range itself names a pre-release.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

_PART = r"(\d+|[xX*])"
_VERSION_RE = re.compile(
    rf"^[vV]?{_PART}(?:\.{_PART})?(?:\.{_PART})?(?P<pre>-[0-9A-Za-z.-]+)?$"
)
_COMPARATOR_RE = re.compile(r"^(?P<op>>=|<=|>|<|=|\^|~)?\s*(?P<version>\S+)$")
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_WILDCARDS = frozenset({"x", "X", "*"})


@dataclass(frozen=True)
class _Partial:
    """A possibly incomplete version like ``1``, ``1.2`` or ``1.2.3-rc.1``."""

    parts: tuple[int, ...]  # 0 to 3 numeric components
    pre: str = ""

    @property
    def is_full(self) -> bool:
        return len(self.parts) == 3

    def floor(self) -> str:
        padded = list(self.parts) + [0] * (3 - len(self.parts))
        return ".".join(str(p) for p in padded) + self.pre

    def bump(self) -> str:
        """Smallest version above everything this partial covers."""
        if not self.parts:
            raise ValueError("Cannot bump a wildcard version")
        parts = list(self.parts)
        parts[-1] += 1
        parts += [0] * (3 - len(parts))
        return ".".join(str(p) for p in parts)


@dataclass(frozen=True)
class VersionRange:
    """A parsed version range."""

    text: str
    specifiers: SpecifierSet
    prereleases: bool = False

    def contains(self, version: Version) -> bool:
        return self.specifiers.contains(version, prereleases=self.prereleases)

    def select_greatest(self, tags: Iterable[str]) -> str | None:
        """Greatest tag inside the range.

        Ties in version precedence (e.g. ``v1.0.0`` and ``1.0.0``, or
        build-metadata-only differences) go to the lexically greatest
        tag name.
        """
        candidates = []
        for tag in tags:
            version = parse_tag_version(tag)
            if version is not None and self.contains(version):
                candidates.append((version, tag))
        if not candidates:
            return None
        return max(candidates)[1]


def parse_tag_version(tag: str) -> Version | None:
    """Parse a tag as a version, or return None."""
    tag = tag.strip()
    if not tag:
        return None
    if tag[0] in "vV":
        tag = tag[1:]
    try:
        return Version(tag)
    except InvalidVersion:
        return None


def parse_range(text: str) -> VersionRange | None:
    """Parse a version range. Returns None if ``text`` is not a range."""
    stripped = text.strip()
    if stripped in ("", "*", "x", "X"):
        return VersionRange(text=text, specifiers=SpecifierSet(""))

    hyphen = _HYPHEN_RE.match(stripped)
    if hyphen:
        low, high = _parse_partial(hyphen.group(1)), _parse_partial(hyphen.group(2))
        if low is None or high is None:
            return None
        clauses = [f">={low.floor()}"]
        if high.parts:
            clauses.append(f"<={high.floor()}" if high.is_full else f"<{high.bump()}")
        return _build(text, clauses, prereleases=bool(low.pre or high.pre))

    clauses: list[str] = []
    prereleases = False
    for token in _tokenize(stripped):
        match = _COMPARATOR_RE.match(token)
        if match is None:
            return None
        partial = _parse_partial(match.group("version"))
        if partial is None:
            return None
        prereleases = prereleases or bool(partial.pre)
        clauses.extend(_clauses_for(match.group("op") or "", partial))

    return _build(text, clauses, prereleases=prereleases)


def _tokenize(text: str) -> list[str]:
    # Glue operators to their operand: '>= 1.2' → '>=1.2'
    text = re.sub(r"(>=|<=|>|<|=|\^|~)\s+", r"\1", text)
    return [t for t in re.split(r"[\s,]+", text) if t]


def _parse_partial(text: str) -> _Partial | None:
    match = _VERSION_RE.match(text)
    if match is None:
        return None
    parts: list[int] = []
    for group in match.groups()[:3]:
        if group is None or group in _WILDCARDS:
            break
        parts.append(int(group))
    return _Partial(parts=tuple(parts), pre=match.group("pre") or "")


def _clauses_for(op: str, v: _Partial) -> list[str]:
    if not v.parts:
        # Wildcard: '>=x' and friends match everything
        return []

    if op in ("", "="):
        if v.is_full:
            return [f"=={v.floor()}"]
        return [f">={v.floor()}", f"<{v.bump()}"]

    if op == "^":
        # Bump the first non-zero component (or the last given one)
        idx = next((i for i, p in enumerate(v.parts) if p != 0), len(v.parts) - 1)
        upper = _Partial(parts=v.parts[: idx + 1]).bump()
        return [f">={v.floor()}", f"<{upper}"]

    if op == "~":
        keep = 2 if len(v.parts) >= 2 else 1
        return [f">={v.floor()}", f"<{_Partial(parts=v.parts[:keep]).bump()}"]

    if op == ">=":
        return [f">={v.floor()}"]
    if op == "<":
        return [f"<{v.floor()}"]
    if op == ">":
        return [f">{v.floor()}"] if v.is_full else [f">={v.bump()}"]
    if op == "<=":
        return [f"<={v.floor()}"] if v.is_full else [f"<{v.bump()}"]

    raise ValueError(f"Unknown range operator: {op}")


def _build(text: str, clauses: list[str], prereleases: bool) -> VersionRange | None:
    try:
        specifiers = SpecifierSet(",".join(clauses))
    except InvalidSpecifier:
        return None
    return VersionRange(text=text, specifiers=specifiers, prereleases=prereleases)
