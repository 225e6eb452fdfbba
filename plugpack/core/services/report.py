"""
Update report — render decisions as text and read back the edited text.

Blocks are grouped into three sections, in this order:

    # Errors      plugins whose job failed
    # Updates     head differs from target
    # No updates  head equals target

Only ``error`` and the head/target comparison decide the group. Empty
sections are omitted, and blocks keep the order they were given in.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from plugpack.core.models.decision import UpdateDecision

ERRORS_HEADER = "# Errors"
UPDATES_HEADER = "# Updates"
SAME_HEADER = "# No updates"

_H1_RE = re.compile(r"^# (.+)$")
_H2_RE = re.compile(r"^## (.+)$")


def group_decisions(
    decisions: Sequence[UpdateDecision],
) -> tuple[list[UpdateDecision], list[UpdateDecision], list[UpdateDecision]]:
    """Split into (errors, updates, no updates)."""
    errors, updates, same = [], [], []
    for d in decisions:
        if d.has_error:
            errors.append(d)
        elif d.has_update:
            updates.append(d)
        else:
            same.append(d)
    return errors, updates, same


def render_report(decisions: Sequence[UpdateDecision]) -> str:
    """Render the grouped report."""
    errors, updates, same = group_decisions(decisions)

    parts: list[str] = []
    for header, group in (
        (ERRORS_HEADER, errors),
        (UPDATES_HEADER, updates),
        (SAME_HEADER, same),
    ):
        if group:
            parts.append(header)
            parts.extend(render_block(d) for d in group)

    return "\n\n".join(parts)


def render_block(d: UpdateDecision) -> str:
    """Render one plugin's block."""
    if d.has_error:
        error = (d.error or "").replace("\n", "\n  ")
        return f"## {d.name}\n\n  {error}"

    source = d.source or "<None>"
    state = f"{d.target_commit} ({d.target_description})"

    if not d.has_update:
        block = f"## {d.name}\nPath:   {d.path}\nSource: {source}\nState:  {state}"
        if d.new_tags:
            block += "\n\nNewer tags available:\n" + "\n".join(d.new_tags)
        return block

    return (
        f"## {d.name}\n"
        f"Path:         {d.path}\n"
        f"Source:       {source}\n"
        f"State before: {d.head_commit}\n"
        f"State after:  {state}\n"
        f"\n"
        f"Pending updates from `{d.target_description}`:\n"
        f"\n"
        f"{d.change_log}"
    )


def parse_report(text: str) -> list[str]:
    """Plugin names still listed under ``# Updates``, in order."""
    names: list[str] = []
    section = ""
    for line in text.splitlines():
        h1 = _H1_RE.match(line)
        if h1:
            section = h1.group(1).strip()
            continue
        h2 = _H2_RE.match(line)
        if h2 and f"# {section}" == UPDATES_HEADER:
            name = h2.group(1).strip()
            if name and name not in names:
                names.append(name)
    return names
