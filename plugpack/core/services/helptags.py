"""
Help index — regenerate ``doc/tags`` from a plugin's help files.

Help files are ``doc/**/*.txt``; a tag is a ``*name*`` anchor surrounded
by whitespace. The index has one line per tag, sorted:

    tag<TAB>relative/file.txt<TAB>/*tag*
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

DOC_DIR = "doc"
TAGS_FILE = "tags"

_TAG_RE = re.compile(r"(?:^|(?<=\s))\*([^*\s|]+)\*(?=\s|$)")


def generate_helptags(plugin_path: Path) -> int:
    """Rebuild ``<plugin>/doc/tags``.

    The old index is always removed. Nothing is written when the plugin
    has no help files. If a tag is defined twice, the first definition
    (in sorted file order) wins.

    Returns:
        Number of tags written.
    """
    doc_dir = plugin_path / DOC_DIR
    tags_path = doc_dir / TAGS_FILE
    tags_path.unlink(missing_ok=True)

    if not doc_dir.is_dir():
        return 0
    help_files = sorted(p for p in doc_dir.rglob("*.txt") if p.is_file())
    if not help_files:
        return 0

    entries: dict[str, str] = {}
    for help_file in help_files:
        rel = help_file.relative_to(doc_dir).as_posix()
        text = help_file.read_text(encoding="utf-8", errors="replace")
        for line in text.splitlines():
            for match in _TAG_RE.finditer(line):
                tag = match.group(1)
                if tag in entries:
                    logger.warning(
                        "Duplicate tag `%s` in %s (first defined in %s)",
                        tag, rel, entries[tag],
                    )
                    continue
                entries[tag] = rel

    lines = [f"{tag}\t{entries[tag]}\t/*{_escape(tag)}*" for tag in sorted(entries)]
    tags_path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    logger.debug("Wrote %d help tag(s) to %s", len(lines), tags_path)
    return len(lines)


def _escape(tag: str) -> str:
    # The search pattern is a '/' delimited regex
    return tag.replace("\\", "\\\\").replace("/", "\\/")
