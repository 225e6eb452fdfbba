"""
Update log — append-only history of applied updates.

Every forced (or confirmed) update appends one self-contained block:

    ========== Update 2024-05-01 12:00:00 ==========
    <report text>
    <blank line>

The file is opened fresh for every write and never rewritten.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_TITLE_RE = re.compile(r"^========== Update (?P<timestamp>.+) ==========$")


def now_timestamp() -> str:
    """Local time as ``YYYY-mm-dd HH:MM:SS``."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def format_title(timestamp: str) -> str:
    return f"========== Update {timestamp} =========="


@dataclass(frozen=True)
class LogBlock:
    """One update entry read back from the log."""

    timestamp: str
    report: str

    def render(self) -> str:
        return f"{format_title(self.timestamp)}\n{self.report}"

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "report": self.report}


class UpdateLog:
    """Append-only update log writer and reader."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def append(self, report: str, timestamp: str | None = None) -> LogBlock:
        """Append one titled block. Creates parent directories as needed.

        Raises:
            OSError: If the log cannot be written.
        """
        block = LogBlock(timestamp=timestamp or now_timestamp(), report=report)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(f"{block.render()}\n\n")
        logger.debug("Update log entry written to %s", self._path)
        return block

    def read_all(self) -> list[LogBlock]:
        """Read all blocks, oldest first. Text before the first title is ignored."""
        if not self._path.is_file():
            return []

        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.error("Failed to read update log: %s", e)
            return []

        blocks: list[LogBlock] = []
        timestamp: str | None = None
        body: list[str] = []
        for line in lines:
            match = _TITLE_RE.match(line)
            if match is None:
                body.append(line)
                continue
            if timestamp is not None:
                blocks.append(_make_block(timestamp, body))
            timestamp, body = match.group("timestamp"), []
        if timestamp is not None:
            blocks.append(_make_block(timestamp, body))
        return blocks

    def read_recent(self, n: int = 1) -> list[LogBlock]:
        """The most recent ``n`` blocks, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]

    def entry_count(self) -> int:
        """Count blocks without parsing their reports."""
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if _TITLE_RE.match(line.rstrip("\n")))
        except OSError:
            return 0


def _make_block(timestamp: str, body: list[str]) -> LogBlock:
    # Drop the separator line(s) written after each report
    while body and not body[-1].strip():
        body.pop()
    return LogBlock(timestamp=timestamp, report="\n".join(body))
