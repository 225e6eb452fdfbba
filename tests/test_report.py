"""
Tests for the update report and the update log.
"""

from pathlib import Path

from plugpack.core.models.decision import UpdateDecision
from plugpack.core.persistence.update_log import UpdateLog, format_title
from plugpack.core.services.report import group_decisions, parse_report, render_report


def _decision(name: str, head: str, target: str, **kwargs) -> UpdateDecision:
    return UpdateDecision(
        name=name,
        path=Path("/pack") / name,
        source=f"https://example.com/{name}",
        head_commit=head,
        target_commit=target,
        target_description=kwargs.pop("description", "main"),
        **kwargs,
    )


class TestGrouping:
    def test_head_target_equality_drives_grouping(self):
        decisions = [
            _decision("same", "aaa", "aaa"),
            _decision("moved", "aaa", "bbb"),
            _decision("broken", "aaa", "bbb", error="ERROR CODE 1"),
        ]
        errors, updates, same = group_decisions(decisions)
        assert [d.name for d in errors] == ["broken"]
        assert [d.name for d in updates] == ["moved"]
        assert [d.name for d in same] == ["same"]


class TestRenderReport:
    def test_full_report(self):
        report = render_report(
            [
                _decision("same", "aaa", "aaa", description="v1.0.0", new_tags=("v1.1.0",)),
                _decision("moved", "aaa", "bbb", change_log="> bbb │ Fix bug"),
                _decision("broken", "", "", error="ERROR CODE 128\nfatal: gone"),
            ]
        )
        assert report == (
            "# Errors\n"
            "\n"
            "## broken\n"
            "\n"
            "  ERROR CODE 128\n"
            "  fatal: gone\n"
            "\n"
            "# Updates\n"
            "\n"
            "## moved\n"
            "Path:         /pack/moved\n"
            "Source:       https://example.com/moved\n"
            "State before: aaa\n"
            "State after:  bbb (main)\n"
            "\n"
            "Pending updates from `main`:\n"
            "\n"
            "> bbb │ Fix bug\n"
            "\n"
            "# No updates\n"
            "\n"
            "## same\n"
            "Path:   /pack/same\n"
            "Source: https://example.com/same\n"
            "State:  aaa (v1.0.0)\n"
            "\n"
            "Newer tags available:\n"
            "v1.1.0"
        )

    def test_empty_sections_omitted_and_order_kept(self):
        report = render_report([_decision("b", "1", "2"), _decision("a", "1", "3")])
        assert "# Errors" not in report
        assert "# No updates" not in report
        assert report.index("## b") < report.index("## a")

    def test_unknown_source(self):
        decision = UpdateDecision(name="x", path=Path("/pack/x"), head_commit="a", target_commit="a")
        assert "Source: <None>" in render_report([decision])


class TestParseReport:
    def test_names_under_updates_only(self):
        report = render_report(
            [
                _decision("same", "aaa", "aaa"),
                _decision("one", "aaa", "bbb"),
                _decision("two", "aaa", "ccc"),
                _decision("broken", "aaa", "bbb", error="boom"),
            ]
        )
        assert parse_report(report) == ["one", "two"]

    def test_removed_block_is_skipped(self):
        report = render_report([_decision("one", "a", "b"), _decision("two", "a", "c")])
        start = report.index("## one")
        edited = report[:start] + report[report.index("## two"):]
        assert parse_report(edited) == ["two"]

    def test_empty(self):
        assert parse_report("") == []


class TestUpdateLog:
    def test_append_creates_parents_and_appends(self, tmp_path: Path):
        log = UpdateLog(tmp_path / "state" / "plugpack.log")
        log.append("# Updates\n\n## a", timestamp="2024-05-01 12:00:00")
        log.append("# No updates\n\n## b", timestamp="2024-05-02 08:30:00")

        text = log.path.read_text()
        assert text == (
            "========== Update 2024-05-01 12:00:00 ==========\n"
            "# Updates\n\n## a\n\n"
            "========== Update 2024-05-02 08:30:00 ==========\n"
            "# No updates\n\n## b\n\n"
        )

    def test_read_back(self, tmp_path: Path):
        log = UpdateLog(tmp_path / "plugpack.log")
        log.append("first", timestamp="2024-01-01 00:00:00")
        log.append("second\n\nmore", timestamp="2024-01-02 00:00:00")

        blocks = log.read_all()
        assert [b.timestamp for b in blocks] == ["2024-01-01 00:00:00", "2024-01-02 00:00:00"]
        assert blocks[1].report == "second\n\nmore"
        assert log.read_recent(1) == blocks[1:]
        assert log.entry_count() == 2

    def test_missing_log(self, tmp_path: Path):
        log = UpdateLog(tmp_path / "none.log")
        assert log.read_all() == []
        assert log.entry_count() == 0

    def test_title(self):
        assert format_title("2024-01-01 00:00:00") == "========== Update 2024-01-01 00:00:00 =========="
