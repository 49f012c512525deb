"""
Unit tests for the append-only history log.
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.history import (
    append_to_history,
    cleanup_old_history_files,
    count_today_events,
    get_history_file_path,
    get_history_files_in_range,
    history_file_date,
    list_history_files,
    read_history_file,
    read_today_history,
)
from llkb.models import HistoryEvent


def touch_history(llkb_root: Path, name: str) -> Path:
    path = llkb_root / "history" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('{"event": "lesson_applied"}\n', encoding="utf-8")
    return path


class TestAppend:
    """Test appending and reading events."""

    def test_append_creates_dated_file(self, tmp_path):
        """Test that events go to today's file, one per line."""
        append_to_history(HistoryEvent(event="lesson_applied", lesson_id="L001", success=True), tmp_path)
        append_to_history(HistoryEvent(event="component_used", component_id="C001", success=False), tmp_path)

        path = get_history_file_path(tmp_path)
        assert path.name == f"{date.today():%Y-%m-%d}.jsonl"
        events = read_today_history(tmp_path)
        assert [e["event"] for e in events] == ["lesson_applied", "component_used"]
        assert events[0]["lessonId"] == "L001"
        assert "componentId" not in events[0]

    def test_count_today_events(self, tmp_path):
        for success in (True, False, True):
            append_to_history(HistoryEvent(event="pattern_learned", success=success), tmp_path)
        append_to_history(HistoryEvent(event="lesson_applied", success=True), tmp_path)

        assert count_today_events(tmp_path) == 4
        assert count_today_events(tmp_path, "pattern_learned") == 3
        assert count_today_events(tmp_path, "pattern_learned", where=lambda e: e["success"]) == 2

    def test_malformed_lines_skipped(self, tmp_path):
        path = tmp_path / "history" / "2026-01-01.jsonl"
        path.parent.mkdir()
        path.write_text('{"event": "a"}\nnot json\n\n{"event": "b"}\n', encoding="utf-8")

        assert [e["event"] for e in read_history_file(path)] == ["a", "b"]


class TestHistoryFiles:
    """Test listing, ranges and cleanup."""

    def test_foreign_files_ignored(self, llkb_root):
        touch_history(llkb_root, "2026-03-01.jsonl")
        touch_history(llkb_root, "notes.jsonl")
        touch_history(llkb_root, "2026-13-45.jsonl")

        assert [p.name for p in list_history_files(llkb_root)] == ["2026-03-01.jsonl"]
        assert history_file_date(Path("2026-13-45.jsonl")) is None

    def test_range(self, llkb_root):
        for name in ("2026-01-01.jsonl", "2026-02-01.jsonl", "2026-03-01.jsonl"):
            touch_history(llkb_root, name)

        files = get_history_files_in_range(llkb_root, date(2026, 1, 15), date(2026, 3, 1))

        assert [p.name for p in files] == ["2026-02-01.jsonl", "2026-03-01.jsonl"]

    def test_cleanup(self, llkb_root):
        """Test that only files older than the retention window are deleted."""
        old = touch_history(llkb_root, "2025-01-01.jsonl")
        edge = touch_history(llkb_root, "2025-06-01.jsonl")
        recent = touch_history(llkb_root, "2026-05-01.jsonl")

        deleted, errors = cleanup_old_history_files(llkb_root, retention_days=365, today=date(2026, 6, 1))

        assert deleted == [str(old)]
        assert errors == []
        assert edge.exists() and recent.exists()

    def test_cleanup_without_history_dir(self, tmp_path):
        assert cleanup_old_history_files(tmp_path, 30) == ([], [])
