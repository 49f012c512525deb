"""
Unit tests for health checks, statistics and pruning.
"""

import json
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.health import (
    check_health,
    format_health_check,
    format_prune_result,
    format_stats,
    get_stats,
    prune,
)
from llkb.models import AnalyticsSnapshot
from llkb.storage import KnowledgeStore


def statuses(result):
    return {check.name: check.status for check in result.checks}


def set_lesson_metric(llkb_root: Path, lesson_id: str, key: str, value):
    path = llkb_root / "lessons.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    for lesson in data["lessons"]:
        if lesson["id"] == lesson_id:
            lesson["metrics"][key] = value
    path.write_text(json.dumps(data), encoding="utf-8")


class TestCheckHealth:
    """Test the health report."""

    def test_seeded_store_has_warnings(self, llkb_root):
        """Test that a missing analytics file and a low-confidence lesson are warnings."""
        result = check_health(llkb_root)

        assert result.status == "warning"
        assert statuses(result)["analytics.json"] == "warn"
        assert statuses(result)["Lesson health"] == "warn"
        assert statuses(result)["lessons.json"] == "pass"
        assert "L002" in next(c for c in result.checks if c.name == "Lesson health").details

    def test_healthy_after_fixing(self, llkb_root):
        set_lesson_metric(llkb_root, "L002", "confidence", 0.6)
        KnowledgeStore(llkb_root).save_analytics(AnalyticsSnapshot())

        result = check_health(llkb_root)

        assert result.status == "healthy"
        assert result.summary == "LLKB is healthy"

    def test_corrupt_lessons_is_error(self, llkb_root):
        """Test that invalid JSON fails and lesson health is skipped."""
        (llkb_root / "lessons.json").write_text("{not json", encoding="utf-8")

        result = check_health(llkb_root)

        assert result.status == "error"
        assert statuses(result)["lessons.json"] == "fail"
        assert "Lesson health" not in statuses(result)

    def test_wrong_shape_is_error(self, llkb_root):
        (llkb_root / "components.json").write_text('{"components": "nope"}', encoding="utf-8")

        assert statuses(check_health(llkb_root))["components.json"] == "fail"

    def test_missing_directory(self, tmp_path):
        result = check_health(tmp_path / "nowhere")

        assert result.status == "error"
        assert statuses(result)["Directory exists"] == "fail"

    def test_to_dict_and_format(self, llkb_root):
        result = check_health(llkb_root)

        assert result.to_dict()["checks"][0]["name"] == "Directory exists"
        assert format_health_check(result).startswith("LLKB Health Check: WARNING")


class TestStats:
    """Test statistics over the seeded store."""

    def test_counts(self, llkb_root):
        stats = get_stats(llkb_root)

        assert stats["lessons"] == {
            "total": 3,
            "active": 2,
            "archived": 1,
            "avgConfidence": 0.5,
            "avgSuccessRate": 0.7,
            "needsReview": 1,
        }
        assert stats["components"]["totalReuses"] == 5
        assert stats["components"]["avgReusesPerComponent"] == 2.5
        assert stats["history"]["historyFiles"] == 0

    def test_empty_directory(self, tmp_path):
        stats = get_stats(tmp_path)

        assert stats["lessons"]["total"] == 0
        assert stats["components"]["avgReusesPerComponent"] == 0.0
        assert stats["history"]["oldestFile"] is None

    def test_format(self, llkb_root):
        text = format_stats(get_stats(llkb_root))

        assert "Total: 3 (2 active, 1 archived)" in text


class TestPrune:
    """Test pruning history and archiving inactive items."""

    def test_history_and_analytics(self, llkb_root):
        """Test that old history files go and analytics is rebuilt."""
        old_day = date.today() - timedelta(days=400)
        old = llkb_root / "history" / f"{old_day:%Y-%m-%d}.jsonl"
        recent = llkb_root / "history" / f"{date.today():%Y-%m-%d}.jsonl"
        old.write_text("{}\n", encoding="utf-8")
        recent.write_text("{}\n", encoding="utf-8")

        result = prune(llkb_root, history_retention_days=365)

        assert result.history_files_deleted == 1
        assert not old.exists() and recent.exists()
        assert (llkb_root / "analytics.json").exists()
        assert result.errors == []

    def test_archive_inactive(self, llkb_root):
        """Test that lessons and components idle beyond the window are archived."""
        stale = (datetime.now(timezone.utc) - timedelta(days=200)).isoformat()
        set_lesson_metric(llkb_root, "L002", "lastSuccess", stale)
        components = json.loads((llkb_root / "components.json").read_text(encoding="utf-8"))
        components["components"][1]["metrics"]["lastUsed"] = stale
        (llkb_root / "components.json").write_text(json.dumps(components), encoding="utf-8")

        result = prune(llkb_root, archive_inactive_lessons=True, archive_inactive_components=True)

        assert (result.archived_lessons, result.archived_components) == (1, 1)
        store = KnowledgeStore(llkb_root)
        assert [lesson.id for lesson in store.load_lessons().lessons if lesson.archived] == ["L002", "L003"]
        assert store.load_analytics().overview.active_components == 1

    def test_archive_flags_off(self, llkb_root):
        stale = (datetime.now(timezone.utc) - timedelta(days=200)).isoformat()
        set_lesson_metric(llkb_root, "L001", "lastSuccess", stale)

        result = prune(llkb_root)

        assert result.archived_lessons == 0

    def test_missing_stores_reported(self, tmp_path):
        result = prune(tmp_path)

        assert result.errors == ["Failed to update analytics: lessons or components unavailable"]
        assert "Errors:" in format_prune_result(result)
        assert result.to_dict()["historyFilesDeleted"] == 0
