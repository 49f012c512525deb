"""
Tests for the llkb_cli command-line script.
"""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "scripts"))

import llkb_cli
from llkb.config import reset_settings


def run_cli(*argv):
    with pytest.raises(SystemExit) as exc_info:
        llkb_cli.main(list(argv))
    return exc_info.value.code


class TestParser:
    """Test argument parsing."""

    def test_learn_requires_outcome(self):
        with pytest.raises(SystemExit):
            llkb_cli.build_parser().parse_args(["learn", "--type", "lesson", "--journey", "J1"])

    def test_failure_flag(self):
        args = llkb_cli.build_parser().parse_args(["learn", "--type", "lesson", "--journey", "J1", "--failure"])

        assert args.success is False


class TestCommands:
    """Test command exit codes and output."""

    def test_health_warning_exits_zero(self, llkb_root, capsys):
        assert run_cli("--llkb-dir", str(llkb_root), "health") == 0
        assert "LLKB Health Check: WARNING" in capsys.readouterr().out

    def test_health_error_exits_one(self, tmp_path):
        assert run_cli("--llkb-dir", str(tmp_path / "missing"), "health") == 1

    def test_stats_json(self, llkb_root, capsys):
        assert run_cli("--llkb-dir", str(llkb_root), "--json", "stats") == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["components"]["totalReuses"] == 5

    def test_learn_lesson(self, llkb_root, capsys):
        code = run_cli("--llkb-dir", str(llkb_root), "learn", "--type", "lesson",
                       "--journey", "JRN-001", "--id", "L001", "--success")

        assert code == 0
        assert "Entity: L001" in capsys.readouterr().out

    def test_learn_unknown_component(self, llkb_root):
        code = run_cli("--llkb-dir", str(llkb_root), "learn", "--type", "component",
                       "--journey", "JRN-001", "--id", "C999", "--failure")

        assert code == 1

    def test_discover(self, sample_project, tmp_path, capsys):
        code = run_cli("--llkb-dir", str(tmp_path / "llkb"), "discover", str(sample_project), "--skip-mining")

        assert code == 0
        assert "Discovery completed" in capsys.readouterr().out
        assert (tmp_path / "llkb" / "discovered-patterns.json").exists()

    def test_analytics_refresh(self, llkb_root, capsys):
        assert run_cli("--llkb-dir", str(llkb_root), "analytics", "--refresh") == 0
        assert "Lessons: 2 active, 1 archived" in capsys.readouterr().out

    def test_prune_missing_stores_exits_one(self, tmp_path):
        assert run_cli("--llkb-dir", str(tmp_path), "prune") == 1

    def test_discover_uses_max_age_setting(self, sample_project, tmp_path, monkeypatch):
        """Test that LLKB_MAX_AGE_DAYS becomes the pruning window for discovery."""
        monkeypatch.setenv("LLKB_MAX_AGE_DAYS", "45")
        reset_settings()
        try:
            with patch("llkb_cli.run_full_discovery_pipeline",
                       wraps=llkb_cli.run_full_discovery_pipeline) as pipeline:
                code = run_cli("--llkb-dir", str(tmp_path / "llkb"), "discover", str(sample_project),
                               "--skip-mining")
        finally:
            reset_settings()

        assert code == 0
        assert pipeline.call_args.args[2].max_age_days == 45
