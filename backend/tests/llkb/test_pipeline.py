"""
Integration tests for the full discovery pipeline.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.discovery import load_discovered_profile
from llkb.pattern_generation import LEARNED_PATTERNS_FILENAME, PATTERNS_FILENAME, load_discovered_patterns
from llkb.pipeline import PipelineOptions, run_full_discovery_pipeline
from llkb.quality_controls import PatternUsage, apply_all_quality_controls


class TestFullPipeline:
    """Run the pipeline over the sample project."""

    def test_success_and_sources(self, sample_project, tmp_path):
        """Test that every signal source contributes candidates."""
        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")

        assert result.success is True
        assert result.errors == []
        sources = result.stats["patternSources"]
        assert sources["discovery"] == 18
        assert sources["i18n"] == 4
        assert sources["analytics"] == 2
        assert sources["featureFlags"] == 3
        assert sources["templates"] > 0
        assert result.stats["mining"]["totalElements"] == 7

    def test_output_filtered_and_sorted(self, sample_project, tmp_path):
        """Test threshold filtering and the confidence-then-key ordering."""
        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")
        patterns = result.patterns_file.patterns

        assert patterns
        assert all(p.confidence >= 0.7 for p in patterns)
        keys = [(-p.confidence, p.identity_key) for p in patterns]
        assert keys == sorted(keys)
        assert len({p.identity_key for p in patterns}) == len(patterns)

    def test_react_mui_scenario(self, sample_project, tmp_path):
        """Test the profile and category mix for a React + MUI project without auth."""
        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")
        categories = {p.category for p in result.patterns_file.patterns}

        assert result.profile.selector_signals.primary_attribute == "data-testid"
        assert result.profile.auth.detected is False
        assert "auth" not in categories
        assert "navigation" in categories

    def test_weak_signals_kept_at_default_threshold(self, sample_project, tmp_path):
        """Test that weighting never drops analytics and feature-flag patterns below their own confidence."""
        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")
        by_text = {p.normalized_text: p.confidence for p in result.patterns_file.patterns}

        assert "verify save text" in by_text
        assert by_text["verify user created tracked"] == 0.7
        assert by_text["verify new dashboard enabled"] == 0.7

    def test_lower_threshold_keeps_weak_signals(self, sample_project, tmp_path):
        options = PipelineOptions(confidence_threshold=0.5)

        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb", options)
        texts = {p.normalized_text for p in result.patterns_file.patterns}

        assert "verify user created tracked" in texts

    def test_persisted_documents(self, sample_project, tmp_path):
        """Test that patterns and a redacted profile are written."""
        llkb_dir = tmp_path / "llkb"

        result = run_full_discovery_pipeline(sample_project, llkb_dir)

        saved = load_discovered_patterns(llkb_dir)
        assert len(saved.patterns) == result.stats["totalAfterQC"]
        assert "mui" in saved.metadata.ui_libraries
        assert load_discovered_profile(llkb_dir).project_root == "sample-app"
        assert not (llkb_dir / LEARNED_PATTERNS_FILENAME).exists()

    def test_update_learned(self, sample_project, tmp_path):
        llkb_dir = tmp_path / "llkb"

        run_full_discovery_pipeline(sample_project, llkb_dir, PipelineOptions(update_learned=True))

        learned = json.loads((llkb_dir / LEARNED_PATTERNS_FILENAME).read_text(encoding="utf-8"))
        assert len(learned["patterns"]) > 0

    def test_cap(self, sample_project, tmp_path):
        """Test that the final set is truncated with a warning."""
        result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb", PipelineOptions(max_patterns=5))

        assert len(result.patterns_file.patterns) == 5
        assert any("exceeded cap" in w for w in result.warnings)

    def test_skip_mining_modules(self, sample_project, tmp_path):
        result = run_full_discovery_pipeline(
            sample_project, tmp_path / "llkb", PipelineOptions(skip_mining_modules=True)
        )

        sources = result.stats["patternSources"]
        assert (sources["i18n"], sources["analytics"], sources["featureFlags"]) == (0, 0, 0)

    def test_missing_project(self, tmp_path):
        """Test that a missing project root fails without writing anything."""
        llkb_dir = tmp_path / "llkb"

        result = run_full_discovery_pipeline(tmp_path / "missing", llkb_dir)

        assert result.success is False
        assert result.patterns_file is None
        assert not (llkb_dir / PATTERNS_FILENAME).exists()

    def test_to_dict(self, sample_project, tmp_path):
        data = run_full_discovery_pipeline(sample_project, tmp_path / "llkb").to_dict()

        assert set(data) == {"success", "profile", "patternsFile", "stats", "warnings", "errors"}
        assert data["stats"]["qualityControls"]["outputCount"] == data["stats"]["totalAfterQC"]


class TestGracefulDegradation:
    """Test that a failing step becomes a warning and the run continues."""

    def test_miner_failure_is_warning(self, sample_project, tmp_path):
        with patch("llkb.pipeline.mine_i18n_keys", side_effect=RuntimeError("boom")):
            result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")

        assert result.success is True
        assert "i18n mining failed: boom" in result.warnings
        assert result.stats["patternSources"]["i18n"] == 0
        assert result.stats["patternSources"]["discovery"] == 18

    def test_structural_mining_failure(self, sample_project, tmp_path):
        with patch("llkb.pipeline.mine_elements", side_effect=OSError("disk gone")):
            result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")

        assert result.success is True
        assert result.stats["mining"] is None
        assert any(w.startswith("Mining/template generation failed") for w in result.warnings)

    def test_quality_control_failure_keeps_weighted(self, sample_project, tmp_path):
        with patch("llkb.pipeline.apply_all_quality_controls", side_effect=ValueError("bad")):
            result = run_full_discovery_pipeline(
                sample_project, tmp_path / "llkb", PipelineOptions(skip_mining_modules=True)
            )

        assert result.stats["qualityControls"] is None
        assert result.stats["totalAfterQC"] == result.stats["totalBeforeQC"]

    def test_persistence_failure_is_error(self, sample_project, tmp_path):
        with patch("llkb.pipeline.save_discovered_patterns", side_effect=OSError("read-only")):
            result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")

        assert result.success is False
        assert result.errors == ["Persistence failed: read-only"]

    def test_source_scan_failure_is_warning(self, sample_project, tmp_path):
        """Test that a failed shared scan skips only the specialty miners."""
        with patch("llkb.pipeline.scan_source_files", side_effect=RuntimeError("cannot resolve")):
            result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb")

        assert result.success is True
        assert "Source scan for specialty mining failed: cannot resolve" in result.warnings
        sources = result.stats["patternSources"]
        assert (sources["i18n"], sources["analytics"], sources["featureFlags"]) == (0, 0, 0)
        assert sources["discovery"] == 18
        assert result.stats["mining"]["totalElements"] == 7


class TestPruningOptions:
    """Test that pruning options reach the quality controls."""

    def test_max_age_and_usage_passed_through(self, sample_project, tmp_path):
        usage = {"DP-00000000": PatternUsage(last_used=datetime(2026, 1, 1, tzinfo=timezone.utc))}
        options = PipelineOptions(max_age_days=30, usage_stats=usage, skip_mining_modules=True)

        with patch("llkb.pipeline.apply_all_quality_controls", wraps=apply_all_quality_controls) as qc:
            result = run_full_discovery_pipeline(sample_project, tmp_path / "llkb", options)

        assert result.success is True
        assert qc.call_args.kwargs["max_age_days"] == 30
        assert qc.call_args.kwargs["usage_stats"] is usage
