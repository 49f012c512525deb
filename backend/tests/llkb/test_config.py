"""
Unit tests for environment-driven settings.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.config import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_LLKB_ROOT,
    DEFAULT_MAX_AGE_DAYS,
    DEFAULT_MAX_PATTERNS,
    get_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    reset_settings()
    yield
    reset_settings()


class TestSettings:
    """Test LLKBSettings loading."""

    def test_defaults(self, monkeypatch):
        """Test that every setting has a default."""
        for name in ("LLKB_ROOT", "LLKB_CONFIDENCE_THRESHOLD", "LLKB_MAX_PATTERNS", "LLKB_MAX_AGE_DAYS",
                     "LLKB_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings()

        assert settings.root == Path(DEFAULT_LLKB_ROOT)
        assert settings.confidence_threshold == DEFAULT_CONFIDENCE_THRESHOLD
        assert settings.max_patterns == DEFAULT_MAX_PATTERNS
        assert settings.max_age_days == DEFAULT_MAX_AGE_DAYS
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("LLKB_ROOT", str(tmp_path))
        monkeypatch.setenv("LLKB_CONFIDENCE_THRESHOLD", "0.8")
        monkeypatch.setenv("LLKB_MAX_PATTERNS", "50")
        monkeypatch.setenv("LLKB_MAX_AGE_DAYS", "30")
        monkeypatch.setenv("LLKB_LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.root == tmp_path
        assert settings.confidence_threshold == 0.8
        assert settings.max_patterns == 50
        assert settings.max_age_days == 30
        assert settings.log_level == "DEBUG"

    def test_invalid_number_falls_back(self, monkeypatch):
        """Test that a malformed numeric value uses the default."""
        monkeypatch.setenv("LLKB_MAX_PATTERNS", "lots")

        assert get_settings().max_patterns == DEFAULT_MAX_PATTERNS

    def test_settings_cached_until_reset(self, monkeypatch):
        """Test that settings are read once and re-read after reset."""
        monkeypatch.setenv("LLKB_MAX_PATTERNS", "10")
        first = get_settings()
        monkeypatch.setenv("LLKB_MAX_PATTERNS", "20")

        assert get_settings() is first
        reset_settings()
        assert get_settings().max_patterns == 20
