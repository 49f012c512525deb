"""
Unit tests for i18n, analytics and feature-flag mining.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.mining import ScannedFile
from llkb.specialty_mining import (
    I18N_PATTERN_CONFIDENCE,
    extract_feature_flags,
    extract_i18n_keys,
    find_locale_files,
    generate_analytics_patterns,
    generate_feature_flag_patterns,
    generate_i18n_patterns,
    mine_analytics_events,
    mine_feature_flags,
    mine_i18n_keys,
)


def scanned(content: str, name: str = "Component.tsx") -> ScannedFile:
    return ScannedFile(path=Path("/project/src") / name, content=content)


class TestI18nMining:
    """Test translation-key mining."""

    def test_library_and_keys(self, sample_project):
        """Test react-i18next detection and key extraction from the sample project."""
        result = mine_i18n_keys(sample_project)
        keys = {k.key: k for k in result.keys}

        assert result.library == "react-i18next"
        assert set(keys) == {"title", "save"}
        assert keys["save"].namespace == "common"
        assert keys["title"].default_value == "Users"

    def test_locale_files(self, sample_project):
        """Test that locale JSON files are listed."""
        files = find_locale_files(sample_project)

        assert len(files) == 1
        assert files[0].endswith("common.json")

    def test_unknown_library_without_signals(self):
        """Test that no detector match means an unknown library."""
        result = mine_i18n_keys("/nonexistent", files=[scanned("const x = 1;")])

        assert result.library == "unknown"
        assert result.keys == []

    def test_keys_deduplicated_per_file(self):
        """Test that a key used twice in one file is reported once."""
        keys = extract_i18n_keys([scanned("t('nav.home'); t('nav.home');")])

        assert [k.key for k in keys] == ["home"]

    def test_trans_component_and_vue(self):
        """Test <Trans i18nKey> and $t() forms."""
        keys = extract_i18n_keys([
            scanned('<Trans i18nKey="welcome.banner" />', "Banner.tsx"),
            scanned("{{ $t('cart.checkout') }}", "Cart.vue"),
        ])

        assert {k.key for k in keys} == {"banner", "checkout"}

    def test_generated_patterns(self, sample_project):
        """Test text/visibility assertions generated per key."""
        patterns = generate_i18n_patterns(mine_i18n_keys(sample_project))
        texts = {p.original_text for p in patterns}

        assert texts == {
            "verify Title text", "verify Title is visible",
            "verify Save text", "verify Save is visible",
        }
        assert all(p.action == "assert" for p in patterns)
        assert all(p.confidence == I18N_PATTERN_CONFIDENCE for p in patterns)
        title = next(p for p in patterns if p.original_text == "verify Title text")
        assert title.selector_hints[0].value == "Users"


class TestAnalyticsMining:
    """Test analytics-event mining."""

    def test_segment_event_with_properties(self, sample_project):
        """Test provider vote and event properties in the sample project."""
        result = mine_analytics_events(sample_project)

        assert result.provider == "segment"
        assert len(result.events) == 1
        event = result.events[0]
        assert event.name == "User Created"
        assert event.properties == ["plan", "source"]

    def test_ga4_and_mixpanel_events(self):
        """Test several provider call styles."""
        files = [
            scanned("gtag('event', 'purchase', { value: 10 });", "Checkout.tsx"),
            scanned("mixpanel.track('Signed Up');", "Signup.tsx"),
        ]

        result = mine_analytics_events("/nonexistent", files=files)

        assert {(e.provider, e.name) for e in result.events} == {("ga4", "purchase"), ("mixpanel", "Signed Up")}

    def test_generated_patterns(self):
        """Test tracked/trigger patterns per event."""
        result = mine_analytics_events("/nonexistent", files=[scanned("analytics.track('checkout_started');")])

        patterns = generate_analytics_patterns(result)

        assert {(p.original_text, p.action) for p in patterns} == {
            ("verify Checkout Started tracked", "assert"),
            ("trigger Checkout Started event", "click"),
        }


class TestFeatureFlagMining:
    """Test feature-flag mining."""

    def test_custom_flag(self, sample_project):
        """Test isFeatureEnabled() detection in the sample project."""
        result = mine_feature_flags(sample_project)

        assert result.provider == "custom"
        assert [f.name for f in result.flags] == ["newDashboard"]

    def test_launchdarkly_default_value(self):
        """Test that a LaunchDarkly variation default is captured."""
        flags = extract_feature_flags([scanned("const on = ldClient?.variation('beta-banner', true);")])

        assert flags[0].name == "beta-banner"
        assert flags[0].provider == "launchdarkly"
        assert flags[0].default_value is True

    def test_env_flags(self):
        """Test FEATURE_* environment flags."""
        flags = extract_feature_flags([scanned("if (import.meta.env.FEATURE_DARK_MODE) {}")])

        assert [f.name for f in flags] == ["DARK_MODE"]

    def test_generated_patterns(self, sample_project):
        """Test the three patterns generated per flag."""
        patterns = generate_feature_flag_patterns(mine_feature_flags(sample_project))

        assert [p.original_text for p in patterns] == [
            "ensure New Dashboard visible",
            "verify New Dashboard enabled",
            "test with New Dashboard disabled",
        ]
        assert patterns[2].action == "navigate"
