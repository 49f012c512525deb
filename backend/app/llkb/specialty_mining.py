"""
Specialty Miners

Scanners for cross-cutting application signals that make good assertion
targets: translation keys, analytics events and feature flags. Each one
detects the library/provider in use by a per-file vote, extracts the
references, and can turn them into candidate patterns.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .mining import (
    SOURCE_DIRECTORIES,
    ScannedFile,
    field_name_to_label,
    iter_matches,
    scan_source_files,
)
from .models import DiscoveredPattern, PatternAction, PatternCategory, SelectorHint
from .pattern_generation import create_pattern

logger = logging.getLogger(__name__)

I18N_PATTERN_CONFIDENCE = 0.75
ANALYTICS_PATTERN_CONFIDENCE = 0.70
FEATURE_FLAG_PATTERN_CONFIDENCE = 0.70

STATIC_TEMPLATE_SOURCE = "static"

LOCALE_DIRECTORIES = ["locales", "i18n", "translations", "lang", "public/locales"]
MAX_LOCALE_DEPTH = 5


def _vote(files: List[ScannedFile], detectors: Dict[str, re.Pattern]) -> str:
    """Name whose detector matches the most files; 'unknown' when none match."""
    scores = {name: 0 for name in detectors}
    for scanned in files:
        for name, pattern in detectors.items():
            if pattern.search(scanned.content):
                scores[name] += 1

    best, best_score = "unknown", 0
    for name, score in scores.items():
        if score > best_score:
            best, best_score = name, score
    return best


def _first_group(match: re.Match) -> Optional[str]:
    for value in match.groups():
        if value:
            return value
    return None


# ==================== i18n ====================

I18N_LIBRARY_PATTERNS: Dict[str, re.Pattern] = {
    "react-i18next": re.compile(r"""(?:import|from)\s+['"]react-i18next['"]|useTranslation\("""),
    "angular-translate": re.compile(r"\$translate\.get\(|translate\s+filter|\|\s*translate"),
    "vue-i18n": re.compile(r"""(?:import|from)\s+['"]vue-i18n['"]|createI18n\(|\$t\("""),
    "next-intl": re.compile(r"""(?:import|from)\s+['"]next-intl['"]|useTranslations\("""),
}

# react-i18next is listed first; its second group is a defaultValue, not a key
REACT_I18NEXT_KEY = re.compile(
    r"""\bt\s*\(\s*['"`]([^'"`]+)['"`]\s*(?:,\s*\{[^}]*defaultValue\s*:\s*['"`]([^'"`]+)['"`][^}]*\})?\)"""
)
I18N_KEY_PATTERNS: List[re.Pattern] = [
    re.compile(r"""<Trans\s+i18nKey\s*=\s*['"`]([^'"`]+)['"`]"""),
    re.compile(
        r"""(?:\{\{\s*['"`]([^'"`]+)['"`]\s*\|\s*translate\s*\}\}|\$translate\.get\s*\(\s*['"`]([^'"`]+)['"`]\))"""
    ),
    re.compile(r"""\$t\s*\(\s*['"`]([^'"`]+)['"`]\)|(?:^|[^\w])t\s*\(\s*['"`]([^'"`]+)['"`]\)"""),
    re.compile(r"""\bt\s*\(\s*['"`]([^'"`]+)['"`]\)"""),
]


@dataclass
class I18nKey:
    key: str
    source: str
    namespace: Optional[str] = None
    default_value: Optional[str] = None


@dataclass
class I18nMiningResult:
    library: str
    keys: List[I18nKey] = field(default_factory=list)
    locale_files: List[str] = field(default_factory=list)


def _split_i18n_key(raw: str):
    """'common:save' -> ('common', 'save'); 'login.title' -> (None, 'title')."""
    if ":" in raw:
        parts = raw.split(":")
        if len(parts) == 2:
            return parts[0], parts[1]
        return None, raw
    if "." in raw:
        return None, raw.split(".")[-1]
    return None, raw


def extract_i18n_keys(files: List[ScannedFile]) -> List[I18nKey]:
    keys: List[I18nKey] = []
    seen = set()

    for scanned in files:
        source = str(scanned.path)

        def add(raw_key: Optional[str], default_value: Optional[str] = None):
            if not raw_key or (raw_key, source) in seen:
                return
            seen.add((raw_key, source))
            namespace, key = _split_i18n_key(raw_key)
            keys.append(I18nKey(key=key, source=source, namespace=namespace, default_value=default_value))

        for match in iter_matches(REACT_I18NEXT_KEY, scanned.content):
            add(match.group(1), match.group(2))
        for pattern in I18N_KEY_PATTERNS:
            for match in iter_matches(pattern, scanned.content):
                add(_first_group(match))

    return keys


def find_locale_files(project_root) -> List[str]:
    root = Path(project_root)
    found: List[str] = []

    def walk(directory: Path, depth: int):
        if depth > MAX_LOCALE_DEPTH:
            return
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError:
            return
        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_dir():
                walk(entry, depth + 1)
            elif entry.is_file() and entry.suffix == ".json":
                found.append(str(entry))

    for name in LOCALE_DIRECTORIES:
        directory = root / name
        if directory.is_dir() and not directory.is_symlink():
            walk(directory, 0)
    return found


def mine_i18n_keys(project_root, files: Optional[List[ScannedFile]] = None) -> I18nMiningResult:
    if files is None:
        files = scan_source_files(project_root, SOURCE_DIRECTORIES)
    return I18nMiningResult(
        library=_vote(files, I18N_LIBRARY_PATTERNS),
        keys=extract_i18n_keys(files),
        locale_files=find_locale_files(project_root),
    )


def generate_i18n_patterns(result: I18nMiningResult) -> List[DiscoveredPattern]:
    patterns: List[DiscoveredPattern] = []
    seen = set()
    for i18n_key in result.keys:
        label = field_name_to_label(i18n_key.key)
        hint_value = i18n_key.default_value or i18n_key.key
        for text in (f"verify {label} text", f"verify {label} is visible"):
            if text in seen:
                continue
            seen.add(text)
            patterns.append(create_pattern(
                text,
                PatternAction.ASSERT,
                I18N_PATTERN_CONFIDENCE,
                PatternCategory.ASSERTION,
                selector_hints=[SelectorHint(strategy="text", value=hint_value,
                                             confidence=I18N_PATTERN_CONFIDENCE)],
                template_source=STATIC_TEMPLATE_SOURCE,
            ))
    return patterns


# ==================== Analytics ====================

ANALYTICS_PROVIDER_PATTERNS: Dict[str, re.Pattern] = {
    "ga4": re.compile(r"""gtag\s*\(\s*['"]event['"]|ReactGA\.event\(|window\.gtag\("""),
    "mixpanel": re.compile(r"""mixpanel\.track\(|import.*mixpanel|from\s+['"]mixpanel['"]"""),
    "segment": re.compile(r"analytics\.track\(|window\.analytics\.track\(|import.*@segment"),
    "amplitude": re.compile(r"amplitude\.logEvent\(|import.*@amplitude|Amplitude\.getInstance\(\)"),
    "custom": re.compile(r"(?:trackEvent|logEvent|sendEvent)\s*\("),
}

# (provider, extractor)
ANALYTICS_EVENT_PATTERNS = [
    ("ga4", re.compile(r"""gtag\s*\(\s*['"]event['"]\s*,\s*['"]([^'"]+)['"]""")),
    ("ga4", re.compile(r"""ReactGA\.event\s*\(\s*\{[^}]*action\s*:\s*['"]([^'"]+)['"]""")),
    ("mixpanel", re.compile(r"""mixpanel\.track\s*\(\s*['"]([^'"]+)['"]""")),
    ("segment", re.compile(r"""analytics\.track\s*\(\s*['"]([^'"]+)['"]""")),
    ("amplitude", re.compile(r"""amplitude\.logEvent\s*\(\s*['"]([^'"]+)['"]""")),
    ("custom", re.compile(r"""(?:trackEvent|logEvent|sendEvent)\s*\(\s*['"]([^'"]+)['"]""")),
]

EVENT_PROPERTIES = re.compile(r"\{\s*([^}]+)\s*\}")
PROPERTY_NAME = re.compile(r"(\w+)\s*:")
PROPERTY_WINDOW = 200


@dataclass
class AnalyticsEvent:
    name: str
    provider: str
    source: str
    properties: List[str] = field(default_factory=list)


@dataclass
class AnalyticsMiningResult:
    provider: str
    events: List[AnalyticsEvent] = field(default_factory=list)


def _event_properties(content: str, start: int) -> List[str]:
    snippet = content[start:start + PROPERTY_WINDOW]
    literal = EVENT_PROPERTIES.search(snippet)
    if not literal:
        return []
    return [m.group(1) for m in iter_matches(PROPERTY_NAME, literal.group(1))]


def extract_analytics_events(files: List[ScannedFile]) -> List[AnalyticsEvent]:
    events: List[AnalyticsEvent] = []
    seen = set()
    for scanned in files:
        source = str(scanned.path)
        for provider, pattern in ANALYTICS_EVENT_PATTERNS:
            for match in iter_matches(pattern, scanned.content):
                name = match.group(1)
                if not name or (name, source) in seen:
                    continue
                seen.add((name, source))
                events.append(AnalyticsEvent(
                    name=name,
                    provider=provider,
                    source=source,
                    properties=_event_properties(scanned.content, match.start()),
                ))
    return events


def mine_analytics_events(project_root, files: Optional[List[ScannedFile]] = None) -> AnalyticsMiningResult:
    if files is None:
        files = scan_source_files(project_root, SOURCE_DIRECTORIES)
    return AnalyticsMiningResult(
        provider=_vote(files, ANALYTICS_PROVIDER_PATTERNS),
        events=extract_analytics_events(files),
    )


def generate_analytics_patterns(result: AnalyticsMiningResult) -> List[DiscoveredPattern]:
    patterns: List[DiscoveredPattern] = []
    seen = set()
    for event in result.events:
        label = field_name_to_label(event.name)
        candidates = [
            (f"verify {label} tracked", PatternAction.ASSERT, PatternCategory.ASSERTION),
            (f"trigger {label} event", PatternAction.CLICK, PatternCategory.UI_INTERACTION),
        ]
        for text, action, category in candidates:
            if (text, action) in seen:
                continue
            seen.add((text, action))
            patterns.append(create_pattern(
                text, action, ANALYTICS_PATTERN_CONFIDENCE, category,
                template_source=STATIC_TEMPLATE_SOURCE,
            ))
    return patterns


# ==================== Feature Flags ====================

FEATURE_FLAG_PROVIDER_PATTERNS: Dict[str, re.Pattern] = {
    "launchdarkly": re.compile(
        r"""useFlags\s*\(|ldClient\.variation\(|useLDClient\(|import.*launchdarkly|from\s+['"]launchdarkly['"]"""
    ),
    "split": re.compile(r"""splitClient\.getTreatment\(|import.*@splitsoftware|from\s+['"]@splitsoftware['"]"""),
    "flagsmith": re.compile(
        r"""flagsmith\.hasFeature\(|flagsmith\.getValue\(|import.*flagsmith|from\s+['"]flagsmith['"]"""
    ),
    "unleash": re.compile(r"""useFlag\s*\(|unleash\.isEnabled\(|import.*unleash-proxy|from\s+['"]unleash-proxy['"]"""),
    "custom": re.compile(r"(?:featureFlags|isFeatureEnabled)\s*[.(]"),
}

LAUNCHDARKLY_VARIATION = re.compile(
    r"""ldClient\?\.variation\s*\(\s*['"]([^'"]+)['"]\s*(?:,\s*(true|false))?\)"""
)
FEATURE_FLAG_PATTERNS = [
    ("launchdarkly", re.compile(r"""flags\[['"]([^'"]+)['"]\]""")),
    ("split", re.compile(r"""getTreatment\s*\(\s*['"]([^'"]+)['"]""")),
    ("flagsmith", re.compile(r"""(?:hasFeature|getValue)\s*\(\s*['"]([^'"]+)['"]""")),
    ("unleash", re.compile(r"""(?:useFlag|isEnabled)\s*\(\s*['"]([^'"]+)['"]""")),
    ("custom", re.compile(r"""(?:featureFlags|features)\.(?:isEnabled|enabled|has)\s*\(\s*['"]([^'"]+)['"]""")),
    ("custom", re.compile(r"""isFeatureEnabled\s*\(\s*['"]([^'"]+)['"]""")),
    ("custom", re.compile(r"(?:process\.env|import\.meta\.env)\.FEATURE_(\w+)")),
]


@dataclass
class FeatureFlag:
    name: str
    provider: str
    source: str
    default_value: Optional[bool] = None


@dataclass
class FeatureFlagMiningResult:
    provider: str
    flags: List[FeatureFlag] = field(default_factory=list)


def extract_feature_flags(files: List[ScannedFile]) -> List[FeatureFlag]:
    flags: List[FeatureFlag] = []
    seen = set()
    for scanned in files:
        source = str(scanned.path)

        def add(name: Optional[str], provider: str, default_value: Optional[bool] = None):
            if not name or (name, source) in seen:
                return
            seen.add((name, source))
            flags.append(FeatureFlag(name=name, provider=provider, source=source, default_value=default_value))

        for match in iter_matches(LAUNCHDARKLY_VARIATION, scanned.content):
            default = None if match.group(2) is None else match.group(2) == "true"
            add(match.group(1), "launchdarkly", default)
        for provider, pattern in FEATURE_FLAG_PATTERNS:
            for match in iter_matches(pattern, scanned.content):
                add(match.group(1), provider)
    return flags


def mine_feature_flags(project_root, files: Optional[List[ScannedFile]] = None) -> FeatureFlagMiningResult:
    if files is None:
        files = scan_source_files(project_root, SOURCE_DIRECTORIES)
    return FeatureFlagMiningResult(
        provider=_vote(files, FEATURE_FLAG_PROVIDER_PATTERNS),
        flags=extract_feature_flags(files),
    )


def generate_feature_flag_patterns(result: FeatureFlagMiningResult) -> List[DiscoveredPattern]:
    patterns: List[DiscoveredPattern] = []
    seen = set()
    for flag in result.flags:
        label = field_name_to_label(flag.name)
        candidates = [
            (f"ensure {label} visible", PatternAction.ASSERT, PatternCategory.ASSERTION),
            (f"verify {label} enabled", PatternAction.ASSERT, PatternCategory.ASSERTION),
            (f"test with {label} disabled", PatternAction.NAVIGATE, PatternCategory.NAVIGATION),
        ]
        for text, action, category in candidates:
            if (text, action) in seen:
                continue
            seen.add((text, action))
            patterns.append(create_pattern(
                text, action, FEATURE_FLAG_PATTERN_CONFIDENCE, category,
                template_source=STATIC_TEMPLATE_SOURCE,
            ))
    return patterns
