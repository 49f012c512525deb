"""
Pattern Generation - Turns an app profile into candidate patterns

Three template families are driven by the discovery profile:
- auth templates (only when auth was detected)
- navigation templates (always)
- per-UI-library templates (for each detected library with a template list)

Also owns the discovered-patterns document and the long-lived
learned-patterns store, which discovery results are merged into without
ever overwriting accumulated entries.
"""

import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import MAX_CONFIDENCE
from .models import (
    AppProfile,
    DiscoveredPattern,
    DiscoveredPatternsFile,
    DiscoveredPatternsMetadata,
    LearnedPatternsFile,
    PatternAction,
    PatternCategory,
    PatternLayer,
    SelectorHint,
    pattern_identity_key,
    utc_now,
)
from .storage import load_document, save_document

logger = logging.getLogger(__name__)

PATTERNS_FILENAME = "discovered-patterns.json"
LEARNED_PATTERNS_FILENAME = "learned-patterns.json"
PATTERNS_FILE_VERSION = "1.0"
PATTERNS_SOURCE = "discover-foundation:F12"

HIGH_CONFIDENCE_AUTH = 0.85
MEDIUM_CONFIDENCE_AUTH = 0.70
NAVIGATION_CONFIDENCE = 0.70
FRAMEWORK_HINT_CONFIDENCE = 0.60
MAX_UI_PATTERN_CONFIDENCE = 0.75


# ==================== Templates ====================

AUTH_PATTERN_TEMPLATES = [
    {"text": "click login button", "action": "click", "selector_key": "submitButton"},
    {"text": "click sign in button", "action": "click", "selector_key": "submitButton"},
    {"text": "enter username", "action": "fill", "selector_key": "usernameField"},
    {"text": "enter email", "action": "fill", "selector_key": "usernameField"},
    {"text": "enter password", "action": "fill", "selector_key": "passwordField"},
    {"text": "submit login form", "action": "click", "selector_key": "submitButton"},
    {"text": "click logout button", "action": "click"},
    {"text": "click sign out button", "action": "click"},
    {"text": "verify logged in", "action": "assert"},
    {"text": "verify logged out", "action": "assert"},
]

# Placeholders stay literal; they are filled by the consumer at match time
NAVIGATION_PATTERN_TEMPLATES = [
    {"text": "navigate to {route}", "action": "navigate"},
    {"text": "go to {route}", "action": "navigate"},
    {"text": "open {route} page", "action": "navigate"},
    {"text": "click {item} in navigation", "action": "click"},
    {"text": "click {item} in sidebar", "action": "click"},
    {"text": "click {item} in menu", "action": "click"},
    {"text": "return to home", "action": "navigate"},
    {"text": "go back", "action": "navigate"},
]

UI_LIBRARY_TEMPLATES: Dict[str, List[Dict[str, str]]] = {
    "mui": [
        {"text": "click MUI button", "action": "click", "component": "Button"},
        {"text": "open MUI dialog", "action": "click", "component": "Dialog"},
        {"text": "close MUI dialog", "action": "click", "component": "Dialog"},
        {"text": "select MUI option", "action": "click", "component": "Select"},
        {"text": "fill MUI text field", "action": "fill", "component": "TextField"},
        {"text": "open MUI menu", "action": "click", "component": "Menu"},
        {"text": "click MUI tab", "action": "click", "component": "Tabs"},
        {"text": "toggle MUI switch", "action": "click", "component": "Switch"},
        {"text": "check MUI checkbox", "action": "check", "component": "Checkbox"},
        {"text": "dismiss MUI snackbar", "action": "click", "component": "Snackbar"},
    ],
    "antd": [
        {"text": "click Ant button", "action": "click", "component": "Button"},
        {"text": "open Ant modal", "action": "click", "component": "Modal"},
        {"text": "close Ant modal", "action": "click", "component": "Modal"},
        {"text": "select Ant option", "action": "click", "component": "Select"},
        {"text": "fill Ant input", "action": "fill", "component": "Input"},
        {"text": "click Ant table row", "action": "click", "component": "Table"},
        {"text": "sort Ant table column", "action": "click", "component": "Table"},
        {"text": "dismiss Ant message", "action": "click", "component": "Message"},
    ],
    "chakra": [
        {"text": "click Chakra button", "action": "click", "component": "Button"},
        {"text": "open Chakra modal", "action": "click", "component": "Modal"},
        {"text": "close Chakra modal", "action": "click", "component": "Modal"},
        {"text": "fill Chakra input", "action": "fill", "component": "Input"},
        {"text": "dismiss Chakra toast", "action": "click", "component": "Toast"},
    ],
    "ag-grid": [
        {"text": "click AG Grid row", "action": "click", "component": "agGrid"},
        {"text": "select AG Grid row", "action": "click", "component": "agGrid"},
        {"text": "sort AG Grid column", "action": "click", "component": "agGrid"},
        {"text": "filter AG Grid column", "action": "fill", "component": "agGrid"},
        {"text": "expand AG Grid row", "action": "click", "component": "agGrid"},
        {"text": "collapse AG Grid row", "action": "click", "component": "agGrid"},
        {"text": "edit AG Grid cell", "action": "fill", "component": "agGrid"},
        {"text": "clear AG Grid filter", "action": "click", "component": "agGrid"},
    ],
}


# ==================== Pattern Construction ====================

def generate_pattern_id() -> str:
    """Opaque id with no shared counter: DP- plus 8 hex chars."""
    return f"DP-{uuid.uuid4().hex[:8]}"


def create_pattern(
    text: str,
    action: Union[PatternAction, str],
    confidence: float,
    category: Union[PatternCategory, str],
    selector_hints: Optional[List[SelectorHint]] = None,
    layer: Union[PatternLayer, str] = PatternLayer.APP_SPECIFIC,
    template_source: Optional[str] = None,
    entity_name: Optional[str] = None,
) -> DiscoveredPattern:
    return DiscoveredPattern(
        id=generate_pattern_id(),
        normalized_text=text.lower(),
        original_text=text,
        action=action,
        selector_hints=selector_hints or [],
        confidence=min(confidence, MAX_CONFIDENCE),
        layer=layer,
        category=PatternCategory(category).value,
        template_source=template_source,
        entity_name=entity_name,
    )


def _kebab(name: str) -> str:
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i > 0:
            out.append("-")
        out.append(ch.lower())
    return "".join(out)


def generate_auth_patterns(profile: AppProfile) -> List[DiscoveredPattern]:
    selectors = profile.auth.selectors or {}
    strategy = profile.selector_signals.primary_attribute
    patterns = []

    for template in AUTH_PATTERN_TEMPLATES:
        selector_value = selectors.get(template.get("selector_key", ""))
        hints = []
        if selector_value:
            hints.append(SelectorHint(strategy=strategy, value=selector_value,
                                      confidence=HIGH_CONFIDENCE_AUTH))
        patterns.append(create_pattern(
            template["text"],
            template["action"],
            HIGH_CONFIDENCE_AUTH if selector_value else MEDIUM_CONFIDENCE_AUTH,
            PatternCategory.AUTH,
            selector_hints=hints,
            template_source="auth",
        ))
    return patterns


def generate_navigation_patterns() -> List[DiscoveredPattern]:
    return [
        create_pattern(
            template["text"],
            template["action"],
            NAVIGATION_CONFIDENCE,
            PatternCategory.NAVIGATION,
            template_source="navigation",
        )
        for template in NAVIGATION_PATTERN_TEMPLATES
    ]


def generate_ui_library_patterns(library: str, library_confidence: float,
                                 primary_attribute: str = "data-testid") -> List[DiscoveredPattern]:
    patterns = []
    confidence = min(library_confidence, MAX_UI_PATTERN_CONFIDENCE)
    for template in UI_LIBRARY_TEMPLATES.get(library, []):
        hints = []
        if template.get("component"):
            hints.append(SelectorHint(strategy=primary_attribute, value=_kebab(template["component"]),
                                      confidence=FRAMEWORK_HINT_CONFIDENCE))
        patterns.append(create_pattern(
            template["text"],
            template["action"],
            confidence,
            PatternCategory.UI_INTERACTION,
            selector_hints=hints,
            layer=PatternLayer.FRAMEWORK,
        ))
    return patterns


def generate_patterns(profile: AppProfile) -> List[DiscoveredPattern]:
    """All profile-driven patterns: auth (if detected), navigation, UI libraries."""
    patterns: List[DiscoveredPattern] = []

    if profile.auth.detected:
        patterns.extend(generate_auth_patterns(profile))

    patterns.extend(generate_navigation_patterns())

    for library in profile.ui_libraries:
        if library.name in UI_LIBRARY_TEMPLATES:
            patterns.extend(generate_ui_library_patterns(
                library.name, library.confidence, profile.selector_signals.primary_attribute
            ))

    logger.debug(f"[PATTERNS] Generated {len(patterns)} profile patterns")
    return patterns


# ==================== Merge ====================

def merge_discovered_patterns(existing: List[DiscoveredPattern],
                              discovered: List[DiscoveredPattern]) -> List[DiscoveredPattern]:
    """
    Fold discovered patterns into an accumulated set.

    Existing entries are never replaced, whatever the discovered
    confidence. Only unseen identity keys are appended. Neither input
    list is modified.
    """
    known = {p.identity_key for p in existing}
    merged = list(existing)

    for pattern in discovered:
        key = pattern.identity_key
        if key in known:
            continue
        known.add(key)
        merged.append(pattern)

    return merged


# ==================== Discovered Patterns File ====================

def create_discovered_patterns_file(patterns: List[DiscoveredPattern], profile: AppProfile,
                                    duration_ms: Optional[int] = None) -> DiscoveredPatternsFile:
    by_category: Dict[str, int] = {}
    by_template: Dict[str, int] = {}
    for pattern in patterns:
        if pattern.category:
            by_category[pattern.category] = by_category.get(pattern.category, 0) + 1
        if pattern.template_source:
            by_template[pattern.template_source] = by_template.get(pattern.template_source, 0) + 1

    average = sum(p.confidence for p in patterns) / len(patterns) if patterns else 0.0

    return DiscoveredPatternsFile(
        version=PATTERNS_FILE_VERSION,
        generated_at=utc_now(),
        source=PATTERNS_SOURCE,
        patterns=patterns,
        metadata=DiscoveredPatternsMetadata(
            frameworks=[f.name for f in profile.frameworks],
            ui_libraries=[lib.name for lib in profile.ui_libraries],
            total_patterns=len(patterns),
            by_category=by_category,
            by_template=by_template,
            average_confidence=round(average, 2),
            discovery_duration=duration_ms,
        ),
    )


def save_discovered_patterns(patterns_file: DiscoveredPatternsFile, output_dir) -> Path:
    path = save_document(Path(output_dir) / PATTERNS_FILENAME, patterns_file)
    logger.info(f"[STORAGE] Saved {len(patterns_file.patterns)} patterns to {path}")
    return path


def load_discovered_patterns(llkb_dir) -> Optional[DiscoveredPatternsFile]:
    return load_document(Path(llkb_dir) / PATTERNS_FILENAME, DiscoveredPatternsFile)


# ==================== Learned Patterns ====================

def load_learned_patterns(llkb_dir) -> Optional[LearnedPatternsFile]:
    return load_document(Path(llkb_dir) / LEARNED_PATTERNS_FILENAME, LearnedPatternsFile)


def save_learned_patterns(learned: LearnedPatternsFile, llkb_dir) -> Path:
    learned.last_updated = utc_now()
    return save_document(Path(llkb_dir) / LEARNED_PATTERNS_FILENAME, learned)


def update_learned_patterns(llkb_dir, discovered: List[DiscoveredPattern]) -> LearnedPatternsFile:
    """Merge a discovery run into learned-patterns.json and save it."""
    learned = load_learned_patterns(llkb_dir) or LearnedPatternsFile()
    before = len(learned.patterns)
    learned.patterns = merge_discovered_patterns(learned.patterns, discovered)
    save_learned_patterns(learned, llkb_dir)
    logger.info(f"[STORAGE] Learned patterns: {before} -> {len(learned.patterns)}")
    return learned


def find_pattern(patterns: List[DiscoveredPattern], text: str, action: str) -> Optional[DiscoveredPattern]:
    """Exact identity lookup."""
    key = pattern_identity_key(text, action)
    for pattern in patterns:
        if pattern.identity_key == key:
            return pattern
    return None
