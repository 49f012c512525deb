"""
Discovery Pipeline - One batch run from project source to persisted patterns

    discovery -> profile templates        (strong)
              -> mining + element templates (medium)
              -> i18n                      (medium)
              -> analytics, feature flags  (weak)
    -> signal weighting -> quality controls -> cap -> persist

A failing step adds a warning and the run continues with whatever signal
is left. Only discovery and persistence failures count as errors.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import DEFAULT_CONFIDENCE_THRESHOLD, DEFAULT_MAX_AGE_DAYS, DEFAULT_MAX_PATTERNS
from .discovery import run_discovery, save_discovered_profile
from .mining import (
    MAX_FILES_TO_SCAN,
    MAX_SCAN_DEPTH,
    SOURCE_DIRECTORIES,
    mine_elements,
    scan_source_files,
)
from .models import AppProfile, DiscoveredPattern, DiscoveredPatternsFile, SignalStrength
from .pattern_generation import (
    create_discovered_patterns_file,
    generate_patterns,
    save_discovered_patterns,
    update_learned_patterns,
)
from .quality_controls import UsageStats, apply_all_quality_controls, apply_signal_weighting
from .specialty_mining import (
    generate_analytics_patterns,
    generate_feature_flag_patterns,
    generate_i18n_patterns,
    mine_analytics_events,
    mine_feature_flags,
    mine_i18n_keys,
)
from .template_generators import generate_all_patterns

logger = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    max_depth: int = MAX_SCAN_DEPTH
    max_files: int = MAX_FILES_TO_SCAN
    max_patterns: int = DEFAULT_MAX_PATTERNS
    max_age_days: int = DEFAULT_MAX_AGE_DAYS
    usage_stats: Optional[UsageStats] = None
    skip_mining_modules: bool = False
    output_dir: Optional[str] = None
    update_learned: bool = False


@dataclass
class PipelineResult:
    success: bool
    profile: Optional[AppProfile]
    patterns_file: Optional[DiscoveredPatternsFile]
    stats: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "profile": self.profile.to_json_dict() if self.profile else None,
            "patternsFile": self.patterns_file.to_json_dict() if self.patterns_file else None,
            "stats": self.stats,
            "warnings": self.warnings,
            "errors": self.errors,
        }


class _PatternCollector:
    """Accumulates patterns and remembers the signal strength of each id."""

    def __init__(self):
        self.patterns: List[DiscoveredPattern] = []
        self.strengths: Dict[str, str] = {}
        self.sources: Dict[str, int] = {
            "discovery": 0,
            "templates": 0,
            "i18n": 0,
            "analytics": 0,
            "featureFlags": 0,
        }

    def add(self, source: str, patterns: List[DiscoveredPattern], strength: SignalStrength):
        self.patterns.extend(patterns)
        self.sources[source] += len(patterns)
        for pattern in patterns:
            self.strengths[pattern.id] = strength.value


def run_full_discovery_pipeline(project_root, llkb_dir,
                                options: Optional[PipelineOptions] = None) -> PipelineResult:
    options = options or PipelineOptions()
    start = time.monotonic()
    warnings: List[str] = []
    errors: List[str] = []
    collected = _PatternCollector()
    mining_stats: Optional[Dict[str, int]] = None

    logger.info(f"[PIPELINE] Starting discovery for {project_root}")

    # Discovery
    profile: Optional[AppProfile] = None
    try:
        discovery = run_discovery(project_root)
        profile = discovery.profile
        warnings.extend(discovery.warnings)
        if not discovery.success:
            errors.extend(discovery.errors)
    except Exception as e:
        errors.append(f"Discovery failed: {e}")

    if profile is not None:
        try:
            collected.add("discovery", generate_patterns(profile), SignalStrength.STRONG)
        except Exception as e:
            warnings.append(f"Discovery pattern generation failed: {e}")

    # Structural mining
    try:
        mining = mine_elements(project_root, max_depth=options.max_depth, max_files=options.max_files)
        mining_stats = dict(mining.stats)
        generated = generate_all_patterns(mining.elements, max_patterns=options.max_patterns)
        collected.add("templates", generated.patterns, SignalStrength.MEDIUM)
    except Exception as e:
        warnings.append(f"Mining/template generation failed: {e}")

    # Specialty mining over one shared scan
    files = None
    if not options.skip_mining_modules:
        try:
            files = scan_source_files(project_root, SOURCE_DIRECTORIES,
                                      max_depth=options.max_depth, max_files=options.max_files)
        except Exception as e:
            warnings.append(f"Source scan for specialty mining failed: {e}")

    if files is not None:
        specialty = [
            ("i18n", lambda: generate_i18n_patterns(mine_i18n_keys(project_root, files)), SignalStrength.MEDIUM),
            ("analytics", lambda: generate_analytics_patterns(mine_analytics_events(project_root, files)),
             SignalStrength.WEAK),
            ("featureFlags", lambda: generate_feature_flag_patterns(mine_feature_flags(project_root, files)),
             SignalStrength.WEAK),
        ]
        for source, produce, strength in specialty:
            try:
                collected.add(source, produce(), strength)
            except Exception as e:
                warnings.append(f"{source} mining failed: {e}")

    weighted = apply_signal_weighting(collected.patterns, collected.strengths)
    total_before_qc = len(weighted)

    qc_result = None
    try:
        final, qc_result = apply_all_quality_controls(
            weighted,
            threshold=options.confidence_threshold,
            usage_stats=options.usage_stats,
            max_age_days=options.max_age_days,
        )
    except Exception as e:
        warnings.append(f"Quality controls failed, using unvalidated patterns: {e}")
        final = weighted

    final = sorted(final, key=lambda p: (-p.confidence, p.identity_key))
    if len(final) > options.max_patterns:
        warnings.append(f"Pattern count ({len(final)}) exceeded cap ({options.max_patterns}), "
                        f"truncated to top {options.max_patterns} by confidence")
        final = final[:options.max_patterns]

    output_dir = Path(options.output_dir or llkb_dir)
    patterns_file: Optional[DiscoveredPatternsFile] = None
    if profile is not None:
        try:
            duration_ms = int((time.monotonic() - start) * 1000)
            patterns_file = create_discovered_patterns_file(final, profile, duration_ms)
            save_discovered_patterns(patterns_file, output_dir)
            save_discovered_profile(profile, output_dir)
            if options.update_learned:
                update_learned_patterns(output_dir, final)
        except OSError as e:
            errors.append(f"Persistence failed: {e}")

    duration_ms = int((time.monotonic() - start) * 1000)
    stats = {
        "durationMs": duration_ms,
        "patternSources": collected.sources,
        "totalBeforeQC": total_before_qc,
        "totalAfterQC": len(final),
        "qualityControls": qc_result.to_dict() if qc_result else None,
        "mining": mining_stats,
    }

    logger.info(f"[PIPELINE] Finished in {duration_ms}ms: {total_before_qc} candidates, "
                f"{len(final)} kept, {len(warnings)} warnings, {len(errors)} errors")
    return PipelineResult(
        success=not errors,
        profile=profile,
        patterns_file=patterns_file,
        stats=stats,
        warnings=warnings,
        errors=errors,
    )
