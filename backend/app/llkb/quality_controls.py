"""
Quality Controls - Curates candidate patterns before they are persisted

Stages run in a fixed order: cross-source boost, dedup, confidence
threshold, usage pruning. Boosting has to see the raw duplicates before
dedup collapses them, and pruning works on the already filtered set.

Signal weighting is a separate stage the caller runs beforehand when it
knows how strong each pattern's source was.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from .config import DEFAULT_CONFIDENCE_THRESHOLD, DEFAULT_MAX_AGE_DAYS, MAX_CONFIDENCE
from .models import DiscoveredPattern, SelectorHint, SignalStrength

logger = logging.getLogger(__name__)

CROSS_SOURCE_BOOST = 0.10

SIGNAL_CONFIDENCES = {
    SignalStrength.STRONG.value: 0.85,
    SignalStrength.MEDIUM.value: 0.75,
    SignalStrength.WEAK.value: 0.60,
}


@dataclass
class PatternUsage:
    """Caller-supplied usage record for one pattern id"""
    last_used: datetime
    use_count: int = 0


# pattern id -> usage
UsageStats = Dict[str, PatternUsage]


@dataclass
class QualityControlResult:
    input_count: int
    output_count: int
    deduplicated: int
    threshold_filtered: int
    cross_source_boosted: int
    pruned: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "inputCount": self.input_count,
            "outputCount": self.output_count,
            "deduplicated": self.deduplicated,
            "thresholdFiltered": self.threshold_filtered,
            "crossSourceBoosted": self.cross_source_boosted,
            "pruned": self.pruned,
        }


def _group_by_identity(patterns: List[DiscoveredPattern]) -> Dict[str, List[DiscoveredPattern]]:
    groups: Dict[str, List[DiscoveredPattern]] = {}
    for pattern in patterns:
        groups.setdefault(pattern.identity_key, []).append(pattern)
    return groups


def merge_selector_hints(first: List[SelectorHint], second: List[SelectorHint]) -> List[SelectorHint]:
    """Union keyed by strategy:value; the higher-confidence duplicate wins."""
    merged: Dict[str, SelectorHint] = {}
    for hint in list(first) + list(second):
        key = f"{hint.strategy}:{hint.value}"
        current = merged.get(key)
        if current is None:
            merged[key] = hint
        elif hint.confidence is not None and (current.confidence is None or hint.confidence > current.confidence):
            merged[key] = hint
    return list(merged.values())


def deduplicate_patterns(patterns: List[DiscoveredPattern]) -> List[DiscoveredPattern]:
    """
    Collapse each identity group into one pattern.

    The first occurrence supplies id, text and attribution; confidence is
    the group max, hints and journeys are unions, counts are summed.
    """
    seen: Dict[str, DiscoveredPattern] = {}

    for pattern in patterns:
        key = pattern.identity_key
        existing = seen.get(key)
        if existing is None:
            seen[key] = pattern.model_copy(deep=True)
            continue

        journeys = list(dict.fromkeys(existing.source_journeys + pattern.source_journeys))
        seen[key] = existing.model_copy(update={
            "confidence": max(existing.confidence, pattern.confidence),
            "success_count": existing.success_count + pattern.success_count,
            "fail_count": existing.fail_count + pattern.fail_count,
            "source_journeys": journeys,
            "selector_hints": merge_selector_hints(existing.selector_hints, pattern.selector_hints),
        })

    return list(seen.values())


def apply_confidence_threshold(patterns: List[DiscoveredPattern],
                               threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> List[DiscoveredPattern]:
    return [p for p in patterns if p.confidence >= threshold]


def _independent_sources(group: List[DiscoveredPattern]) -> int:
    template_sources = {p.template_source for p in group if p.template_source}
    entity_names = {p.entity_name for p in group if p.entity_name}
    journeys = {j for p in group for j in p.source_journeys}
    return max(len(template_sources), len(entity_names), len(journeys))


def boost_cross_source_patterns(patterns: List[DiscoveredPattern]) -> List[DiscoveredPattern]:
    """+0.10 to every member of a group produced by two or more distinguishable sources."""
    boosted: List[DiscoveredPattern] = []

    for group in _group_by_identity(patterns).values():
        if len(group) > 1 and _independent_sources(group) >= 2:
            for pattern in group:
                boosted.append(pattern.model_copy(update={
                    "confidence": min(pattern.confidence + CROSS_SOURCE_BOOST, MAX_CONFIDENCE),
                }))
        else:
            boosted.extend(p.model_copy() for p in group)

    return boosted


def prune_unused_patterns(patterns: List[DiscoveredPattern], usage_stats: UsageStats,
                          max_age_days: int = DEFAULT_MAX_AGE_DAYS,
                          now: Optional[datetime] = None) -> List[DiscoveredPattern]:
    """
    Drop patterns that were tried, have a usage entry, and went unused for
    longer than max_age_days. Anything else is kept.
    """
    now = now or datetime.now(timezone.utc)
    max_age = timedelta(days=max_age_days)
    kept = []

    for pattern in patterns:
        if pattern.success_count + pattern.fail_count == 0:
            kept.append(pattern)
            continue
        usage = usage_stats.get(pattern.id)
        if usage is None:
            kept.append(pattern)
            continue
        last_used = usage.last_used
        if last_used.tzinfo is None:
            last_used = last_used.replace(tzinfo=timezone.utc)
        if now - last_used <= max_age:
            kept.append(pattern)

    return kept


def apply_signal_weighting(patterns: List[DiscoveredPattern],
                           signal_strengths: Dict[str, str]) -> List[DiscoveredPattern]:
    """
    Raise confidence to the baseline of its declared source strength.
    A pattern already above its baseline keeps its confidence; unclassified
    patterns are unchanged.
    """
    weighted = []
    for pattern in patterns:
        strength = signal_strengths.get(pattern.id)
        strength = getattr(strength, "value", strength)
        if strength not in SIGNAL_CONFIDENCES:
            weighted.append(pattern.model_copy())
            continue
        weighted.append(pattern.model_copy(update={
            "confidence": min(max(pattern.confidence, SIGNAL_CONFIDENCES[strength]), MAX_CONFIDENCE),
        }))
    return weighted


def apply_all_quality_controls(
    patterns: List[DiscoveredPattern],
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    usage_stats: Optional[UsageStats] = None,
    max_age_days: int = DEFAULT_MAX_AGE_DAYS,
) -> Tuple[List[DiscoveredPattern], QualityControlResult]:
    """Boost, dedup, threshold, prune; returns survivors and per-stage counts."""
    input_count = len(patterns)

    before_by_id = {p.id: p.confidence for p in patterns}
    after_boost = boost_cross_source_patterns(patterns)
    boosted_count = sum(
        1 for p in after_boost if p.id in before_by_id and p.confidence > before_by_id[p.id]
    )

    after_dedup = deduplicate_patterns(after_boost)
    after_threshold = apply_confidence_threshold(after_dedup, threshold)

    after_prune = after_threshold
    if usage_stats is not None:
        after_prune = prune_unused_patterns(after_threshold, usage_stats, max_age_days)

    result = QualityControlResult(
        input_count=input_count,
        output_count=len(after_prune),
        deduplicated=len(after_boost) - len(after_dedup),
        threshold_filtered=len(after_dedup) - len(after_threshold),
        cross_source_boosted=boosted_count,
        pruned=len(after_threshold) - len(after_prune),
    )
    logger.info(f"[QC] {input_count} -> {result.output_count} patterns "
                f"(boosted {boosted_count}, dedup {result.deduplicated}, "
                f"threshold {result.threshold_filtered}, pruned {result.pruned})")
    return after_prune, result
