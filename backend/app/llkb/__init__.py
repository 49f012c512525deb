"""
LLKB - Lessons Learned Knowledge Base

Discovers an application's UI vocabulary from its source, synthesizes
test-step patterns from it, and keeps lesson and component confidence
current from real test outcomes.
"""

from .analytics import update_analytics
from .config import LLKBSettings, get_settings
from .discovery import run_discovery
from .health import check_health, get_stats, prune
from .learning import (
    handle_learning_event,
    record_component_used,
    record_lesson_applied,
    record_pattern_learned,
)
from .mining import mine_elements
from .pattern_generation import generate_patterns, merge_discovered_patterns
from .pipeline import PipelineOptions, run_full_discovery_pipeline
from .quality_controls import apply_all_quality_controls
from .similarity import calculate_similarity, find_similar_patterns, is_near_duplicate
from .storage import KnowledgeStore
from .template_generators import generate_all_patterns

__all__ = [
    "LLKBSettings",
    "get_settings",
    "KnowledgeStore",
    "run_discovery",
    "mine_elements",
    "generate_patterns",
    "generate_all_patterns",
    "merge_discovered_patterns",
    "apply_all_quality_controls",
    "calculate_similarity",
    "is_near_duplicate",
    "find_similar_patterns",
    "handle_learning_event",
    "record_pattern_learned",
    "record_component_used",
    "record_lesson_applied",
    "update_analytics",
    "check_health",
    "get_stats",
    "prune",
    "PipelineOptions",
    "run_full_discovery_pipeline",
]
