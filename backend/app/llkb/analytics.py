"""
Analytics - Recomputes analytics.json from the lesson and component stores

The snapshot is derived entirely from the current stores and can be
thrown away and rebuilt at any time. If either store is unreadable
nothing is written.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .confidence import LOW_CONFIDENCE_THRESHOLD, days_between, detect_declining_confidence
from .models import (
    AnalyticsOverview,
    AnalyticsSnapshot,
    Component,
    ComponentStats,
    ComponentsFile,
    Lesson,
    LessonStats,
    LessonsFile,
    NeedsReview,
    PatternCategory,
    TopComponent,
    TopLesson,
    TopPerformers,
    parse_timestamp,
)
from .storage import KnowledgeStore

logger = logging.getLogger(__name__)

LESSON_CATEGORIES = [c.value for c in PatternCategory]
COMPONENT_CATEGORIES = [c for c in LESSON_CATEGORIES if c != PatternCategory.QUIRK.value]
SCOPES = [
    "universal",
    "framework:angular",
    "framework:react",
    "framework:vue",
    "framework:ag-grid",
    "app-specific",
]

TOP_PERFORMER_LIMIT = 5
LOW_USAGE_MAX_USES = 2
LOW_USAGE_MIN_AGE_DAYS = 30


def _active_lessons(lessons: LessonsFile) -> List[Lesson]:
    return [lesson for lesson in lessons.lessons if not lesson.archived]


def _active_components(components: ComponentsFile) -> List[Component]:
    return [c for c in components.components if not c.archived]


def _average(values: List[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


def calculate_overview(lessons: LessonsFile, components: ComponentsFile) -> AnalyticsOverview:
    active_lessons = _active_lessons(lessons)
    active_components = _active_components(components)
    flagged_lessons = len(lessons.lessons) - len(active_lessons)
    return AnalyticsOverview(
        total_lessons=len(lessons.lessons),
        active_lessons=len(active_lessons),
        archived_lessons=len(lessons.archived) + flagged_lessons,
        total_components=len(components.components),
        active_components=len(active_components),
        archived_components=len(components.components) - len(active_components),
    )


def calculate_lesson_stats(lessons: LessonsFile) -> LessonStats:
    active = _active_lessons(lessons)
    by_category = {category: 0 for category in LESSON_CATEGORIES}
    for lesson in active:
        if lesson.category in by_category:
            by_category[lesson.category] += 1
    return LessonStats(
        by_category=by_category,
        avg_confidence=_average([lesson.metrics.confidence for lesson in active]),
        avg_success_rate=_average([lesson.metrics.success_rate for lesson in active]),
    )


def calculate_component_stats(components: ComponentsFile) -> ComponentStats:
    active = _active_components(components)
    by_category = {category: 0 for category in COMPONENT_CATEGORIES}
    by_scope = {scope: 0 for scope in SCOPES}
    for component in active:
        if component.category in by_category:
            by_category[component.category] += 1
        if component.scope in by_scope:
            by_scope[component.scope] += 1

    total_reuses = sum(c.metrics.total_uses for c in active)
    return ComponentStats(
        by_category=by_category,
        by_scope=by_scope,
        total_reuses=total_reuses,
        avg_reuses_per_component=round(total_reuses / len(active), 2) if active else 0.0,
    )


def calculate_top_performers(lessons: LessonsFile, components: ComponentsFile) -> TopPerformers:
    top_lessons = sorted(
        (
            TopLesson(id=lesson.id, title=lesson.title,
                      score=round(lesson.metrics.success_rate * lesson.metrics.occurrences, 2))
            for lesson in _active_lessons(lessons)
        ),
        key=lambda item: -item.score,
    )
    top_components = sorted(
        (TopComponent(id=c.id, name=c.name, uses=c.metrics.total_uses) for c in _active_components(components)),
        key=lambda item: -item.uses,
    )
    return TopPerformers(
        lessons=top_lessons[:TOP_PERFORMER_LIMIT],
        components=top_components[:TOP_PERFORMER_LIMIT],
    )


def calculate_needs_review(lessons: LessonsFile, components: ComponentsFile,
                           now: Optional[datetime] = None) -> NeedsReview:
    now = now or datetime.now(timezone.utc)
    active_lessons = _active_lessons(lessons)

    low_usage = []
    for component in _active_components(components):
        extracted = parse_timestamp(component.source.extracted_at)
        if extracted is None:
            continue
        if component.metrics.total_uses < LOW_USAGE_MAX_USES and days_between(now, extracted) > LOW_USAGE_MIN_AGE_DAYS:
            low_usage.append(component.id)

    return NeedsReview(
        low_confidence_lessons=[
            lesson.id for lesson in active_lessons if lesson.metrics.confidence < LOW_CONFIDENCE_THRESHOLD
        ],
        low_usage_components=low_usage,
        declining_success_rate=[lesson.id for lesson in active_lessons if detect_declining_confidence(lesson)],
    )


def build_analytics(lessons: LessonsFile, components: ComponentsFile) -> AnalyticsSnapshot:
    return AnalyticsSnapshot(
        overview=calculate_overview(lessons, components),
        lesson_stats=calculate_lesson_stats(lessons),
        component_stats=calculate_component_stats(components),
        top_performers=calculate_top_performers(lessons, components),
        needs_review=calculate_needs_review(lessons, components),
    )


def update_analytics(llkb_root) -> Optional[AnalyticsSnapshot]:
    """Rebuild and save analytics.json; None (and no write) if a store is unreadable."""
    store = KnowledgeStore(llkb_root)
    lessons = store.load_lessons()
    components = store.load_components()
    if lessons is None or components is None:
        logger.warning(f"[ANALYTICS] Cannot update analytics in {llkb_root}: lessons or components unavailable")
        return None

    snapshot = build_analytics(lessons, components)
    store.save_analytics(snapshot)
    logger.info(f"[ANALYTICS] Updated: {snapshot.overview.active_lessons} active lessons, "
                f"{snapshot.overview.active_components} active components")
    return snapshot


def get_analytics_summary(llkb_root) -> str:
    analytics = KnowledgeStore(llkb_root).load_analytics()
    if analytics is None:
        return "Analytics not available"

    overview = analytics.overview
    review = analytics.needs_review
    review_count = (len(review.low_confidence_lessons) + len(review.low_usage_components)
                    + len(review.declining_success_rate))
    return "\n".join([
        f"LLKB Analytics ({analytics.last_updated})",
        "-" * 50,
        f"Lessons: {overview.active_lessons} active, {overview.archived_lessons} archived",
        f"  Avg Confidence: {analytics.lesson_stats.avg_confidence}",
        f"  Avg Success Rate: {analytics.lesson_stats.avg_success_rate}",
        f"Components: {overview.active_components} active, {overview.archived_components} archived",
        f"  Total Reuses: {analytics.component_stats.total_reuses}",
        f"  Avg Reuses/Component: {analytics.component_stats.avg_reuses_per_component}",
        f"Items Needing Review: {review_count}",
    ])
