"""
Learning Loop - Records real test outcomes back into the knowledge base

Every recorder is one read-modify-write cycle: load the store fresh,
find the target, update its metrics, save the whole document, then
append a history line. A missing or archived target produces a failed
LearningResult and nothing is written.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .confidence import calculate_confidence, update_confidence_history
from .history import append_to_history
from .models import Component, HistoryEvent, Lesson, utc_now
from .storage import KnowledgeStore

logger = logging.getLogger(__name__)

LEARNING_TYPES = ("pattern", "component", "lesson")
DEFAULT_PROMPT = "journey-verify"


@dataclass
class LearningResult:
    success: bool
    error: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
    entity_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "metrics": self.metrics,
            "entityId": self.entity_id,
        }


def calculate_new_success_rate(current_rate: float, current_count: int, succeeded: bool) -> float:
    """Incremental weighted average, rounded to 2 decimals."""
    successes = current_rate * current_count + (1 if succeeded else 0)
    return round(successes / (current_count + 1), 2)


def _add_journey(journey_ids: List[str], journey_id: Optional[str]):
    if journey_id and journey_id not in journey_ids:
        journey_ids.append(journey_id)


def _apply_lesson_outcome(lesson: Lesson, journey_id: Optional[str], succeeded: bool) -> Dict[str, Any]:
    metrics = lesson.metrics
    now = utc_now()

    metrics.success_rate = calculate_new_success_rate(metrics.success_rate, metrics.occurrences, succeeded)
    metrics.occurrences += 1
    metrics.last_applied = now
    if succeeded:
        metrics.last_success = now
    if metrics.first_seen is None:
        metrics.first_seen = now
    metrics.confidence = calculate_confidence(lesson)
    metrics.confidence_history = update_confidence_history(metrics.confidence_history, metrics.confidence)
    _add_journey(lesson.journey_ids, journey_id)

    return {
        "confidence": metrics.confidence,
        "successRate": metrics.success_rate,
        "occurrences": metrics.occurrences,
    }


def find_matching_lesson(lessons: List[Lesson], selector_value: str, step_text: str) -> Optional[Lesson]:
    """First active lesson whose pattern contains the selector, else whose trigger contains the step."""
    active = [lesson for lesson in lessons if not lesson.archived]
    if selector_value:
        for lesson in active:
            if selector_value in lesson.pattern:
                return lesson
    if step_text:
        needle = step_text.lower()
        for lesson in active:
            if needle in lesson.trigger.lower():
                return lesson
    return None


def _find_active(items, item_id: str):
    for item in items:
        if item.id == item_id and not item.archived:
            return item
    return None


# ==================== Recorders ====================

def record_pattern_learned(llkb_root, journey_id: str, step_text: str, selector_value: str,
                           succeeded: bool, selector_strategy: str = "unknown",
                           prompt: str = DEFAULT_PROMPT) -> LearningResult:
    """Credit the lesson that best matches a selector/step used in a generated test."""
    store = KnowledgeStore(llkb_root)
    lessons = store.load_lessons()
    if lessons is None:
        return LearningResult(success=False, error=f"Lessons store unavailable: {store.lessons_path}")

    lesson = find_matching_lesson(lessons.lessons, selector_value, step_text)
    if lesson is None:
        return LearningResult(success=False, error="No matching lesson found for pattern")

    metrics = _apply_lesson_outcome(lesson, journey_id, succeeded)
    store.save_lessons(lessons)

    append_to_history(HistoryEvent(
        event="lesson_applied",
        journey_id=journey_id,
        prompt=prompt,
        lesson_id=lesson.id,
        success=succeeded,
        context={"stepText": step_text, "selector": {"strategy": selector_strategy, "value": selector_value}},
    ), llkb_root)

    logger.info(f"[LEARNING] Pattern outcome credited to lesson {lesson.id} (success={succeeded})")
    return LearningResult(success=True, metrics=metrics, entity_id=lesson.id)


def record_component_used(llkb_root, journey_id: str, component_id: str, succeeded: bool,
                          prompt: str = DEFAULT_PROMPT) -> LearningResult:
    store = KnowledgeStore(llkb_root)
    components = store.load_components()
    if components is None:
        return LearningResult(success=False, error=f"Components store unavailable: {store.components_path}")

    component: Optional[Component] = _find_active(components.components, component_id)
    if component is None:
        return LearningResult(success=False, error=f"Component not found: {component_id}")

    metrics = component.metrics
    metrics.success_rate = calculate_new_success_rate(metrics.success_rate, metrics.total_uses, succeeded)
    metrics.total_uses += 1
    metrics.last_used = utc_now()
    _add_journey(component.journey_ids, journey_id)
    store.save_components(components)

    append_to_history(HistoryEvent(
        event="component_used",
        journey_id=journey_id,
        prompt=prompt,
        component_id=component_id,
        success=succeeded,
    ), llkb_root)

    logger.info(f"[LEARNING] Component {component_id} used (success={succeeded}, uses={metrics.total_uses})")
    return LearningResult(
        success=True,
        metrics={"totalUses": metrics.total_uses, "successRate": metrics.success_rate},
        entity_id=component_id,
    )


def record_lesson_applied(llkb_root, journey_id: str, lesson_id: str, succeeded: bool,
                          context: Optional[str] = None, prompt: str = DEFAULT_PROMPT) -> LearningResult:
    store = KnowledgeStore(llkb_root)
    lessons = store.load_lessons()
    if lessons is None:
        return LearningResult(success=False, error=f"Lessons store unavailable: {store.lessons_path}")

    lesson = _find_active(lessons.lessons, lesson_id)
    if lesson is None:
        return LearningResult(success=False, error=f"Lesson not found: {lesson_id}")

    metrics = _apply_lesson_outcome(lesson, journey_id, succeeded)
    store.save_lessons(lessons)

    append_to_history(HistoryEvent(
        event="lesson_applied",
        journey_id=journey_id,
        prompt=prompt,
        lesson_id=lesson_id,
        success=succeeded,
        context={"note": context} if context else None,
    ), llkb_root)

    logger.info(f"[LEARNING] Lesson {lesson_id} applied (success={succeeded})")
    return LearningResult(success=True, metrics=metrics, entity_id=lesson_id)


def handle_learning_event(
    llkb_root,
    learning_type: str,
    journey_id: str,
    succeeded: bool,
    entity_id: Optional[str] = None,
    prompt: Optional[str] = None,
    context: Optional[str] = None,
    step_text: Optional[str] = None,
    selector_strategy: Optional[str] = None,
    selector_value: Optional[str] = None,
) -> LearningResult:
    """Route one outcome to its recorder after checking type-specific fields."""
    prompt = prompt or DEFAULT_PROMPT

    if learning_type == "pattern":
        return record_pattern_learned(
            llkb_root,
            journey_id=journey_id,
            step_text=step_text or context or "",
            selector_value=selector_value or "",
            succeeded=succeeded,
            selector_strategy=selector_strategy or "unknown",
            prompt=prompt,
        )
    if learning_type == "component":
        if not entity_id:
            return LearningResult(success=False, error="Component ID is required for component learning")
        return record_component_used(llkb_root, journey_id, entity_id, succeeded, prompt=prompt)
    if learning_type == "lesson":
        if not entity_id:
            return LearningResult(success=False, error="Lesson ID is required for lesson learning")
        return record_lesson_applied(llkb_root, journey_id, entity_id, succeeded, context=context, prompt=prompt)

    return LearningResult(success=False, error=f"Unknown learning type: {learning_type}")


def format_learning_result(result: LearningResult) -> str:
    if not result.success:
        lines = ["Learning recording failed"]
        if result.error:
            lines.append(f"  Error: {result.error}")
        return "\n".join(lines)

    lines = ["Learning recorded successfully"]
    if result.entity_id:
        lines.append(f"  Entity: {result.entity_id}")
    if result.metrics:
        lines.append("  Updated metrics:")
        for key, value in result.metrics.items():
            lines.append(f"    - {key}: {value}")
    return "\n".join(lines)
