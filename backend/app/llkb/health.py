"""
Health, statistics and pruning for a knowledge-base directory
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from .analytics import update_analytics
from .config import DEFAULT_HISTORY_RETENTION_DAYS
from .confidence import detect_declining_confidence, needs_confidence_review
from .history import cleanup_old_history_files, list_history_files, read_today_history
from .models import AnalyticsSnapshot, ComponentsFile, HealthStatus, LessonsFile, parse_timestamp
from .storage import KnowledgeStore

logger = logging.getLogger(__name__)

DEFAULT_INACTIVE_DAYS = 180

PASS = "pass"
WARN = "warn"
FAIL = "fail"


@dataclass
class HealthCheck:
    name: str
    status: str  # pass, warn, fail
    message: str
    details: Optional[str] = None


@dataclass
class HealthCheckResult:
    status: str
    checks: List[HealthCheck]
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PruneResult:
    history_files_deleted: int = 0
    deleted_files: List[str] = field(default_factory=list)
    archived_lessons: int = 0
    archived_components: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "historyFilesDeleted": self.history_files_deleted,
            "deletedFiles": self.deleted_files,
            "archivedLessons": self.archived_lessons,
            "archivedComponents": self.archived_components,
            "errors": self.errors,
        }


# ==================== Health ====================

def _check_document(path: Path, model: Type[BaseModel]) -> HealthCheck:
    name = path.name
    if not path.is_file():
        return HealthCheck(name=name, status=WARN, message=f"{name} not found")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return HealthCheck(name=name, status=FAIL, message=f"{name} is invalid JSON", details=str(e))
    if not isinstance(data, dict):
        return HealthCheck(name=name, status=FAIL, message=f"{name} is not a JSON object")
    try:
        model.model_validate(data)
    except ValidationError as e:
        return HealthCheck(name=name, status=FAIL, message=f"{name} has an invalid shape",
                           details=f"{e.error_count()} validation error(s)")
    return HealthCheck(name=name, status=PASS, message=f"{name} is valid")


def _lesson_health(store: KnowledgeStore) -> Optional[HealthCheck]:
    lessons = store.load_lessons()
    if lessons is None:
        return None
    active = [lesson for lesson in lessons.lessons if not lesson.archived]
    low = [lesson for lesson in active if needs_confidence_review(lesson)]
    declining = [lesson for lesson in active if detect_declining_confidence(lesson)]
    if not low and not declining:
        return HealthCheck(name="Lesson health", status=PASS, message="All lessons healthy")

    details = [f"Low confidence: {lesson.id} ({lesson.metrics.confidence})" for lesson in low]
    details += [f"Declining: {lesson.id}" for lesson in declining]
    return HealthCheck(
        name="Lesson health",
        status=WARN,
        message=f"{len(low)} low confidence, {len(declining)} declining",
        details=", ".join(details),
    )


def check_health(llkb_root) -> HealthCheckResult:
    """Run every check; overall status is error > warning > healthy."""
    store = KnowledgeStore(llkb_root)
    checks: List[HealthCheck] = []

    if store.root.is_dir():
        checks.append(HealthCheck("Directory exists", PASS, f"LLKB directory found at {store.root}"))
    else:
        checks.append(HealthCheck("Directory exists", FAIL, f"LLKB directory not found at {store.root}"))

    if store.config_path.is_file():
        checks.append(HealthCheck("Config file", PASS, "config.yml found"))
    else:
        checks.append(HealthCheck("Config file", WARN, "config.yml not found - using defaults"))

    lessons_check = _check_document(store.lessons_path, LessonsFile)
    checks.append(lessons_check)
    checks.append(_check_document(store.components_path, ComponentsFile))
    checks.append(_check_document(store.analytics_path, AnalyticsSnapshot))

    if store.history_dir.is_dir():
        count = len(list_history_files(store.root))
        checks.append(HealthCheck("History directory", PASS, f"History directory found with {count} files"))
    else:
        checks.append(HealthCheck("History directory", WARN,
                                  "History directory not found - will be created on first event"))

    if lessons_check.status == PASS:
        lesson_check = _lesson_health(store)
        if lesson_check is not None:
            checks.append(lesson_check)

    failed = [c for c in checks if c.status == FAIL]
    warned = [c for c in checks if c.status == WARN]
    if failed:
        status, summary = HealthStatus.ERROR.value, f"LLKB has errors: {len(failed)} failed checks"
    elif warned:
        status, summary = HealthStatus.WARNING.value, f"LLKB has warnings: {len(warned)} warnings"
    else:
        status, summary = HealthStatus.HEALTHY.value, "LLKB is healthy"

    logger.info(f"[HEALTH] {store.root}: {summary}")
    return HealthCheckResult(status=status, checks=checks, summary=summary)


# ==================== Stats ====================

def get_stats(llkb_root) -> Dict[str, Any]:
    store = KnowledgeStore(llkb_root)

    lessons = store.load_lessons()
    active_lessons = [lesson for lesson in lessons.lessons if not lesson.archived] if lessons else []
    archived_lessons = len(lessons.archived) + len(lessons.lessons) - len(active_lessons) if lessons else 0

    avg_confidence = avg_success = 0.0
    needs_review = 0
    if active_lessons:
        avg_confidence = round(sum(l.metrics.confidence for l in active_lessons) / len(active_lessons), 2)
        avg_success = round(sum(l.metrics.success_rate for l in active_lessons) / len(active_lessons), 2)
        needs_review = sum(
            1 for l in active_lessons if needs_confidence_review(l) or detect_declining_confidence(l)
        )

    components = store.load_components()
    all_components = components.components if components else []
    active_components = [c for c in all_components if not c.archived]
    total_reuses = sum(c.metrics.total_uses for c in active_components)

    history_files = list_history_files(store.root)

    return {
        "lessons": {
            "total": len(active_lessons) + archived_lessons,
            "active": len(active_lessons),
            "archived": archived_lessons,
            "avgConfidence": avg_confidence,
            "avgSuccessRate": avg_success,
            "needsReview": needs_review,
        },
        "components": {
            "total": len(all_components),
            "active": len(active_components),
            "archived": len(all_components) - len(active_components),
            "totalReuses": total_reuses,
            "avgReusesPerComponent": round(total_reuses / len(active_components), 2) if active_components else 0.0,
        },
        "history": {
            "todayEvents": len(read_today_history(store.root)),
            "historyFiles": len(history_files),
            "oldestFile": history_files[0].name if history_files else None,
            "newestFile": history_files[-1].name if history_files else None,
        },
    }


# ==================== Prune ====================

def _inactive_since(last: Optional[str], cutoff: datetime) -> bool:
    when = parse_timestamp(last)
    return when is not None and when < cutoff


def _archive_inactive_lessons(store: KnowledgeStore, cutoff: datetime) -> int:
    lessons = store.load_lessons()
    if lessons is None:
        return 0
    count = 0
    for lesson in lessons.lessons:
        if not lesson.archived and _inactive_since(lesson.metrics.last_success, cutoff):
            lesson.archived = True
            count += 1
    if count:
        store.save_lessons(lessons)
    return count


def _archive_inactive_components(store: KnowledgeStore, cutoff: datetime) -> int:
    components = store.load_components()
    if components is None:
        return 0
    count = 0
    for component in components.components:
        if not component.archived and _inactive_since(component.metrics.last_used, cutoff):
            component.archived = True
            count += 1
    if count:
        store.save_components(components)
    return count


def prune(llkb_root,
          history_retention_days: int = DEFAULT_HISTORY_RETENTION_DAYS,
          archive_inactive_lessons: bool = False,
          archive_inactive_components: bool = False,
          inactive_days: int = DEFAULT_INACTIVE_DAYS) -> PruneResult:
    """
    Delete aged history files, optionally archive inactive lessons and
    components, then rebuild analytics. Failures are collected, not raised.
    """
    store = KnowledgeStore(llkb_root)
    result = PruneResult()

    try:
        deleted, errors = cleanup_old_history_files(store.root, history_retention_days)
        result.deleted_files = deleted
        result.history_files_deleted = len(deleted)
        result.errors.extend(errors)
    except OSError as e:
        result.errors.append(f"Failed to clean history files: {e}")

    cutoff = datetime.now(timezone.utc) - timedelta(days=inactive_days)
    if archive_inactive_lessons:
        try:
            result.archived_lessons = _archive_inactive_lessons(store, cutoff)
        except OSError as e:
            result.errors.append(f"Failed to archive lessons: {e}")
    if archive_inactive_components:
        try:
            result.archived_components = _archive_inactive_components(store, cutoff)
        except OSError as e:
            result.errors.append(f"Failed to archive components: {e}")

    try:
        if update_analytics(store.root) is None:
            result.errors.append("Failed to update analytics: lessons or components unavailable")
    except OSError as e:
        result.errors.append(f"Failed to update analytics: {e}")

    logger.info(f"[HEALTH] Prune: {result.history_files_deleted} history files deleted, "
                f"{result.archived_lessons} lessons and {result.archived_components} components archived")
    return result


# ==================== Formatting ====================

_ICONS = {PASS: "OK", WARN: "WARN", FAIL: "FAIL"}


def format_health_check(result: HealthCheckResult) -> str:
    lines = [f"LLKB Health Check: {result.status.upper()}", "-" * 50]
    for check in result.checks:
        lines.append(f"[{_ICONS.get(check.status, check.status)}] {check.name}: {check.message}")
        if check.details:
            lines.append(f"  {check.details}")
    lines.extend(["-" * 50, result.summary])
    return "\n".join(lines)


def format_stats(stats: Dict[str, Any]) -> str:
    lessons, components, history = stats["lessons"], stats["components"], stats["history"]
    lines = [
        "LLKB Statistics",
        "-" * 50,
        "",
        "Lessons:",
        f"  Total: {lessons['total']} ({lessons['active']} active, {lessons['archived']} archived)",
        f"  Avg Confidence: {lessons['avgConfidence']}",
        f"  Avg Success Rate: {lessons['avgSuccessRate']}",
        f"  Needs Review: {lessons['needsReview']}",
        "",
        "Components:",
        f"  Total: {components['total']} ({components['active']} active, {components['archived']} archived)",
        f"  Total Reuses: {components['totalReuses']}",
        f"  Avg Reuses/Component: {components['avgReusesPerComponent']}",
        "",
        "History:",
        f"  Today's Events: {history['todayEvents']}",
        f"  History Files: {history['historyFiles']}",
    ]
    if history["oldestFile"]:
        lines.append(f"  Date Range: {history['oldestFile']} to {history['newestFile']}")
    return "\n".join(lines)


def format_prune_result(result: PruneResult) -> str:
    lines = ["LLKB Prune Results", "-" * 50, f"History files deleted: {result.history_files_deleted}"]
    if result.archived_lessons:
        lines.append(f"Lessons archived: {result.archived_lessons}")
    if result.archived_components:
        lines.append(f"Components archived: {result.archived_components}")
    if result.errors:
        lines.extend(["", "Errors:"])
        lines.extend(f"  - {error}" for error in result.errors)
    return "\n".join(lines)
