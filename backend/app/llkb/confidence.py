"""
Lesson confidence rules

    confidence = min(0.95, base * sqrt(successRate) * review * recency)

base grows linearly with occurrences and saturates at 10; review is 1.2
for human-reviewed lessons; recency starts decaying 30 days after the
last success and bottoms out at 0.7.
"""

import math
from datetime import datetime, timezone
from typing import List, Optional

from .config import MAX_CONFIDENCE
from .models import ConfidenceHistoryEntry, Lesson, parse_timestamp

OCCURRENCES_FOR_FULL_BASE = 10
HUMAN_REVIEW_BOOST = 1.2
RECENCY_GRACE_DAYS = 30
RECENCY_DECAY_DAYS = 300
MIN_RECENCY_FACTOR = 0.7

MAX_CONFIDENCE_HISTORY_ENTRIES = 100
CONFIDENCE_HISTORY_RETENTION_DAYS = 90

DECLINE_WINDOW = 30
DECLINE_RATIO = 0.8
TREND_DELTA = 0.05
LOW_CONFIDENCE_THRESHOLD = 0.4


def days_between(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds()) / 86400


def _recency_factor(last_success: Optional[str], now: datetime) -> float:
    when = parse_timestamp(last_success)
    if when is None:
        return 1.0
    idle = days_between(now, when) - RECENCY_GRACE_DAYS
    if idle <= 0:
        return 1.0
    return max(MIN_RECENCY_FACTOR, 1.0 - idle / RECENCY_DECAY_DAYS)


def calculate_confidence(lesson: Lesson, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    metrics = lesson.metrics

    base = min(metrics.occurrences / OCCURRENCES_FOR_FULL_BASE, 1.0)
    score = base * math.sqrt(max(metrics.success_rate, 0.0))
    if lesson.validation.human_reviewed:
        score *= HUMAN_REVIEW_BOOST
    score *= _recency_factor(metrics.last_success, now)

    return round(min(score, MAX_CONFIDENCE), 2)


def update_confidence_history(history: List[ConfidenceHistoryEntry], value: float,
                              now: Optional[datetime] = None) -> List[ConfidenceHistoryEntry]:
    """New list with value appended, aged-out entries dropped and length capped."""
    now = now or datetime.now(timezone.utc)
    kept = []
    for entry in history:
        when = parse_timestamp(entry.date)
        if when is not None and days_between(now, when) <= CONFIDENCE_HISTORY_RETENTION_DAYS:
            kept.append(entry)
    kept.append(ConfidenceHistoryEntry(date=now.isoformat(), value=value))
    return kept[-MAX_CONFIDENCE_HISTORY_ENTRIES:]


def get_confidence_trend(history: List[ConfidenceHistoryEntry]) -> str:
    """increasing / decreasing / stable, or unknown with fewer than 3 points."""
    if len(history) < 3:
        return "unknown"
    values = [entry.value for entry in history]
    half = len(values) // 2
    older = sum(values[:half]) / half
    newer = sum(values[half:]) / (len(values) - half)
    if newer - older > TREND_DELTA:
        return "increasing"
    if older - newer > TREND_DELTA:
        return "decreasing"
    return "stable"


def detect_declining_confidence(lesson: Lesson) -> bool:
    """Current confidence is below 80% of the recent historical mean."""
    history = lesson.metrics.confidence_history
    if len(history) < 2:
        return False
    recent = [entry.value for entry in history[-DECLINE_WINDOW:]]
    mean = sum(recent) / len(recent)
    return lesson.metrics.confidence < mean * DECLINE_RATIO


def needs_confidence_review(lesson: Lesson, threshold: float = LOW_CONFIDENCE_THRESHOLD) -> bool:
    return lesson.metrics.confidence < threshold
