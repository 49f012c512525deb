"""
LLKB Document Models

Pydantic models for every document the knowledge base persists:
discovered patterns, the app profile, lessons, components, analytics
snapshots and history events.

Files on disk use camelCase keys; Python code uses snake_case attributes.
Unknown keys written by other tools are preserved on round trip.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are treated as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LLKBModel(BaseModel):
    """Base for persisted documents (camelCase on disk)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="allow",
    )

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ==================== Enums ====================

class PatternAction(str, Enum):
    """Closed set of primitive actions a pattern can map to"""
    CLICK = "click"
    FILL = "fill"
    ASSERT = "assert"
    CHECK = "check"
    NAVIGATE = "navigate"
    SELECT = "select"


class PatternLayer(str, Enum):
    APP_SPECIFIC = "app-specific"
    FRAMEWORK = "framework"
    UNIVERSAL = "universal"


class PatternCategory(str, Enum):
    """Categories shared by patterns, lessons and components"""
    SELECTOR = "selector"
    TIMING = "timing"
    QUIRK = "quirk"
    AUTH = "auth"
    DATA = "data"
    ASSERTION = "assertion"
    NAVIGATION = "navigation"
    UI_INTERACTION = "ui-interaction"


class SignalStrength(str, Enum):
    """Declared strength of the source that produced a pattern"""
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


# ==================== Patterns ====================

class SelectorHint(LLKBModel):
    """A suggested way to locate the element a pattern acts on"""
    strategy: str  # data-testid, role, text, css, ...
    value: str
    name: Optional[str] = None
    confidence: Optional[float] = None


class DiscoveredPattern(LLKBModel):
    """A scored (trigger phrase, action) recipe"""
    id: str
    normalized_text: str
    original_text: str
    action: PatternAction
    selector_hints: List[SelectorHint] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=0.95)
    layer: PatternLayer = PatternLayer.APP_SPECIFIC
    category: str = PatternCategory.UI_INTERACTION.value
    source_journeys: List[str] = Field(default_factory=list)
    success_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    template_source: Optional[str] = None
    entity_name: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return pattern_identity_key(self.normalized_text, self.action)


def pattern_identity_key(text: str, action: str) -> str:
    """Identity used for dedup and merge: lower-cased text plus action."""
    return f"{text.lower()}::{getattr(action, 'value', action)}"


class DiscoveredPatternsMetadata(LLKBModel):
    frameworks: List[str] = Field(default_factory=list)
    ui_libraries: List[str] = Field(default_factory=list)
    total_patterns: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_template: Dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0
    discovery_duration: Optional[int] = None


class DiscoveredPatternsFile(LLKBModel):
    """Contents of discovered-patterns.json"""
    version: str
    generated_at: str
    source: str
    patterns: List[DiscoveredPattern]
    metadata: DiscoveredPatternsMetadata = Field(default_factory=DiscoveredPatternsMetadata)


class LearnedPatternsFile(LLKBModel):
    """Long-lived, feedback-weighted pattern store (learned-patterns.json)"""
    version: str = "1.0"
    last_updated: str = Field(default_factory=utc_now)
    patterns: List[DiscoveredPattern] = Field(default_factory=list)


# ==================== App Profile ====================

class FrameworkSignal(LLKBModel):
    name: str
    version: Optional[str] = None
    confidence: float
    evidence: List[str] = Field(default_factory=list)


class UILibrarySignal(LLKBModel):
    name: str
    version: Optional[str] = None
    confidence: float
    evidence: List[str] = Field(default_factory=list)
    has_enterprise: bool = False


class SelectorSignals(LLKBModel):
    primary_attribute: str = "data-testid"
    naming_convention: str = "kebab-case"
    coverage: Dict[str, float] = Field(default_factory=dict)
    total_components_analyzed: int = 0
    sample_selectors: List[str] = Field(default_factory=list)


class AuthHints(LLKBModel):
    detected: bool = False
    type: Optional[str] = None  # oidc, oauth, form, sso
    login_route: Optional[str] = None
    selectors: Dict[str, str] = Field(default_factory=dict)  # usernameField, passwordField, submitButton
    bypass_available: Optional[bool] = None
    bypass_method: Optional[str] = None


class RuntimeStatus(LLKBModel):
    validated: bool = False
    scan_url: Optional[str] = None
    dom_sample_count: int = 0


class AppProfile(LLKBModel):
    """Discovery summary of a project"""
    version: str
    generated_at: str = Field(default_factory=utc_now)
    project_root: str
    frameworks: List[FrameworkSignal]
    ui_libraries: List[UILibrarySignal] = Field(default_factory=list)
    selector_signals: SelectorSignals = Field(default_factory=SelectorSignals)
    auth: AuthHints = Field(default_factory=AuthHints)
    runtime: RuntimeStatus = Field(default_factory=RuntimeStatus)


# ==================== Lessons ====================

class ConfidenceHistoryEntry(LLKBModel):
    date: str
    value: float


class LessonMetrics(LLKBModel):
    occurrences: int = 0
    success_rate: float = 0.0
    confidence: float = 0.0
    first_seen: Optional[str] = None
    last_success: Optional[str] = None
    last_applied: Optional[str] = None
    confidence_history: List[ConfidenceHistoryEntry] = Field(default_factory=list)


class LessonValidation(LLKBModel):
    human_reviewed: bool = False
    reviewed_at: Optional[str] = None
    reviewed_by: Optional[str] = None


class Lesson(LLKBModel):
    """A curated rule distilled from repeated outcomes"""
    id: str
    title: str
    pattern: str = ""
    trigger: str = ""
    category: str = PatternCategory.SELECTOR.value
    severity: str = "medium"
    scope: str = "app-specific"
    before: Optional[str] = None
    after: Optional[str] = None
    journey_ids: List[str] = Field(default_factory=list)
    metrics: LessonMetrics = Field(default_factory=LessonMetrics)
    validation: LessonValidation = Field(default_factory=LessonValidation)
    tags: List[str] = Field(default_factory=list)
    archived: bool = False


class LessonsFile(LLKBModel):
    """Contents of lessons.json"""
    version: str
    last_updated: str
    lessons: List[Lesson]
    archived: List[Lesson] = Field(default_factory=list)
    global_rules: List[Any] = Field(default_factory=list)
    app_quirks: List[Any] = Field(default_factory=list)


# ==================== Components ====================

class ComponentMetrics(LLKBModel):
    total_uses: int = 0
    success_rate: float = 0.0
    last_used: Optional[str] = None


class ComponentSource(LLKBModel):
    original_code: Optional[str] = None
    extracted_from: Optional[str] = None
    extracted_by: Optional[str] = None
    extracted_at: Optional[str] = None


class Component(LLKBModel):
    """A reusable extracted code fragment"""
    id: str
    name: str
    description: str = ""
    category: str = PatternCategory.SELECTOR.value
    scope: str = "app-specific"
    file_path: Optional[str] = None
    metrics: ComponentMetrics = Field(default_factory=ComponentMetrics)
    source: ComponentSource = Field(default_factory=ComponentSource)
    journey_ids: List[str] = Field(default_factory=list)
    archived: bool = False


class ComponentsFile(LLKBModel):
    """Contents of components.json"""
    version: str
    last_updated: str
    components: List[Component]
    components_by_category: Dict[str, List[str]] = Field(default_factory=dict)
    components_by_scope: Dict[str, List[str]] = Field(default_factory=dict)


# ==================== Analytics ====================

class AnalyticsOverview(LLKBModel):
    total_lessons: int = 0
    active_lessons: int = 0
    archived_lessons: int = 0
    total_components: int = 0
    active_components: int = 0
    archived_components: int = 0


class LessonStats(LLKBModel):
    by_category: Dict[str, int] = Field(default_factory=dict)
    avg_confidence: float = 0.0
    avg_success_rate: float = 0.0


class ComponentStats(LLKBModel):
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_scope: Dict[str, int] = Field(default_factory=dict)
    total_reuses: int = 0
    avg_reuses_per_component: float = 0.0


class ImpactStats(LLKBModel):
    verify_iterations_saved: int = 0
    avg_iterations_before_llkb: float = 0.0
    avg_iterations_after_llkb: float = 0.0
    code_deduplication_rate: float = 0.0
    estimated_hours_saved: float = 0.0


class TopLesson(LLKBModel):
    id: str
    title: str
    score: float


class TopComponent(LLKBModel):
    id: str
    name: str
    uses: int


class TopPerformers(LLKBModel):
    lessons: List[TopLesson] = Field(default_factory=list)
    components: List[TopComponent] = Field(default_factory=list)


class NeedsReview(LLKBModel):
    low_confidence_lessons: List[str] = Field(default_factory=list)
    low_usage_components: List[str] = Field(default_factory=list)
    declining_success_rate: List[str] = Field(default_factory=list)


class AnalyticsSnapshot(LLKBModel):
    """Contents of analytics.json; always recomputable"""
    version: str = "1.0.0"
    last_updated: str = Field(default_factory=utc_now)
    overview: AnalyticsOverview = Field(default_factory=AnalyticsOverview)
    lesson_stats: LessonStats = Field(default_factory=LessonStats)
    component_stats: ComponentStats = Field(default_factory=ComponentStats)
    impact: ImpactStats = Field(default_factory=ImpactStats)
    top_performers: TopPerformers = Field(default_factory=TopPerformers)
    needs_review: NeedsReview = Field(default_factory=NeedsReview)


# ==================== History ====================

class HistoryEvent(LLKBModel):
    """One immutable line of history/<date>.jsonl"""
    event: str  # lesson_applied, component_used, pattern_learned
    timestamp: str = Field(default_factory=utc_now)
    journey_id: Optional[str] = None
    prompt: Optional[str] = None
    lesson_id: Optional[str] = None
    component_id: Optional[str] = None
    success: Optional[bool] = None
    context: Optional[Dict[str, Any]] = None

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
