"""
Template Generators - Multiplies phrase templates by mined elements

Each template family is expanded once per mined element of its kind:
CRUD x entities, form x forms (and their fields), table x tables (and
their columns), modal x modals, navigation x routes. Notification
templates are static and emitted once.

Templates are written in the wider browser-step vocabulary. Steps that
have a counterpart in the closed PatternAction set are mapped onto it;
steps without one (hover, drag, keyboard) produce no pattern.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import DEFAULT_MAX_PATTERNS
from .mining import (
    DiscoveredElements,
    DiscoveredEntity,
    DiscoveredForm,
    DiscoveredModal,
    DiscoveredRoute,
    DiscoveredTable,
    FormField,
)
from .models import DiscoveredPattern, PatternAction, SelectorHint
from .pattern_generation import create_pattern
from .pluralization import pluralize, singularize

logger = logging.getLogger(__name__)

DEFAULT_GENERATED_CONFIDENCE = 0.70
SELECTOR_CONFIDENCE_BOOST = 0.15
MAX_GENERATED_PATTERNS = DEFAULT_MAX_PATTERNS

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

# Browser steps outside the closed action set
STEP_ACTION_MAP: Dict[str, Optional[PatternAction]] = {
    "dblclick": PatternAction.CLICK,
    "uncheck": PatternAction.CHECK,
    "upload": PatternAction.FILL,
    "clear": PatternAction.FILL,
    "waitForVisible": PatternAction.ASSERT,
    "hover": None,
    "drag": None,
    "keyboard": None,
}


def to_pattern_action(step: str) -> Optional[PatternAction]:
    """Closed action for a browser step, or None when it has none."""
    if step in STEP_ACTION_MAP:
        return STEP_ACTION_MAP[step]
    return PatternAction(step)


@dataclass(frozen=True)
class PatternTemplate:
    text: str
    step: str
    category: str
    template_source: str

    @property
    def placeholders(self) -> List[str]:
        return _PLACEHOLDER.findall(self.text)


def _family(source: str, rows) -> List[PatternTemplate]:
    return [PatternTemplate(text, step, category, source) for text, step, category in rows]


# ==================== Templates ====================

CRUD_TEMPLATES = _family("crud", [
    # create
    ("create new {entity}", "click", "data"),
    ("add {entity}", "click", "data"),
    ("click add {entity} button", "click", "data"),
    ("click create {entity} button", "click", "data"),
    ("open new {entity} form", "click", "data"),
    # read
    ("view {entity} details", "click", "data"),
    ("open {entity}", "click", "data"),
    ("click on {entity}", "click", "data"),
    ("select {entity} from list", "click", "data"),
    ("view {entity} list", "navigate", "data"),
    # update
    ("edit {entity}", "click", "data"),
    ("update {entity}", "click", "data"),
    ("modify {entity}", "click", "data"),
    ("click edit {entity} button", "click", "data"),
    ("save {entity} changes", "click", "data"),
    # delete
    ("delete {entity}", "click", "data"),
    ("remove {entity}", "click", "data"),
    ("click delete {entity} button", "click", "data"),
    ("confirm {entity} deletion", "click", "data"),
    ("cancel {entity} deletion", "click", "data"),
    # search
    ("search for {entity}", "fill", "data"),
    ("filter {entities}", "fill", "data"),
    ("clear {entity} filter", "click", "data"),
])

FORM_TEMPLATES = _family("form", [
    ("fill {form} form", "fill", "data"),
    ("submit {form} form", "click", "data"),
    ("cancel {form} form", "click", "data"),
    ("reset {form} form", "click", "data"),
    ("clear {form} form", "click", "data"),
    ("enter {field} in {form}", "fill", "data"),
    ("fill in {field}", "fill", "data"),
    ("select {field} option", "click", "data"),
    ("check {field} checkbox", "check", "data"),
    ("uncheck {field} checkbox", "uncheck", "data"),
    ("toggle {field}", "click", "data"),
    ("upload file to {field}", "upload", "data"),
    ("clear {field} field", "clear", "data"),
    ("verify {field} error message", "assert", "assertion"),
    ("verify {form} validation error", "assert", "assertion"),
    ("verify {field} is required", "assert", "assertion"),
    ("verify {form} submitted successfully", "assert", "assertion"),
])

TABLE_TEMPLATES = _family("table", [
    # rows
    ("click row in {table}", "click", "ui-interaction"),
    ("select row in {table}", "click", "ui-interaction"),
    ("double-click row in {table}", "dblclick", "ui-interaction"),
    ("expand row in {table}", "click", "ui-interaction"),
    ("collapse row in {table}", "click", "ui-interaction"),
    ("hover over row in {table}", "hover", "ui-interaction"),
    # columns
    ("sort {column} column in {table}", "click", "ui-interaction"),
    ("sort {table} by {column}", "click", "ui-interaction"),
    ("filter {column} in {table}", "fill", "ui-interaction"),
    ("resize {column} column", "drag", "ui-interaction"),
    ("hide {column} column", "click", "ui-interaction"),
    ("show {column} column", "click", "ui-interaction"),
    # pagination
    ("go to next page in {table}", "click", "ui-interaction"),
    ("go to previous page in {table}", "click", "ui-interaction"),
    ("go to page {page} in {table}", "click", "ui-interaction"),
    ("change page size in {table}", "click", "ui-interaction"),
    # cells and selection
    ("edit cell in {table}", "dblclick", "ui-interaction"),
    ("click cell in {table}", "click", "ui-interaction"),
    ("select all rows in {table}", "click", "ui-interaction"),
    ("deselect all rows in {table}", "click", "ui-interaction"),
    # assertions
    ("verify {table} has {count} rows", "assert", "assertion"),
    ("verify {table} contains {text}", "assert", "assertion"),
    ("verify {table} is empty", "assert", "assertion"),
    ("verify {column} is sorted", "assert", "assertion"),
])

MODAL_TEMPLATES = _family("modal", [
    ("open {modal} modal", "click", "ui-interaction"),
    ("open {modal} dialog", "click", "ui-interaction"),
    ("close {modal} modal", "click", "ui-interaction"),
    ("close {modal} dialog", "click", "ui-interaction"),
    ("dismiss {modal}", "click", "ui-interaction"),
    ("confirm {modal}", "click", "ui-interaction"),
    ("cancel {modal}", "click", "ui-interaction"),
    ("click OK in {modal}", "click", "ui-interaction"),
    ("click Cancel in {modal}", "click", "ui-interaction"),
    ("click Yes in {modal}", "click", "ui-interaction"),
    ("click No in {modal}", "click", "ui-interaction"),
    ("submit {modal}", "click", "ui-interaction"),
    ("press Escape to close {modal}", "keyboard", "ui-interaction"),
    ("click outside {modal} to close", "click", "ui-interaction"),
    ("click backdrop to close {modal}", "click", "ui-interaction"),
    ("verify {modal} is open", "assert", "assertion"),
    ("verify {modal} is closed", "assert", "assertion"),
    ("verify {modal} contains {text}", "assert", "assertion"),
    ("verify {modal} title is {title}", "assert", "assertion"),
])

EXTENDED_NAVIGATION_TEMPLATES = _family("navigation", [
    ("navigate to {route}", "navigate", "navigation"),
    ("go to {route}", "navigate", "navigation"),
    ("open {route} page", "navigate", "navigation"),
    ("visit {route}", "navigate", "navigation"),
    ("click {route} in navigation", "click", "navigation"),
    ("click {route} in sidebar", "click", "navigation"),
    ("click {route} in menu", "click", "navigation"),
    ("select {route} from menu", "click", "navigation"),
    ("expand {route} menu", "click", "navigation"),
    ("collapse {route} menu", "click", "navigation"),
    ("click {route} in breadcrumb", "click", "navigation"),
    ("navigate via breadcrumb to {route}", "click", "navigation"),
    ("click {route} tab", "click", "navigation"),
    ("switch to {route} tab", "click", "navigation"),
    ("click {route} in header", "click", "navigation"),
    ("click {route} in footer", "click", "navigation"),
    ("go back", "navigate", "navigation"),
    ("go forward", "navigate", "navigation"),
    ("return to {route}", "navigate", "navigation"),
    ("verify on {route} page", "assert", "assertion"),
    ("verify URL contains {route}", "assert", "assertion"),
    ("verify {route} is active in navigation", "assert", "assertion"),
])

NOTIFICATION_TEMPLATES = _family("static", [
    ("a success notification appears", "assert", "assertion"),
    ("an error notification appears", "assert", "assertion"),
    ("a warning notification appears", "assert", "assertion"),
    ("an info notification appears", "assert", "assertion"),
    ("a toast message appears", "assert", "assertion"),
    ("a notification with text {text} appears", "assert", "assertion"),
    ("verify success message is displayed", "assert", "assertion"),
    ("verify error message is displayed", "assert", "assertion"),
    ("verify notification contains {text}", "assert", "assertion"),
    ("verify toast shows {text}", "assert", "assertion"),
    ("dismiss notification", "click", "ui-interaction"),
    ("close toast", "click", "ui-interaction"),
    ("dismiss all notifications", "click", "ui-interaction"),
    ("wait for notification to appear", "waitForVisible", "timing"),
    ("wait for toast to disappear", "waitForVisible", "timing"),
    ("wait for notification to close", "waitForVisible", "timing"),
    ("verify alert message contains {text}", "assert", "assertion"),
    ("accept alert dialog", "click", "ui-interaction"),
    ("dismiss alert dialog", "click", "ui-interaction"),
    ("verify alert is shown", "assert", "assertion"),
])


# ==================== Expansion ====================

def _css_hint(selector: str, confidence: float) -> SelectorHint:
    return SelectorHint(strategy="css", value=selector, confidence=confidence)


def _from_template(template: PatternTemplate, text: str, entity_name: Optional[str],
                   confidence: float, hints: Optional[List[SelectorHint]] = None) -> Optional[DiscoveredPattern]:
    action = to_pattern_action(template.step)
    if action is None:
        return None
    return create_pattern(
        text,
        action,
        confidence,
        template.category,
        selector_hints=hints,
        template_source=template.template_source,
        entity_name=entity_name or None,
    )


def expand_entity_template(template: PatternTemplate, entity: DiscoveredEntity,
                           confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    results = []
    if "entity" in template.placeholders:
        results.append(_from_template(template, template.text.replace("{entity}", entity.singular, 1),
                                      entity.singular, confidence))
    if "entities" in template.placeholders:
        results.append(_from_template(template, template.text.replace("{entities}", entity.plural, 1),
                                      entity.plural, confidence))
    return [p for p in results if p is not None]


def expand_form_template(template: PatternTemplate, form: DiscoveredForm,
                         confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    results = []
    placeholders = template.placeholders

    if "form" in placeholders and "field" not in placeholders:
        hints = []
        if form.submit_selector and "submit" in template.text:
            hints.append(_css_hint(form.submit_selector, confidence + SELECTOR_CONFIDENCE_BOOST))
        text = template.text.replace("{form}", form.name, 1)
        results.append(_from_template(template, text, form.name, confidence, hints))

    if "field" in placeholders:
        for form_field in form.fields:
            text = template.text.replace("{field}", form_field.label or form_field.name, 1)
            text = text.replace("{form}", form.name, 1)
            hints = []
            if form_field.selector:
                hints.append(_css_hint(form_field.selector, confidence + SELECTOR_CONFIDENCE_BOOST))
            results.append(_from_template(template, text, form_field.name, confidence, hints))

    return [p for p in results if p is not None]


def expand_table_template(template: PatternTemplate, table: DiscoveredTable,
                          confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    results = []
    placeholders = template.placeholders

    if "table" in placeholders and "column" not in placeholders:
        hints = []
        if table.selectors.get("table"):
            hints.append(_css_hint(table.selectors["table"], confidence + SELECTOR_CONFIDENCE_BOOST))
        text = template.text.replace("{table}", table.name, 1)
        results.append(_from_template(template, text, table.name, confidence, hints))

    if "column" in placeholders:
        header = table.selectors.get("header")
        for column in table.columns:
            text = template.text.replace("{column}", column, 1).replace("{table}", table.name, 1)
            hints = []
            if header:
                # half boost: the header selector is shared by every column
                hints.append(_css_hint(f'{header}:has-text("{column}")',
                                       confidence + SELECTOR_CONFIDENCE_BOOST * 0.5))
            results.append(_from_template(template, text, column, confidence, hints))

    return [p for p in results if p is not None]


def _modal_selector(template: PatternTemplate, modal: DiscoveredModal) -> Optional[str]:
    text = template.text
    if "open" in text:
        return modal.trigger_selector
    if "close" in text:
        return modal.close_selector
    if "confirm" in text or "OK" in text or "Yes" in text:
        return modal.confirm_selector
    return None


def expand_modal_template(template: PatternTemplate, modal: DiscoveredModal,
                          confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    if "modal" not in template.placeholders:
        return []
    selector = _modal_selector(template, modal)
    hints = [_css_hint(selector, confidence + SELECTOR_CONFIDENCE_BOOST)] if selector else []
    pattern = _from_template(template, template.text.replace("{modal}", modal.name, 1),
                             modal.name, confidence, hints)
    return [pattern] if pattern else []


def expand_route_template(template: PatternTemplate, route: DiscoveredRoute,
                          confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    if "route" not in template.placeholders:
        return []
    hints = []
    if template.step == "navigate":
        hints.append(SelectorHint(strategy="text", value=route.name, confidence=confidence))
    pattern = _from_template(template, template.text.replace("{route}", route.name, 1),
                             route.name, confidence, hints)
    return [pattern] if pattern else []


# ==================== Generators ====================

def generate_crud_patterns(entities: List[DiscoveredEntity],
                           confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    return [p for entity in entities for t in CRUD_TEMPLATES
            for p in expand_entity_template(t, entity, confidence)]


def generate_form_patterns(forms: List[DiscoveredForm],
                           confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    return [p for form in forms for t in FORM_TEMPLATES
            for p in expand_form_template(t, form, confidence)]


def generate_table_patterns(tables: List[DiscoveredTable],
                            confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    return [p for table in tables for t in TABLE_TEMPLATES
            for p in expand_table_template(t, table, confidence)]


def generate_modal_patterns(modals: List[DiscoveredModal],
                            confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    return [p for modal in modals for t in MODAL_TEMPLATES
            for p in expand_modal_template(t, modal, confidence)]


def generate_navigation_patterns(routes: List[DiscoveredRoute],
                                 confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    """Route templates per route; placeholder-free templates only once."""
    patterns: List[DiscoveredPattern] = []
    emitted_generic = set()

    for route in routes:
        for template in EXTENDED_NAVIGATION_TEMPLATES:
            if template.placeholders:
                patterns.extend(expand_route_template(template, route, confidence))
            elif template.text not in emitted_generic:
                emitted_generic.add(template.text)
                pattern = _from_template(template, template.text, None, confidence)
                if pattern:
                    patterns.append(pattern)

    return patterns


def generate_notification_patterns(confidence: float = DEFAULT_GENERATED_CONFIDENCE) -> List[DiscoveredPattern]:
    patterns = []
    for template in NOTIFICATION_TEMPLATES:
        pattern = _from_template(template, template.text, None, confidence)
        if pattern:
            patterns.append(pattern)
    return patterns


@dataclass
class GenerationResult:
    patterns: List[DiscoveredPattern]
    stats: Dict[str, int]


def generate_all_patterns(elements: DiscoveredElements,
                          confidence: float = DEFAULT_GENERATED_CONFIDENCE,
                          max_patterns: int = MAX_GENERATED_PATTERNS) -> GenerationResult:
    """Expand every template family over the mined elements."""
    families = {
        "crudPatterns": generate_crud_patterns(elements.entities, confidence),
        "formPatterns": generate_form_patterns(elements.forms, confidence),
        "tablePatterns": generate_table_patterns(elements.tables, confidence),
        "modalPatterns": generate_modal_patterns(elements.modals, confidence),
        "navigationPatterns": generate_navigation_patterns(elements.routes, confidence),
        "notificationPatterns": generate_notification_patterns(confidence),
    }

    patterns = [p for family in families.values() for p in family]
    if len(patterns) > max_patterns:
        logger.info(f"[PATTERNS] Truncating {len(patterns)} generated patterns to {max_patterns}")
        patterns = sorted(patterns, key=lambda p: -p.confidence)[:max_patterns]

    stats = {name: len(family) for name, family in families.items()}
    stats["totalPatterns"] = len(patterns)
    return GenerationResult(patterns=patterns, stats=stats)


# ==================== Element Helpers ====================

def _slug(name: str, sep: str) -> str:
    return re.sub(r"\s+", sep, name.lower())


def create_entity(name: str) -> DiscoveredEntity:
    singular = singularize(name.lower())
    return DiscoveredEntity(name=name, singular=singular, plural=pluralize(singular))


def create_form(name: str, fields: Optional[List[str]] = None) -> DiscoveredForm:
    return DiscoveredForm(
        id=f"form-{_slug(name, '-')}",
        name=name,
        fields=[FormField(name=_slug(f, "_"), type="text", label=f) for f in fields or []],
    )


def create_table(name: str, columns: Optional[List[str]] = None) -> DiscoveredTable:
    return DiscoveredTable(id=f"table-{_slug(name, '-')}", name=name, columns=list(columns or []))


def create_modal(name: str) -> DiscoveredModal:
    return DiscoveredModal(id=f"modal-{_slug(name, '-')}", name=name)


def create_route(path: str, name: Optional[str] = None) -> DiscoveredRoute:
    segments = [s for s in path.split("/") if s]
    route_name = name or (segments[-1] if segments else "home")
    return DiscoveredRoute(path=path, name=route_name[:1].upper() + route_name[1:])
