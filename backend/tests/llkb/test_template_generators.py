"""
Unit tests for template expansion over mined elements.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.mining import DiscoveredElements, DiscoveredModal, FormField
from llkb.template_generators import (
    CRUD_TEMPLATES,
    create_entity,
    create_form,
    create_modal,
    create_route,
    create_table,
    generate_all_patterns,
    generate_crud_patterns,
    generate_form_patterns,
    generate_modal_patterns,
    generate_navigation_patterns,
    generate_notification_patterns,
    generate_table_patterns,
    to_pattern_action,
)
from llkb.models import PatternAction


class TestStepMapping:
    """Test mapping of browser steps onto the closed action set."""

    @pytest.mark.parametrize("step,expected", [
        ("click", PatternAction.CLICK),
        ("dblclick", PatternAction.CLICK),
        ("uncheck", PatternAction.CHECK),
        ("upload", PatternAction.FILL),
        ("clear", PatternAction.FILL),
        ("waitForVisible", PatternAction.ASSERT),
    ])
    def test_mapped_steps(self, step, expected):
        assert to_pattern_action(step) == expected

    @pytest.mark.parametrize("step", ["hover", "drag", "keyboard"])
    def test_unmapped_steps(self, step):
        """Test that steps without a closed action yield no pattern."""
        assert to_pattern_action(step) is None


class TestElementHelpers:
    """Test the element constructors."""

    def test_create_entity_from_plural(self):
        entity = create_entity("Users")

        assert entity.singular == "user"
        assert entity.plural == "users"

    def test_create_form(self):
        form = create_form("Login", ["User Name", "Password"])

        assert form.id == "form-login"
        assert [f.name for f in form.fields] == ["user_name", "password"]
        assert form.fields[0].label == "User Name"

    def test_create_route_names(self):
        assert create_route("/settings").name == "Settings"
        assert create_route("/").name == "Home"
        assert create_route("/admin/users", name="users admin").name == "Users admin"


class TestFamilies:
    """Test per-family expansion counts and content."""

    def test_crud(self):
        """Test that every CRUD template yields one pattern per entity."""
        patterns = generate_crud_patterns([create_entity("Users")])
        texts = {p.original_text for p in patterns}

        assert len(patterns) == len(CRUD_TEMPLATES) == 23
        assert "create new user" in texts
        assert "filter users" in texts
        assert all(p.template_source == "crud" for p in patterns)

    def test_form(self):
        """Test form-level plus per-field expansion."""
        patterns = generate_form_patterns([create_form("Login", ["Username", "Password"])])
        texts = {p.original_text for p in patterns}

        assert len(patterns) == 7 + 10 * 2
        assert "enter Username in Login" in texts
        assert "verify Password is required" in texts
        uncheck = next(p for p in patterns if p.original_text == "uncheck Username checkbox")
        assert uncheck.action == "check"

    def test_form_selector_hints(self):
        """Test that known selectors become boosted css hints."""
        form = create_form("Login")
        form.submit_selector = "button[type=submit]"
        form.fields = [FormField(name="email", label="Email", selector="#email")]

        patterns = {p.original_text: p for p in generate_form_patterns([form])}

        assert patterns["submit Login form"].selector_hints[0].value == "button[type=submit]"
        assert patterns["submit Login form"].selector_hints[0].confidence == pytest.approx(0.85)
        assert patterns["cancel Login form"].selector_hints == []
        assert patterns["fill in Email"].selector_hints[0].value == "#email"

    def test_table_drops_hover_and_drag(self):
        """Test table expansion without the unmappable templates."""
        patterns = generate_table_patterns([create_table("Orders", ["Date", "Total"])])
        texts = {p.original_text for p in patterns}

        assert len(patterns) == 16 + 6 * 2
        assert "hover over row in Orders" not in texts
        assert "resize Date column" not in texts
        assert "sort Orders by Total" in texts

    def test_table_header_hint(self):
        """Test that column patterns get a half-boosted header hint."""
        table = create_table("Orders", ["Date"])
        table.selectors = {"header": "th"}

        patterns = {p.original_text: p for p in generate_table_patterns([table])}
        hint = patterns["hide Date column"].selector_hints[0]

        assert hint.value == 'th:has-text("Date")'
        assert hint.confidence == pytest.approx(0.775)

    def test_modal(self):
        """Test modal expansion and trigger/confirm selector routing."""
        modal = DiscoveredModal(id="modal-delete", name="Delete", trigger_selector="#open",
                                confirm_selector="#ok")

        patterns = {p.original_text: p for p in generate_modal_patterns([modal])}

        assert len(patterns) == 18
        assert "press Escape to close Delete" not in patterns
        assert patterns["open Delete modal"].selector_hints[0].value == "#open"
        assert patterns["click OK in Delete"].selector_hints[0].value == "#ok"
        assert patterns["cancel Delete"].selector_hints == []

    def test_navigation_generic_once(self):
        """Test that placeholder-free templates are emitted once for all routes."""
        routes = [create_route("/users"), create_route("/settings")]

        patterns = generate_navigation_patterns(routes)
        texts = [p.original_text for p in patterns]

        assert len(patterns) == 20 * 2 + 2
        assert texts.count("go back") == 1
        assert "verify URL contains Settings" in texts

    def test_navigation_hint_only_for_navigate_steps(self):
        patterns = {p.original_text: p for p in generate_navigation_patterns([create_route("/users")])}

        assert patterns["go to Users"].selector_hints[0].strategy == "text"
        assert patterns["click Users in sidebar"].selector_hints == []

    def test_notifications(self):
        """Test static notification templates, with waits mapped to asserts."""
        patterns = generate_notification_patterns()

        assert len(patterns) == 20
        wait = next(p for p in patterns if p.original_text == "wait for toast to disappear")
        assert wait.action == "assert"


class TestGenerateAll:
    """Test the combined generator."""

    def test_stats(self):
        elements = DiscoveredElements(
            entities=[create_entity("Users")],
            routes=[create_route("/users")],
            modals=[create_modal("Confirm")],
        )

        result = generate_all_patterns(elements)

        assert result.stats["crudPatterns"] == 23
        assert result.stats["modalPatterns"] == 18
        assert result.stats["navigationPatterns"] == 22
        assert result.stats["notificationPatterns"] == 20
        assert result.stats["formPatterns"] == 0
        assert result.stats["totalPatterns"] == len(result.patterns) == 83

    def test_max_patterns(self):
        """Test truncation to the requested cap."""
        result = generate_all_patterns(DiscoveredElements(entities=[create_entity("Users")]), max_patterns=10)

        assert len(result.patterns) == 10
        assert result.stats["totalPatterns"] == 10
        assert result.stats["crudPatterns"] == 23
