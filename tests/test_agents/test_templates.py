"""Tests for the template registry."""

import pytest

from kb_studio.agents.templates import (
    TEMPLATES,
    Template,
    extract_variables,
    get_template,
    list_templates,
    render_template,
    template_form_fields,
)
from kb_studio.workflow.error_handling import TemplateNotFoundError


class TestRegistry:
    """Test template lookup."""

    def test_registry_order(self):
        assert [t.id for t in list_templates()] == [
            "sop",
            "playbook",
            "faq",
            "client_guide",
            "product_docs",
        ]

    def test_get_template(self):
        template = get_template("sop")

        assert template.name == "Standard Operating Procedure"
        assert template.structure[0] == "Overview"
        assert "{{process_name}}" in template.variables

    def test_unknown_template_raises(self):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            get_template("newsletter")

        assert exc_info.value.template_id == "newsletter"
        assert "sop" in exc_info.value.context["available"]

    def test_unknown_template_is_key_error(self):
        with pytest.raises(KeyError):
            get_template("")

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            TEMPLATES["custom"] = get_template("faq")

    def test_template_is_frozen(self):
        template = get_template("faq")

        with pytest.raises(Exception):
            template.name = "Changed"

    def test_only_product_docs_is_preview(self):
        assert [t.id for t in list_templates() if t.preview] == ["product_docs"]

    def test_list_templates_returns_copy(self):
        templates = list_templates()
        templates.clear()

        assert len(list_templates()) == 5


class TestVariables:
    """Test placeholder extraction and form fields."""

    def test_extract_variables_ordered_and_deduplicated(self):
        assert extract_variables("{{a}} and {{ b }} then {{a}}") == ("a", "b")

    def test_extract_variables_ignores_malformed(self):
        assert extract_variables("{single} {{9bad}} {{ok_name}}") == ("ok_name",)

    def test_extract_variables_empty(self):
        assert extract_variables("") == ()

    def test_faq_form_fields(self):
        assert template_form_fields(get_template("faq")) == (
            "topic_area",
            "audience",
            "complexity_level",
        )

    @pytest.mark.parametrize("template", list_templates(), ids=lambda t: t.id)
    def test_form_fields_match_placeholders(self, template: Template):
        """Every declared placeholder becomes exactly one form field."""
        placeholders = extract_variables(" ".join(template.variables))

        assert placeholders == template_form_fields(template)


class TestRenderTemplate:
    """Test markdown skeleton rendering."""

    def test_renders_sections_in_order(self):
        skeleton = render_template("client_guide", {}, title="Onboarding")

        assert skeleton.startswith("# Onboarding\n")
        positions = [skeleton.index(f"## {s}") for s in get_template("client_guide").structure]
        assert positions == sorted(positions)

    def test_substitutes_known_variables(self):
        skeleton = render_template("sop", {"process_name": "Month-End Close"})

        assert "- process_name: Month-End Close" in skeleton
        assert "{{department}}" in skeleton

    def test_blank_values_keep_placeholder(self):
        skeleton = render_template("faq", {"topic_area": ""})

        assert "{{topic_area}}" in skeleton

    def test_defaults_title_to_template_name(self):
        assert render_template("faq", {}).startswith("# Frequently Asked Questions")

    def test_unknown_template(self):
        with pytest.raises(TemplateNotFoundError):
            render_template("missing", {})
