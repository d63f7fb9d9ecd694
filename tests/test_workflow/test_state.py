"""Tests for session state models."""

import pytest

from kb_studio.agents.models import GenerationRequest
from kb_studio.workflow.state import (
    AudienceVersions,
    GeneratedContent,
    SavedSession,
    Stage,
    derive_stage,
    stage_has_content,
)


class TestStage:
    def test_order_follows_pipeline(self):
        assert [stage.order for stage in Stage] == [0, 1, 2, 3, 4]
        assert Stage.SETUP.order < Stage.OUTLINE.order < Stage.VERSIONS.order

    def test_string_values(self):
        assert Stage("polish") is Stage.POLISH
        assert Stage.DRAFT == "draft"


class TestContentModels:
    def test_generated_content_defaults_empty(self):
        content = GeneratedContent()

        assert content.has_any() is False

    def test_whitespace_is_not_content(self):
        assert GeneratedContent(draft="  \n").has_any() is False
        assert AudienceVersions(sales=" ").has_any() is False

    def test_has_any(self):
        assert GeneratedContent(outline="<h2>x</h2>").has_any() is True
        assert AudienceVersions(client="<p>x</p>").has_any() is True


class TestDeriveStage:
    @pytest.mark.parametrize(
        "content,versions,expected",
        [
            (GeneratedContent(), AudienceVersions(), Stage.SETUP),
            (GeneratedContent(outline="o"), AudienceVersions(), Stage.OUTLINE),
            (GeneratedContent(outline="o", draft="d"), AudienceVersions(), Stage.DRAFT),
            (GeneratedContent(draft="d"), AudienceVersions(), Stage.DRAFT),
            (GeneratedContent(draft="d", polished="p"), AudienceVersions(), Stage.POLISH),
            (GeneratedContent(polished="p"), AudienceVersions(internal="i"), Stage.VERSIONS),
            (GeneratedContent(draft="d"), AudienceVersions(sales="s"), Stage.VERSIONS),
        ],
    )
    def test_most_advanced_populated_stage(self, content, versions, expected):
        assert derive_stage(content, versions) is expected

    @pytest.mark.parametrize(
        "content,versions,expected",
        [
            (GeneratedContent(), AudienceVersions(sales="s"), Stage.SETUP),
            (GeneratedContent(outline="o"), AudienceVersions(internal="i"), Stage.OUTLINE),
            (GeneratedContent(polished="p"), AudienceVersions(), Stage.SETUP),
            (GeneratedContent(outline="o", polished="p"), AudienceVersions(), Stage.OUTLINE),
        ],
    )
    def test_stage_requires_content_it_builds_on(self, content, versions, expected):
        assert derive_stage(content, versions) is expected

    def test_versions_need_finished_content(self):
        versions = AudienceVersions(client="c")

        assert stage_has_content(Stage.VERSIONS, GeneratedContent(outline="o"), versions) is False
        assert stage_has_content(Stage.VERSIONS, GeneratedContent(draft="d"), versions) is True
        assert stage_has_content(Stage.POLISH, GeneratedContent(polished="p"), versions) is False


class TestSavedSession:
    """Test the stored session shape."""

    def test_json_uses_camel_case(self):
        saved = SavedSession(
            form_data=GenerationRequest(
                template_id="faq",
                title="Year-End",
                include_compliance=True,
                variables={"topic_area": "Tax"},
            ),
            generated_content=GeneratedContent(outline="<h2>o</h2>"),
            selected_template="faq",
            timestamp=1700000000000,
        )

        data = saved.to_json_dict()

        assert set(data) == {
            "formData",
            "generatedContent",
            "audienceVersions",
            "selectedTemplate",
            "timestamp",
        }
        assert data["formData"]["templateId"] == "faq"
        assert data["formData"]["includeCompliance"] is True
        assert data["formData"]["variables"] == {"topic_area": "Tax"}
        assert data["generatedContent"] == {"outline": "<h2>o</h2>", "draft": "", "polished": ""}

    def test_parses_portal_json(self):
        data = {
            "formData": {
                "templateId": "sop",
                "title": "Month-End Close",
                "categoryId": 4,
                "audience": "internal",
                "tone": "technical",
                "length": "comprehensive",
                "includeCompliance": False,
                "customRequirements": "",
                "variables": {},
            },
            "generatedContent": {"outline": "", "draft": "<p>d</p>", "polished": ""},
            "audienceVersions": {"internal": "", "client": "", "sales": ""},
            "selectedTemplate": "sop",
            "timestamp": 1700000000001,
        }

        saved = SavedSession.model_validate(data)

        assert saved.form_data.category_id == 4
        assert saved.form_data.custom_requirements is None
        assert saved.generated_content.draft == "<p>d</p>"
        assert SavedSession.model_validate(saved.to_json_dict()) == saved

    def test_missing_form_data_is_invalid(self):
        with pytest.raises(ValueError):
            SavedSession.model_validate({"timestamp": 1})
