"""Tests for the outline stage and shared stage support."""

from unittest.mock import AsyncMock, patch

import pytest

from kb_studio.agents.models import GenerationRequest, GenerationStep
from kb_studio.agents.outliner import OUTLINE_NEXT_STEPS, _build_outline_prompt, generate_outline
from kb_studio.agents.stage_support import (
    build_system_prompt,
    length_label,
    requirements_block,
    variables_block,
)
from kb_studio.agents.templates import get_template
from kb_studio.integrations.llm_client import LLMRetryExhausted
from kb_studio.integrations.prompts import OUTLINE_SYSTEM_PROMPT_V1
from kb_studio.workflow.error_handling import GenerationError, TemplateNotFoundError

LLM_TARGET = "kb_studio.agents.stage_support.generate_text"


@pytest.fixture
def faq_request() -> GenerationRequest:
    return GenerationRequest(
        template_id="faq",
        title="Year-End Tax Checklist",
        audience="client",
        tone="friendly",
        length="brief",
        variables={"topic_area": "Tax planning", "audience": "", "complexity_level": "basic"},
    )


class TestPromptFragments:
    """Test prompt building blocks."""

    def test_variables_block_skips_blank_values(self, faq_request):
        block = variables_block(faq_request)

        assert "topic_area: Tax planning" in block
        assert "complexity_level: basic" in block
        assert "audience:" not in block

    def test_variables_block_empty(self):
        request = GenerationRequest(template_id="faq", title="FAQ")

        assert variables_block(request) == ""

    def test_requirements_block(self):
        request = GenerationRequest(
            template_id="faq", title="FAQ", custom_requirements="Mention the Q4 deadline"
        )

        assert "Mention the Q4 deadline" in requirements_block(request)

    def test_blank_requirements_treated_as_missing(self):
        request = GenerationRequest(template_id="faq", title="FAQ", custom_requirements="   ")

        assert request.custom_requirements is None
        assert requirements_block(request) == ""

    def test_length_label(self, faq_request):
        assert length_label(faq_request).startswith("Brief")

    def test_system_prompt_with_compliance(self):
        prompt = build_system_prompt(OUTLINE_SYSTEM_PROMPT_V1, include_compliance=True)

        assert "Seed Financial" in prompt
        assert "Brand Voice" in prompt
        assert "Compliance Requirements" in prompt

    def test_system_prompt_without_compliance(self):
        prompt = build_system_prompt(OUTLINE_SYSTEM_PROMPT_V1, include_compliance=False)

        assert "Brand Voice" in prompt
        assert "Compliance Requirements" not in prompt

    def test_brand_name_from_settings(self, monkeypatch):
        monkeypatch.setenv("BRAND_NAME", "Acme Advisors")

        assert "Acme Advisors" in build_system_prompt(
            OUTLINE_SYSTEM_PROMPT_V1, include_compliance=False
        )


class TestBuildOutlinePrompt:
    def test_contains_request_settings(self, faq_request):
        prompt = _build_outline_prompt(faq_request, get_template("faq"))

        assert "Frequently Asked Questions" in prompt
        assert "Title: Year-End Tax Checklist" in prompt
        assert "Audience: client" in prompt
        assert "Tone: friendly" in prompt
        assert "topic_area: Tax planning" in prompt

    def test_structure_in_template_order(self, faq_request):
        prompt = _build_outline_prompt(faq_request, get_template("faq"))

        assert "Question Categories → Common Questions → Detailed Answers" in prompt

    def test_deterministic(self, faq_request):
        template = get_template("faq")

        assert _build_outline_prompt(faq_request, template) == _build_outline_prompt(
            faq_request, template
        )


class TestGenerateOutline:
    """Test generate_outline with mocked LLM."""

    @pytest.mark.asyncio
    async def test_returns_formatted_outline(self, faq_request):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = (
                "# Year-End Tax Checklist\n\n## Question Categories\n- Deadlines"
            )

            step = await generate_outline(faq_request)

        assert isinstance(step, GenerationStep)
        assert step.stage == "outline"
        assert "<h1>Year-End Tax Checklist</h1>" in step.content
        assert "<li>Deadlines</li>" in step.content
        assert step.next_steps == OUTLINE_NEXT_STEPS
        assert step.suggestions == ()

    @pytest.mark.asyncio
    async def test_html_response_kept(self, faq_request):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = "<h2>Question Categories</h2><ul><li>Deadlines</li></ul>"

            step = await generate_outline(faq_request)

        assert step.content == "<h2>Question Categories</h2><ul><li>Deadlines</li></ul>"

    @pytest.mark.asyncio
    async def test_passes_system_prompt_and_temperature(self, faq_request):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = "<h2>Outline</h2>"

            await generate_outline(faq_request, model="gpt-4o")

        kwargs = mock_llm.call_args.kwargs
        assert "content strategist" in kwargs["system_prompt"]
        assert kwargs["temperature"] == 0.5
        assert kwargs["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_unknown_template_skips_llm(self):
        request = GenerationRequest(template_id="newsletter", title="News")

        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            with pytest.raises(TemplateNotFoundError):
                await generate_outline(request)

        mock_llm.assert_not_called()

    @pytest.mark.asyncio
    async def test_llm_failure_raises_generation_error(self, faq_request):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.side_effect = LLMRetryExhausted("All 2 retries failed")

            with pytest.raises(GenerationError) as exc_info:
                await generate_outline(faq_request)

        assert exc_info.value.stage == "outline"
        assert "Please try again" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, LLMRetryExhausted)

    @pytest.mark.asyncio
    async def test_empty_response_raises_generation_error(self, faq_request):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = "   "

            with pytest.raises(GenerationError, match="empty outline"):
                await generate_outline(faq_request)
