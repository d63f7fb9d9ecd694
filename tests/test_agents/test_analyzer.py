"""Tests for the content analyzer."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from kb_studio.agents.analyzer import (
    FALLBACK_ANALYSIS,
    MAX_CONTENT_CHARS,
    ContentAnalysis,
    _clamp_score,
    _parse_analysis,
    analyze_content,
)
from kb_studio.integrations.llm_client import LLMRetryExhausted

LLM_TARGET = "kb_studio.agents.analyzer.generate_text"
CONTENT = "<h2>Overview</h2><p>Quarterly estimates are due on fixed dates.</p>"

FULL_REPORT = {
    "brandFitScore": 5,
    "readabilityLevel": "Grade 8",
    "complianceChecks": ["Includes tax disclaimer"],
    "suggestions": ["Add a worked example"],
    "missingElements": ["Last reviewed date"],
    "improvementPlan": ["Add a summary table"],
    "nextSteps": ["Send to compliance"],
}


class TestClampScore:
    @pytest.mark.parametrize("value,expected", [(0, 1), (3, 3), (4.6, 5), (9, 5), ("2", 2)])
    def test_clamps_into_range(self, value, expected):
        assert _clamp_score(value) == expected

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            _clamp_score(True)

    def test_rejects_text(self):
        with pytest.raises(ValueError):
            _clamp_score("excellent")


class TestParseAnalysis:
    def test_full_report(self):
        analysis = _parse_analysis(json.dumps(FULL_REPORT))

        assert analysis.brand_fit_score == 5
        assert analysis.readability_level == "Grade 8"
        assert analysis.compliance_checks == ("Includes tax disclaimer",)
        assert analysis.next_steps == ("Send to compliance",)

    def test_missing_lists_filled_from_fallback(self):
        analysis = _parse_analysis('{"brandFitScore": 3}')

        assert analysis.brand_fit_score == 3
        assert analysis.readability_level == FALLBACK_ANALYSIS.readability_level
        assert analysis.suggestions == FALLBACK_ANALYSIS.suggestions
        assert analysis.improvement_plan == FALLBACK_ANALYSIS.improvement_plan

    def test_requires_score(self):
        with pytest.raises(ValueError, match="brandFitScore"):
            _parse_analysis('{"readabilityLevel": "Grade 8"}')

    def test_requires_object(self):
        with pytest.raises(ValueError):
            _parse_analysis("[1, 2, 3]")

    def test_to_dict_uses_camel_case(self):
        assert _parse_analysis(json.dumps(FULL_REPORT)).to_dict() == FULL_REPORT


class TestAnalyzeContent:
    """Test analyze_content with mocked LLM."""

    @pytest.mark.asyncio
    async def test_parses_model_report(self):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = f"```json\n{json.dumps(FULL_REPORT)}\n```"

            analysis = await analyze_content(CONTENT)

        assert isinstance(analysis, ContentAnalysis)
        assert analysis.brand_fit_score == 5
        assert "Compliance Requirements" in mock_llm.call_args.kwargs["system_prompt"]
        assert mock_llm.call_args.kwargs["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_unparseable_response_returns_fallback(self):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = "The article reads well overall."

            analysis = await analyze_content(CONTENT)

        assert analysis == FALLBACK_ANALYSIS
        assert analysis.brand_fit_score == 4
        assert analysis.readability_level == "Professional"
        assert len(analysis.compliance_checks) == 3

    @pytest.mark.asyncio
    async def test_llm_failure_returns_fallback(self):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.side_effect = LLMRetryExhausted("down")

            analysis = await analyze_content(CONTENT)

        assert analysis == FALLBACK_ANALYSIS

    @pytest.mark.asyncio
    async def test_fallback_is_logged(self, caplog):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = "not json"

            await analyze_content(CONTENT)

        assert "using fallback report" in caplog.text

    @pytest.mark.asyncio
    async def test_long_content_truncated(self):
        with patch(LLM_TARGET, new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = json.dumps(FULL_REPORT)

            await analyze_content("x" * (MAX_CONTENT_CHARS + 500))

        prompt = mock_llm.call_args.args[0]
        assert "x" * MAX_CONTENT_CHARS in prompt
        assert "x" * (MAX_CONTENT_CHARS + 1) not in prompt

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self):
        with pytest.raises(ValueError, match="content cannot be empty"):
            await analyze_content("   ")
