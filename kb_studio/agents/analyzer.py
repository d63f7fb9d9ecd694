"""Content Analyzer - advisory quality report for finished content.

Analysis never blocks the workflow: when the model call fails or its
response cannot be parsed into the expected JSON shape, the static
``FALLBACK_ANALYSIS`` is returned instead of an error.

Public API:
    analyze_content: Produce a ContentAnalysis for content
    ContentAnalysis: Immutable quality report
    FALLBACK_ANALYSIS: Report used when analysis cannot be produced
"""

from dataclasses import dataclass, replace
from typing import Any, Final

from kb_studio.agents.stage_support import build_system_prompt
from kb_studio.integrations.llm_client import generate_text, parse_json_response
from kb_studio.integrations.prompts import ANALYSIS_SYSTEM_PROMPT_V1, CONTENT_ANALYSIS_PROMPT_V1
from kb_studio.utils.logging_config import get_logger

MIN_BRAND_FIT: Final = 1
MAX_BRAND_FIT: Final = 5
MAX_CONTENT_CHARS: Final = 12000


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


@dataclass(frozen=True)
class ContentAnalysis:
    """Structured quality report.

    Attributes:
        brand_fit_score: 1-5 fit with the brand voice
        readability_level: Grade level or description
        compliance_checks: Compliance items the content passes
        suggestions: Actionable editorial suggestions
        missing_elements: Elements the content should add
        improvement_plan: Concrete improvement steps
        next_steps: Follow-up actions for the author
    """

    brand_fit_score: int
    readability_level: str
    compliance_checks: tuple[str, ...]
    suggestions: tuple[str, ...]
    missing_elements: tuple[str, ...]
    improvement_plan: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Camel-cased dict matching the portal's JSON shape."""
        return {
            "brandFitScore": self.brand_fit_score,
            "readabilityLevel": self.readability_level,
            "complianceChecks": list(self.compliance_checks),
            "suggestions": list(self.suggestions),
            "missingElements": list(self.missing_elements),
            "improvementPlan": list(self.improvement_plan),
            "nextSteps": list(self.next_steps),
        }


FALLBACK_ANALYSIS: Final = ContentAnalysis(
    brand_fit_score=4,
    readability_level="Professional",
    compliance_checks=(
        "Brand voice consistency maintained",
        "Professional tone appropriate for financial services",
        "Clear structure with logical flow",
    ),
    suggestions=(
        "Add specific client success metrics (ROI percentages, cost savings)",
        "Include more industry-specific terminology to establish expertise",
        "Strengthen conclusion with clear next steps for implementation",
        "Add cross-references to related services",
    ),
    missing_elements=(
        "Specific KPIs or success metrics",
        "Client testimonials or case studies",
        "Visual elements (charts, diagrams, or tables)",
    ),
    improvement_plan=(
        "Add a 'Quick Reference' section with key points summarized",
        "Include 2-3 real client examples with quantifiable outcomes",
        "Add internal links to related processes or tools",
        "Create downloadable template or checklist if applicable",
    ),
    next_steps=(
        "Review technical accuracy with domain expert",
        "Test clarity with non-expert staff member",
        "Add to internal training materials if appropriate",
        "Schedule quarterly review for content updates",
    ),
)


def _clamp_score(value: Any) -> int:
    """Coerce a model-supplied score into the 1-5 range.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise ValueError("brandFitScore must be numeric")
    score = round(float(value))
    return max(MIN_BRAND_FIT, min(MAX_BRAND_FIT, score))


def _string_list(value: Any) -> tuple[str, ...]:
    """Non-empty strings from a JSON list; anything else yields an empty tuple."""
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if item is not None and str(item).strip())


def _parse_analysis(response: str) -> ContentAnalysis:
    """Parse the model's JSON report, filling empty lists from the fallback.

    Raises:
        ValueError: If the response is not a JSON object with a numeric score
    """
    data = parse_json_response(response)
    if not isinstance(data, dict):
        raise ValueError("Analysis response is not a JSON object")
    if "brandFitScore" not in data:
        raise ValueError("Analysis response has no brandFitScore")

    readability = str(data.get("readabilityLevel") or "").strip()

    return ContentAnalysis(
        brand_fit_score=_clamp_score(data["brandFitScore"]),
        readability_level=readability or FALLBACK_ANALYSIS.readability_level,
        compliance_checks=_string_list(data.get("complianceChecks"))
        or FALLBACK_ANALYSIS.compliance_checks,
        suggestions=_string_list(data.get("suggestions")) or FALLBACK_ANALYSIS.suggestions,
        missing_elements=_string_list(data.get("missingElements"))
        or FALLBACK_ANALYSIS.missing_elements,
        improvement_plan=_string_list(data.get("improvementPlan"))
        or FALLBACK_ANALYSIS.improvement_plan,
        next_steps=_string_list(data.get("nextSteps")) or FALLBACK_ANALYSIS.next_steps,
    )


async def analyze_content(
    content: str,
    *,
    model: str | None = None,
    temperature: float = 0.2,
) -> ContentAnalysis:
    """Analyze content for brand fit, readability and compliance.

    Always returns a fully populated report; model and parse failures yield
    a copy of FALLBACK_ANALYSIS.

    Raises:
        ValueError: If content is empty
    """
    if not content or not content.strip():
        raise ValueError("content cannot be empty")

    prompt = CONTENT_ANALYSIS_PROMPT_V1.format(content=content.strip()[:MAX_CONTENT_CHARS])
    system_prompt = build_system_prompt(ANALYSIS_SYSTEM_PROMPT_V1, include_compliance=True)

    try:
        response = await generate_text(
            prompt, system_prompt=system_prompt, model=model, temperature=temperature
        )
        return _parse_analysis(response)
    except Exception as e:  # pylint: disable=broad-except
        _get_logger().warning(
            "Content analysis unavailable, using fallback report",
            extra={"extra_fields": {"error_type": type(e).__name__}},
        )
        return replace(FALLBACK_ANALYSIS)
