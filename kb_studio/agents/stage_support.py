"""Prompt fragments and the LLM call wrapper shared by the pipeline stages."""

from kb_studio.agents.models import GenerationRequest
from kb_studio.integrations.llm_client import LLMRetryExhausted, generate_text
from kb_studio.integrations.prompts import (
    BRAND_VOICE_GUIDELINES_V1,
    COMPLIANCE_REQUIREMENTS_V1,
    LENGTH_GUIDANCE,
)
from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import GenerationError


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


def build_system_prompt(template: str, *, include_compliance: bool) -> str:
    """Fill a stage system prompt with brand voice and optional compliance rules."""
    brand = get_settings().BRAND_NAME
    return template.format(
        brand=brand,
        brand_voice=BRAND_VOICE_GUIDELINES_V1.format(brand=brand).strip(),
        compliance=COMPLIANCE_REQUIREMENTS_V1.strip() if include_compliance else "",
    ).strip()


def variables_block(request: GenerationRequest) -> str:
    """Template variables as a ``name: value`` block, or an empty string."""
    filled = request.filled_variables()
    if not filled:
        return ""
    lines = "\n".join(f"{name}: {value}" for name, value in filled.items())
    return f"\nTemplate Variables:\n{lines}\n"


def requirements_block(request: GenerationRequest) -> str:
    """Custom requirements block, or an empty string."""
    if not request.custom_requirements:
        return ""
    return f"\nAdditional Requirements:\n{request.custom_requirements}\n"


def length_label(request: GenerationRequest) -> str:
    """Human-readable length target for prompts."""
    return LENGTH_GUIDANCE.get(request.length, request.length)


async def call_stage_llm(
    stage: str,
    prompt: str,
    *,
    system_prompt: str,
    temperature: float,
    model: str | None = None,
) -> str:
    """Call the LLM for a pipeline stage.

    Returns:
        Stripped model output

    Raises:
        GenerationError: If the LLM call fails or returns empty content
    """
    try:
        raw = await generate_text(
            prompt,
            system_prompt=system_prompt,
            model=model,
            temperature=temperature,
        )
    except LLMRetryExhausted as e:
        _get_logger().error(
            "Stage generation failed",
            extra={"extra_fields": {"stage": stage, "error_type": type(e.__cause__ or e).__name__}},
        )
        raise GenerationError(
            f"Failed to generate {stage}. Please try again.", stage=stage
        ) from e

    if not raw or not raw.strip():
        raise GenerationError(
            f"The model returned an empty {stage}. Please try again.", stage=stage
        )

    return raw.strip()
