"""Draft Agent - full article prose from an outline.

The outline is optional context: without one the prompt falls back to the
template's raw section structure.

Public API:
    generate_draft: Produce the draft GenerationStep for a request
"""

from typing import Final, Optional

from kb_studio.agents.formatter import format_content_as_html
from kb_studio.agents.models import GenerationRequest, GenerationStep
from kb_studio.agents.stage_support import (
    build_system_prompt,
    call_stage_llm,
    length_label,
    requirements_block,
    variables_block,
)
from kb_studio.agents.templates import Template, get_template
from kb_studio.integrations.prompts import ARTICLE_DRAFT_PROMPT_V1, DRAFT_SYSTEM_PROMPT_V1

DRAFT_SUGGESTIONS: Final[tuple[str, ...]] = (
    "Review for brand voice consistency",
    "Add more specific examples",
    "Verify compliance requirements",
    "Check for missing internal links",
)

DRAFT_NEXT_STEPS: Final[tuple[str, ...]] = (
    "Polish and refine content",
    "Add final compliance review",
    "Format for publication",
)


def _structure_block(template: Template, outline: Optional[str]) -> str:
    """Outline to follow, or the template's section order when there is none."""
    if outline and outline.strip():
        return f"Use this outline as your structure:\n{outline.strip()}\n"
    return f"Follow this structure: {' → '.join(template.structure)}\n"


def _build_draft_prompt(
    request: GenerationRequest, template: Template, outline: Optional[str]
) -> str:
    """Build the user prompt for the draft stage."""
    return ARTICLE_DRAFT_PROMPT_V1.format(
        template_name=template.name,
        title=request.title,
        audience=request.audience,
        length=length_label(request),
        tone=request.tone,
        variables_block=variables_block(request),
        structure_block=_structure_block(template, outline),
        requirements_block=requirements_block(request),
    )


async def generate_draft(
    request: GenerationRequest,
    outline: Optional[str] = None,
    *,
    model: str | None = None,
    temperature: float = 0.7,
) -> GenerationStep:
    """Write the full article draft.

    Args:
        request: Generation parameters
        outline: Outline content from the previous stage (optional)
        model: Optional LLM model override
        temperature: Sampling temperature (higher for prose)

    Returns:
        GenerationStep with stage "draft", editorial suggestions and next steps

    Raises:
        TemplateNotFoundError: If request.template_id is unknown
        GenerationError: If the LLM call fails or returns nothing
    """
    template = get_template(request.template_id)

    prompt = _build_draft_prompt(request, template, outline)
    system_prompt = build_system_prompt(
        DRAFT_SYSTEM_PROMPT_V1, include_compliance=request.include_compliance
    )

    raw = await call_stage_llm(
        "draft", prompt, system_prompt=system_prompt, temperature=temperature, model=model
    )

    return GenerationStep(
        stage="draft",
        content=format_content_as_html(raw),
        suggestions=DRAFT_SUGGESTIONS,
        next_steps=DRAFT_NEXT_STEPS,
    )
