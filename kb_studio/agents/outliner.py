"""Outline Agent - first stage of the article pipeline.

Builds a structured-outline prompt from the template's section order, the
audience/tone/length settings, template variables and optional custom
requirements, then formats the model's outline as HTML.

Public API:
    generate_outline: Produce the outline GenerationStep for a request

Example:
    >>> request = GenerationRequest(template_id="faq", title="Year-End Checklist")
    >>> step = await generate_outline(request)
    >>> step.stage
    'outline'
"""

from typing import Final

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
from kb_studio.integrations.prompts import ARTICLE_OUTLINE_PROMPT_V1, OUTLINE_SYSTEM_PROMPT_V1

OUTLINE_NEXT_STEPS: Final[tuple[str, ...]] = (
    "Generate full draft from this outline",
    "Refine specific sections",
    "Add compliance elements",
)


def _build_outline_prompt(request: GenerationRequest, template: Template) -> str:
    """Build the user prompt for the outline stage.

    Pure function - same request and template give the same prompt.
    """
    return ARTICLE_OUTLINE_PROMPT_V1.format(
        template_name=template.name,
        title=request.title,
        audience=request.audience,
        structure=" → ".join(template.structure),
        length=length_label(request),
        tone=request.tone,
        variables_block=variables_block(request),
        requirements_block=requirements_block(request),
    )


async def generate_outline(
    request: GenerationRequest,
    *,
    model: str | None = None,
    temperature: float = 0.5,
) -> GenerationStep:
    """Generate a structured outline for the requested article.

    Args:
        request: Generation parameters
        model: Optional LLM model override
        temperature: Sampling temperature

    Returns:
        GenerationStep with stage "outline", HTML content and next-step hints

    Raises:
        TemplateNotFoundError: If request.template_id is unknown
        GenerationError: If the LLM call fails or returns nothing
    """
    template = get_template(request.template_id)

    prompt = _build_outline_prompt(request, template)
    system_prompt = build_system_prompt(
        OUTLINE_SYSTEM_PROMPT_V1, include_compliance=request.include_compliance
    )

    raw = await call_stage_llm(
        "outline", prompt, system_prompt=system_prompt, temperature=temperature, model=model
    )

    return GenerationStep(
        stage="outline",
        content=format_content_as_html(raw),
        next_steps=OUTLINE_NEXT_STEPS,
    )
