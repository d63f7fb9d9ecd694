"""Polish Agent - publication-ready HTML from a draft.

Public API:
    polish_article: Produce the polish GenerationStep for a draft
"""

from typing import Final

from kb_studio.agents.formatter import (
    PUBLICATION_TAGS,
    format_content_as_html,
    sanitize_html,
    strip_code_fences,
)
from kb_studio.agents.models import GenerationRequest, GenerationStep
from kb_studio.agents.stage_support import build_system_prompt, call_stage_llm
from kb_studio.integrations.prompts import ARTICLE_POLISH_PROMPT_V1, POLISH_SYSTEM_PROMPT_V1

POLISH_SUGGESTIONS: Final[tuple[str, ...]] = (
    "Ready for final compliance review",
    "Consider A/B testing different headlines",
    "Schedule for publication",
    "Add to content calendar",
)


async def polish_article(
    draft: str,
    request: GenerationRequest,
    *,
    model: str | None = None,
    temperature: float = 0.3,
) -> GenerationStep:
    """Polish a draft into publication-ready HTML.

    The model output is stripped of code-fence markers, formatted, and then
    reduced to the publication whitelist (headings, paragraphs, lists,
    bold/emphasis, blockquote).

    Args:
        draft: Draft content (HTML or markdown)
        request: Generation parameters (audience, tone, compliance flag)
        model: Optional LLM model override
        temperature: Sampling temperature (low, editing not writing)

    Returns:
        GenerationStep with stage "polish"

    Raises:
        ValueError: If draft is empty
        GenerationError: If the LLM call fails or returns nothing
    """
    if not draft or not draft.strip():
        raise ValueError("draft cannot be empty")

    prompt = ARTICLE_POLISH_PROMPT_V1.format(
        draft=draft.strip(),
        audience=request.audience,
        tone=request.tone,
    )
    system_prompt = build_system_prompt(
        POLISH_SYSTEM_PROMPT_V1, include_compliance=request.include_compliance
    )

    raw = await call_stage_llm(
        "polish", prompt, system_prompt=system_prompt, temperature=temperature, model=model
    )

    content = sanitize_html(format_content_as_html(strip_code_fences(raw)), PUBLICATION_TAGS)

    return GenerationStep(stage="polish", content=content, suggestions=POLISH_SUGGESTIONS)
