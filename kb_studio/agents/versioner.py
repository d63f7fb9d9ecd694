"""Version Agent - adapt finished content for every audience.

The requesting audience keeps the base content unchanged. Each other
audience gets its own adaptation call; the calls run concurrently and are
awaited as one batch. A failed adaptation is logged and that audience falls
back to the base content, so the batch itself always succeeds.

Each audience's outcome is tagged so callers can tell a real adaptation
(``VersionOk``) from a silent fallback (``FallbackUsed``).

Public API:
    generate_versions: Adapt base content for all audiences
    VersionBatch, VersionOk, FallbackUsed: Tagged batch result
"""

import asyncio
from dataclasses import dataclass
from typing import Union

from kb_studio.agents.formatter import format_content_as_html, strip_code_fences
from kb_studio.agents.models import AUDIENCES, Audience, GenerationRequest
from kb_studio.agents.stage_support import build_system_prompt, call_stage_llm
from kb_studio.integrations.prompts import (
    ADAPTATION_SYSTEM_PROMPT_V1,
    AUDIENCE_ADAPTATION_PROMPT_V1,
    AUDIENCE_GUIDELINES,
)
from kb_studio.utils.logging_config import get_logger


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


@dataclass(frozen=True)
class VersionOk:
    """Content produced for the audience (or passed through for the source audience)."""

    content: str


@dataclass(frozen=True)
class FallbackUsed:
    """Adaptation failed; the original content is used instead."""

    content: str
    reason: str


VersionResult = Union[VersionOk, FallbackUsed]


@dataclass(frozen=True)
class VersionBatch:
    """Per-audience outcomes of one versions run.

    Attributes:
        source_audience: Audience of the base content
        results: Tagged outcome per audience, in AUDIENCES order
    """

    source_audience: Audience
    results: tuple[tuple[Audience, VersionResult], ...]

    def contents(self) -> dict[str, str]:
        """Plain audience → content mapping."""
        return {audience: result.content for audience, result in self.results}

    def fallbacks(self) -> list[str]:
        """Audiences whose adaptation fell back to the original content."""
        return [audience for audience, result in self.results if isinstance(result, FallbackUsed)]

    def result_for(self, audience: str) -> VersionResult:
        """Tagged outcome for one audience."""
        for name, result in self.results:
            if name == audience:
                return result
        raise KeyError(audience)


def _build_adaptation_prompt(audience: Audience, request: GenerationRequest, content: str) -> str:
    """Build the adaptation prompt for one target audience."""
    return AUDIENCE_ADAPTATION_PROMPT_V1.format(
        audience=audience,
        source_audience=request.audience,
        content=content,
        guidelines=AUDIENCE_GUIDELINES[audience],
    )


async def _adapt_for_audience(
    audience: Audience,
    request: GenerationRequest,
    base_content: str,
    system_prompt: str,
    model: str | None,
    temperature: float,
) -> VersionResult:
    """Adapt content for one audience; never raises."""
    try:
        raw = await call_stage_llm(
            "versions",
            _build_adaptation_prompt(audience, request, base_content),
            system_prompt=system_prompt,
            temperature=temperature,
            model=model,
        )
        return VersionOk(format_content_as_html(strip_code_fences(raw)))
    except Exception as e:  # pylint: disable=broad-except
        _get_logger().warning(
            "Audience adaptation failed, using original content",
            extra={"extra_fields": {"audience": audience, "error_type": type(e).__name__}},
        )
        return FallbackUsed(content=base_content, reason=f"{type(e).__name__}: {e}")


async def generate_versions(
    request: GenerationRequest,
    base_content: str,
    *,
    model: str | None = None,
    temperature: float = 0.5,
) -> VersionBatch:
    """Produce internal, client and sales versions of finished content.

    Args:
        request: Generation parameters; request.audience is the source audience
        base_content: Polished (or draft) content to adapt
        model: Optional LLM model override
        temperature: Sampling temperature

    Returns:
        VersionBatch with one tagged result per audience

    Raises:
        ValueError: If base_content is empty
    """
    if not base_content or not base_content.strip():
        raise ValueError("base_content cannot be empty")

    system_prompt = build_system_prompt(ADAPTATION_SYSTEM_PROMPT_V1, include_compliance=False)
    targets = [audience for audience in AUDIENCES if audience != request.audience]

    adapted = await asyncio.gather(
        *(
            _adapt_for_audience(audience, request, base_content, system_prompt, model, temperature)
            for audience in targets
        )
    )
    by_audience: dict[str, VersionResult] = dict(zip(targets, adapted))
    by_audience[request.audience] = VersionOk(base_content)

    batch = VersionBatch(
        source_audience=request.audience,
        results=tuple((audience, by_audience[audience]) for audience in AUDIENCES),
    )

    _get_logger().info(
        "Audience versions generated",
        extra={
            "extra_fields": {
                "source_audience": request.audience,
                "fallbacks": batch.fallbacks(),
            }
        },
    )
    return batch
