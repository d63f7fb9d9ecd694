"""Metadata Agent - excerpt and tags for a knowledge base article.

Same policy as the analyzer: a failed or unparseable model response yields
``FALLBACK_METADATA`` rather than an error.

Public API:
    generate_metadata: Produce ArticleMetadata for content and title
    ArticleMetadata: Immutable excerpt/tags pair
"""

import re
from dataclasses import dataclass
from typing import Any, Final

from kb_studio.integrations.llm_client import generate_text, parse_json_response
from kb_studio.integrations.prompts import METADATA_PROMPT_V1
from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger

MAX_EXCERPT_CHARS: Final = 150
MIN_TAGS: Final = 3
MAX_TAGS: Final = 5
MAX_CONTENT_CHARS: Final = 8000

FALLBACK_EXCERPT: Final = "Professional knowledge base article with comprehensive guidance."
FALLBACK_TAGS: Final[tuple[str, ...]] = (
    "knowledge-base",
    "professional-services",
    "seed-financial",
)


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


@dataclass(frozen=True)
class ArticleMetadata:
    """Article excerpt and search tags.

    Attributes:
        excerpt: 1-2 sentence summary, at most 150 characters
        tags: 3-5 lowercase tags
    """

    excerpt: str
    tags: tuple[str, ...]


FALLBACK_METADATA: Final = ArticleMetadata(excerpt=FALLBACK_EXCERPT, tags=FALLBACK_TAGS)


def _truncate_excerpt(excerpt: str) -> str:
    """Collapse whitespace and cut to MAX_EXCERPT_CHARS on a word boundary.

    Examples:
        >>> _truncate_excerpt("Short one.")
        'Short one.'
    """
    text = " ".join(excerpt.split())
    if len(text) <= MAX_EXCERPT_CHARS:
        return text
    cut = text[: MAX_EXCERPT_CHARS - 1]
    if " " in cut:
        cut = cut[: cut.rfind(" ")]
    return cut.rstrip(" ,;:.") + "…"


def _normalize_tag(tag: Any) -> str:
    """Lowercase, hyphenate whitespace, drop characters other than word chars and hyphens."""
    text = str(tag).strip().lstrip("#").lower()
    text = re.sub(r"\s+", "-", text)
    return re.sub(r"[^\w-]", "", text)


def _normalize_tags(raw_tags: Any) -> tuple[str, ...]:
    """Deduplicate, pad from FALLBACK_TAGS up to MIN_TAGS, cap at MAX_TAGS."""
    tags: list[str] = []
    candidates = raw_tags if isinstance(raw_tags, list) else []
    for candidate in candidates:
        tag = _normalize_tag(candidate)
        if len(tag) > 1 and tag not in tags:
            tags.append(tag)

    for fallback in FALLBACK_TAGS:
        if len(tags) >= MIN_TAGS:
            break
        if fallback not in tags:
            tags.append(fallback)

    return tuple(tags[:MAX_TAGS])


def _parse_metadata(response: str) -> ArticleMetadata:
    """Parse the model's JSON metadata.

    Raises:
        ValueError: If the response is not a JSON object
    """
    data = parse_json_response(response)
    if not isinstance(data, dict):
        raise ValueError("Metadata response is not a JSON object")

    excerpt = str(data.get("excerpt") or "").strip()
    return ArticleMetadata(
        excerpt=_truncate_excerpt(excerpt) if excerpt else FALLBACK_EXCERPT,
        tags=_normalize_tags(data.get("tags")),
    )


async def generate_metadata(
    content: str,
    title: str,
    *,
    model: str | None = None,
    temperature: float = 0.3,
) -> ArticleMetadata:
    """Generate an excerpt and tags for an article.

    Never raises for model or parse failures; returns FALLBACK_METADATA.

    Raises:
        ValueError: If content is empty
    """
    if not content or not content.strip():
        raise ValueError("content cannot be empty")

    prompt = METADATA_PROMPT_V1.format(
        title=(title or "").strip() or "Untitled",
        content=content.strip()[:MAX_CONTENT_CHARS],
        brand=get_settings().BRAND_NAME,
    )

    try:
        response = await generate_text(
            prompt, model=model, temperature=temperature, max_tokens=1000
        )
        return _parse_metadata(response)
    except Exception as e:  # pylint: disable=broad-except
        _get_logger().warning(
            "Metadata generation unavailable, using fallback metadata",
            extra={"extra_fields": {"error_type": type(e).__name__}},
        )
        return FALLBACK_METADATA
