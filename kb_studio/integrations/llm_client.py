"""Async text generation over LiteLLM.

Requests go to the hosted provider named by LLM_PROVIDER, or to an
OpenAI-compatible server when CUSTOM_LLM_BASE_URL is set. Transient
failures (rate limits, overload, network trouble) are retried with
exponential backoff; anything else fails on the first attempt.

Example:
    >>> text = await generate_text(
    ...     "Outline an SOP for month-end close",
    ...     system_prompt="You are a content strategist.",
    ... )
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any, Final

import litellm

from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger

NON_RETRYABLE_EXCEPTIONS: Final = (
    litellm.AuthenticationError,
    litellm.PermissionDeniedError,
    litellm.BadRequestError,
)

# Provider errors surfaced as plain exceptions carry the status in the message
_NON_RETRYABLE_MESSAGE: Final = re.compile(
    r"\b(?:400|401|403)\b|authentication|invalid api key|unauthorized|invalid request",
    re.IGNORECASE,
)

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class LLMRetryExhausted(Exception):
    """The model call failed for good.

    Raised after 1 + LLM_MAX_RETRIES failed attempts, or immediately for an
    error that retrying cannot fix (bad key, malformed request). The last
    provider error is chained as ``__cause__``.
    """


@dataclass(frozen=True)
class _Route:
    model: str
    provider: str
    api_key: str | None
    base_url: str | None = None

    @property
    def label(self) -> str:
        return "custom" if self.base_url else self.provider


def _is_retryable_error(error: Exception) -> bool:
    """Network errors always retry; auth and bad-request errors never do."""
    if isinstance(error, NON_RETRYABLE_EXCEPTIONS):
        return False
    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return True
    return _NON_RETRYABLE_MESSAGE.search(str(error)) is None


def _resolve_route(model_override: str | None) -> _Route:
    settings = get_settings()
    if settings.CUSTOM_LLM_BASE_URL:
        # Custom servers speak the OpenAI protocol
        return _Route(
            model=model_override or settings.CUSTOM_LLM_MODEL or settings.LLM_DEFAULT_MODEL,
            provider="openai",
            api_key=settings.get_custom_llm_api_key(),
            base_url=settings.CUSTOM_LLM_BASE_URL,
        )
    return _Route(
        model=model_override or settings.LLM_DEFAULT_MODEL,
        provider=settings.LLM_PROVIDER,
        api_key=settings.get_llm_api_key(),
    )


def _build_messages(prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
    messages = []
    if system_prompt and system_prompt.strip():
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


async def _complete(
    route: _Route, messages: list[dict[str, str]], temperature: float, max_tokens: int
) -> str:
    """Send one chat request, retrying transient failures.

    Raises:
        LLMRetryExhausted: When the error is permanent or retries run out
    """
    settings = get_settings()
    retries = settings.LLM_MAX_RETRIES
    fields = {"provider": route.label, "model": route.model}

    for attempt in range(retries + 1):
        try:
            response = await litellm.acompletion(
                model=route.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=route.api_key,
                base_url=route.base_url,
                timeout=settings.LLM_TIMEOUT,
                custom_llm_provider=route.provider,
            )
        except Exception as e:
            error_fields = {**fields, "attempt": attempt + 1, "error_type": type(e).__name__}
            if not _is_retryable_error(e):
                _get_logger().error(
                    "LLM request rejected", extra={"extra_fields": error_fields}
                )
                raise LLMRetryExhausted(f"Non-retryable error: {type(e).__name__}") from e
            if attempt == retries:
                _get_logger().error(
                    "LLM retries exhausted", extra={"extra_fields": error_fields}
                )
                raise LLMRetryExhausted(
                    f"All {retries} retries failed: {type(e).__name__}: {e}"
                ) from e

            wait = settings.LLM_RETRY_DELAY * (2**attempt)
            _get_logger().warning(
                "LLM request failed, retrying",
                extra={"extra_fields": {**error_fields, "retry_in": wait}},
            )
            await asyncio.sleep(wait)
            continue

        _get_logger().info(
            "LLM request successful", extra={"extra_fields": {**fields, "attempts": attempt + 1}}
        )
        return response.choices[0].message.content or ""

    raise LLMRetryExhausted("Retry loop ended without a result")


async def generate_text(
    prompt: str,
    *,
    system_prompt: str | None = None,
    model: str | None = None,
    temperature: float = 0.2,
    max_tokens: int | None = None,
) -> str:
    """Generate a completion for prompt.

    Args:
        prompt: User prompt
        system_prompt: Brand voice and role instructions, sent first when non-blank
        model: Overrides LLM_DEFAULT_MODEL / CUSTOM_LLM_MODEL
        temperature: 0.0 to 2.0
        max_tokens: Overrides LLM_MAX_TOKENS

    Returns:
        The model's text, possibly empty. Prompts and outputs are never logged.

    Raises:
        ValueError: Empty prompt or temperature out of range
        LLMRetryExhausted: The request failed permanently
    """
    if not prompt or not prompt.strip():
        raise ValueError("Prompt cannot be empty")
    if not 0.0 <= temperature <= 2.0:
        raise ValueError("Temperature must be between 0.0 and 2.0")

    return await _complete(
        _resolve_route(model),
        _build_messages(prompt, system_prompt),
        temperature,
        max_tokens or get_settings().LLM_MAX_TOKENS,
    )


def strip_markdown_json(text: str) -> str:
    """Remove a ```json / ``` fence wrapped around a model response.

    Examples:
        >>> strip_markdown_json('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
        >>> strip_markdown_json('  {"a": 1}  ')
        '{"a": 1}'
    """
    cleaned = _FENCE_OPEN.sub("", text.strip(), count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def parse_json_response(text: str) -> Any:
    """Parse JSON from a model response, tolerating code fences and chatter.

    Falls back to the outermost ``{...}`` span when the response has prose
    around the JSON object.

    Raises:
        ValueError: If no JSON value can be parsed
    """
    if not text or not text.strip():
        raise ValueError("Empty response")

    cleaned = strip_markdown_json(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("Response does not contain a JSON object") from None
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in response: {e}") from e
