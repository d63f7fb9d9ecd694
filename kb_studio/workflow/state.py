"""Session state definitions.

This module defines the data structures for tracking a generation session
without implementing any execution logic, LLM calls, or side effects.
Stored shapes use camelCase JSON keys so saved sessions stay compatible
with the portal's local storage format.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kb_studio.agents.models import GenerationRequest


class Stage(str, Enum):
    """Workflow stage of a generation session.

    Attributes:
        SETUP: Form being filled in, nothing generated yet
        OUTLINE: Outline generated
        DRAFT: Draft generated
        POLISH: Polished article generated
        VERSIONS: Audience versions generated
    """

    SETUP = "setup"
    OUTLINE = "outline"
    DRAFT = "draft"
    POLISH = "polish"
    VERSIONS = "versions"

    @property
    def order(self) -> int:
        return list(Stage).index(self)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeneratedContent(_CamelModel):
    """Content of the linear pipeline stages. Empty string means not generated."""

    outline: str = ""
    draft: str = ""
    polished: str = ""

    def has_any(self) -> bool:
        return any(value.strip() for value in (self.outline, self.draft, self.polished))


class AudienceVersions(_CamelModel):
    """Content adapted per audience. Empty string means not generated."""

    internal: str = ""
    client: str = ""
    sales: str = ""

    def has_any(self) -> bool:
        return any(value.strip() for value in (self.internal, self.client, self.sales))


class SavedSession(_CamelModel):
    """Serializable snapshot of a generation session.

    Attributes:
        form_data: Generation request as filled in by the user
        generated_content: Outline, draft and polished content
        audience_versions: Per-audience content
        selected_template: Template id chosen for the session
        timestamp: Save time in epoch milliseconds; unique per store
    """

    form_data: GenerationRequest
    generated_content: GeneratedContent = Field(default_factory=GeneratedContent)
    audience_versions: AudienceVersions = Field(default_factory=AudienceVersions)
    selected_template: Optional[str] = None
    timestamp: int = 0

    def to_json_dict(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def stage_has_content(stage: Stage, content: GeneratedContent, versions: AudienceVersions) -> bool:
    """Whether stage has its own content and the content it is built from.

    Polish needs a draft; versions need polished or draft content.
    """
    if stage is Stage.SETUP:
        return True
    if stage is Stage.OUTLINE:
        return bool(content.outline.strip())
    if stage is Stage.DRAFT:
        return bool(content.draft.strip())
    if stage is Stage.POLISH:
        return bool(content.polished.strip() and content.draft.strip())
    return versions.has_any() and bool(content.polished.strip() or content.draft.strip())


def derive_stage(content: GeneratedContent, versions: AudienceVersions) -> Stage:
    """Most advanced stage whose content and prerequisites are populated.

    Examples:
        >>> derive_stage(GeneratedContent(draft="<p>x</p>"), AudienceVersions())
        <Stage.DRAFT: 'draft'>
    """
    for stage in reversed(Stage):
        if stage_has_content(stage, content, versions):
            return stage
    return Stage.SETUP
